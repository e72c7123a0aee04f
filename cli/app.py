from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.config import CLIConfig, load_config
from cli.render import render_analysis, render_training
from datastore.analysis_store import AnalysisStore
from models.records import LockStatus
from services.aggregator import Aggregator
from services.analysis import AnalysisService
from services.dashboard import DashboardConfig, DeviceSort, TimeRange, recompute_view
from services.export import records_to_csv
from services.prediction_client import (
    PredictionClient,
    PredictionServiceError,
    SinglePredictionRequest,
)
from services.training import training_charts
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    service: AnalysisService


app = typer.Typer(
    help="Train, run and inspect smart-lock anomaly predictions.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Prediction backend URL (defaults to PREDICTION_API_URL env or http://127.0.0.1:4000/api).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the backend before giving up.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = PredictionClient(config.base_url, timeout=config.timeout)
    service = AnalysisService(client=client, store=AnalysisStore(), aggregator=Aggregator())
    ctx.obj = CLIState(config=config, service=service)
    ctx.call_on_close(service.shutdown)


@app.command("train")
def train_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
) -> None:
    """Upload training data and show the training data analysis."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    try:
        payload = state.service.train(file.name, file.read_bytes())
    except (PredictionServiceError, ValueError) as exc:
        _fail(str(exc))
    typer.secho("Model trained successfully!", fg=typer.colors.GREEN)
    render_training(payload, training_charts(payload.get("visualization_data")))


@app.command("predict")
def predict_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
    sample_size: Optional[int] = typer.Option(
        None,
        "--sample-size",
        help="Records kept for the device chart (defaults to DASHBOARD_SAMPLE_SIZE or 50).",
    ),
    smoothing_window: Optional[int] = typer.Option(
        None,
        "--smoothing-window",
        min=0,
        help="Half width of the smoothing window (defaults to DASHBOARD_SMOOTHING_WINDOW or 5).",
    ),
    trend_window: Optional[int] = typer.Option(
        None,
        "--trend-window",
        min=1,
        help="Buckets per trend window (defaults to DASHBOARD_TREND_WINDOW or 24).",
    ),
    time_range: TimeRange = typer.Option(TimeRange.all, "--time-range", help="Only show recent buckets."),
    sort_by: DeviceSort = typer.Option(DeviceSort.anomaly_rate, "--sort-by", help="Device ranking key."),
    top: int = typer.Option(20, "--top", min=1, help="Number of devices to list."),
    export: Optional[Path] = typer.Option(
        None,
        "--export",
        dir_okay=False,
        writable=True,
        help="Write the predictions to this CSV file.",
    ),
) -> None:
    """Run a batch prediction and print the dashboard views."""
    state = _get_state(ctx)
    settings = get_settings()
    try:
        config = DashboardConfig(
            sample_size=sample_size if sample_size is not None else settings.default_sample_size,
            smoothing_window=(
                smoothing_window
                if smoothing_window is not None
                else settings.default_smoothing_window
            ),
            time_range=time_range,
            device_sort=sort_by,
            top_devices=top,
            trend_window=trend_window if trend_window is not None else settings.default_trend_window,
        ).validate()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    try:
        snapshot = state.service.run_batch(file.name, file.read_bytes())
    except (PredictionServiceError, ValueError) as exc:
        _fail(str(exc))

    if not snapshot.aggregation.available:
        typer.secho("Visualization data is not available or incomplete.", fg=typer.colors.YELLOW)
    render_analysis(snapshot, recompute_view(snapshot, config))

    if export is not None:
        export.write_text(records_to_csv(snapshot.records), encoding="utf-8")
        typer.echo()
        typer.secho(f"Predictions written to {export}", fg=typer.colors.GREEN)


@app.command("predict-single")
def predict_single_command(
    ctx: typer.Context,
    device_id: str = typer.Option(..., "--device-id", help="Device identifier."),
    timestamp: str = typer.Option(..., "--timestamp", help="Event time, e.g. 2024-01-01T09:30."),
    location_id: str = typer.Option(..., "--location-id", help="Location identifier."),
    owner_id: str = typer.Option(..., "--owner-id", help="Owner identifier."),
    room_id: str = typer.Option(..., "--room-id", help="Room identifier."),
    lock_status: LockStatus = typer.Option(LockStatus.lock, "--lock-status", help="Lock state."),
) -> None:
    """Classify a single lock event."""
    state = _get_state(ctx)
    request = SinglePredictionRequest(
        device_id=device_id,
        lock_status=lock_status.value,
        timestamp=timestamp,
        locationId=location_id,
        ownerId=owner_id,
        roomId=room_id,
    )
    try:
        is_anomaly = state.service.predict_single(request)
    except PredictionServiceError as exc:
        _fail(str(exc))

    if is_anomaly:
        typer.secho("This activity is anomalous", fg=typer.colors.YELLOW)
    else:
        typer.secho("This activity is normal", fg=typer.colors.GREEN)
