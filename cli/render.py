from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

from models.analysis import AnalysisSnapshot
from services.dashboard import DashboardView
from services.heatmap import DAY_NAMES, hottest_cells


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _percent(value: float | None, digits: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{value:.{digits}f}%"


def render_training(payload: Dict[str, Any], charts: Dict[str, List[Dict[str, Any]]]) -> None:
    echo_heading("Training Result")
    echo_key_values([("status", payload.get("status")), ("message", payload.get("message"))])

    for name, rows in charts.items():
        if not rows:
            continue
        typer.echo()
        echo_heading(name.replace("_", " ").title())
        for row in rows:
            label_key, *count_keys = row
            counts = ", ".join(f"{key}={row[key]}" for key in count_keys)
            typer.echo(f"  - {row[label_key]}: {counts}")


def render_analysis(snapshot: AnalysisSnapshot, view: DashboardView) -> None:
    echo_heading("Analysis Result")
    summary = view.summary
    echo_key_values(
        [
            ("analysis_id", snapshot.analysis_id),
            ("status", snapshot.status.value),
            ("total_devices", summary.total_devices),
            ("total_anomalies", summary.total_anomalies),
            ("anomaly_rate", _percent(summary.anomaly_percentage)),
        ]
    )
    if summary.trends is not None:
        echo_key_values(
            [
                ("anomaly_trend", summary.trends.anomalies.display()),
                ("rate_trend", summary.trends.rate.display()),
            ]
        )

    if view.issues:
        typer.echo()
        echo_heading("Unavailable Views")
        for name, reason in view.issues.items():
            typer.secho(f"  - {name}: {reason}", fg=typer.colors.YELLOW)

    if view.time_series is not None:
        typer.echo()
        echo_heading("Time Series")
        for point in view.time_series.points:
            typer.echo(
                f"  - {point.timestamp}: total={point.total} "
                f"anomalies={point.anomaly_count} rate={_percent(point.anomaly_rate)} "
                f"smoothed={_percent(point.smoothed_anomaly_rate, 3)}"
            )

    if view.devices:
        typer.echo()
        echo_heading(f"Top Devices (by {view.config.device_sort.value})")
        for stat in view.devices:
            typer.echo(
                f"  - {stat.device_id}: events={stat.total_events} "
                f"anomalies={stat.anomaly_count} rate={_percent(stat.anomaly_rate)}"
            )

    if view.locations is not None and view.locations.stats:
        typer.echo()
        echo_heading("Locations")
        for stat in view.locations.stats:
            typer.echo(
                f"  - {stat.location_id}: events={stat.total_events} "
                f"anomalies={stat.anomaly_count} rate={_percent(stat.anomaly_rate)}"
            )

    if view.heatmap is not None and view.heatmap.cells:
        typer.echo()
        echo_heading("Heatmap Hot Spots (UTC)")
        for cell in hottest_cells([entry.cell for entry in view.heatmap.cells]):
            typer.echo(
                f"  - {DAY_NAMES[cell.day]} {cell.hour:02d}:00: "
                f"{_percent(cell.average_anomaly_rate, 3)} "
                f"over {cell.sample_count} samples"
            )

    if snapshot.errors:
        typer.echo()
        echo_heading("Errors")
        for error in snapshot.errors:
            typer.echo(f"  - device entry {error.index}: {error.reason}")
