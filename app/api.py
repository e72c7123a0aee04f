"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from app.schemas import (
    AnalysisResult,
    DashboardViewResponse,
    SinglePredictionBody,
    SinglePredictionResponse,
    TrainingResponse,
)
from services.analysis import AnalysisService, UploadInProgressError, build_default_service
from services.dashboard import DashboardConfig, DeviceSort, TimeRange, recompute_view
from services.export import EXPORT_FILENAME, records_to_csv
from services.prediction_client import PredictionServiceError
from services.training import training_charts
from settings import get_settings

router = APIRouter()


def get_service() -> AnalysisService:
    return build_default_service()


def get_dashboard_config(
    sample_size: int | None = Query(None, description="Records shown in the device chart."),
    smoothing_window: int | None = Query(None, ge=0, description="Half width of the smoothing window."),
    time_range: TimeRange = Query(TimeRange.all),
    sort_by: DeviceSort = Query(DeviceSort.anomaly_rate),
    top: int = Query(20, ge=1, le=500),
    trend_window: int | None = Query(None, ge=1),
    page: int = Query(0, ge=0),
    rows_per_page: int = Query(10),
) -> DashboardConfig:
    settings = get_settings()
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
        page=page,
        rows_per_page=rows_per_page,
    )
    try:
        return config.validate()
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail=str(exc),
        ) from exc


def _bad_gateway(exc: PredictionServiceError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post(
    "/train",
    response_model=TrainingResponse,
    summary="Forward a CSV file to the backend for model training.",
)
def train_model(
    file: UploadFile = File(..., description="CSV file with labelled lock events."),
    service: AnalysisService = Depends(get_service),
) -> TrainingResponse:
    contents = file.file.read()
    try:
        payload = service.train(file.filename, contents)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except UploadInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PredictionServiceError as exc:
        raise _bad_gateway(exc) from exc
    return TrainingResponse(
        status=payload.get("status", "success"),
        message=payload.get("message"),
        charts=training_charts(payload.get("visualization_data")),
    )


@router.post(
    "/analyses",
    status_code=status.HTTP_201_CREATED,
    response_model=AnalysisResult,
    summary="Run a batch prediction and replace the current analysis.",
)
def create_analysis(
    file: UploadFile = File(..., description="CSV file with lock events to classify."),
    service: AnalysisService = Depends(get_service),
) -> AnalysisResult:
    contents = file.file.read()
    try:
        snapshot = service.run_batch(file.filename, contents)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except UploadInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PredictionServiceError as exc:
        raise _bad_gateway(exc) from exc
    return AnalysisResult.from_snapshot(snapshot)


@router.delete(
    "/analyses/current",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard the current analysis.",
)
def reset_analysis(service: AnalysisService = Depends(get_service)) -> Response:
    service.reset()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/analyses/{analysis_id}",
    response_model=AnalysisResult,
    summary="Fetch status and counts for an analysis.",
)
def get_analysis(
    analysis_id: str,
    service: AnalysisService = Depends(get_service),
) -> AnalysisResult:
    try:
        snapshot = service.fetch(analysis_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return AnalysisResult.from_snapshot(snapshot)


@router.get(
    "/analyses/{analysis_id}/view",
    response_model=DashboardViewResponse,
    summary="Recompute the dashboard views for an analysis.",
)
def get_analysis_view(
    analysis_id: str,
    config: DashboardConfig = Depends(get_dashboard_config),
    service: AnalysisService = Depends(get_service),
) -> DashboardViewResponse:
    try:
        snapshot = service.fetch(analysis_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return DashboardViewResponse.from_view(recompute_view(snapshot, config))


@router.get(
    "/analyses/{analysis_id}/export",
    summary="Download the predictions of an analysis as CSV.",
    response_class=Response,
)
def export_analysis(
    analysis_id: str,
    service: AnalysisService = Depends(get_service),
) -> Response:
    try:
        snapshot = service.fetch(analysis_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(
        content=records_to_csv(snapshot.records),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post(
    "/predict-single",
    response_model=SinglePredictionResponse,
    summary="Classify a single lock event.",
)
def predict_single(
    body: SinglePredictionBody,
    service: AnalysisService = Depends(get_service),
) -> SinglePredictionResponse:
    try:
        is_anomaly = service.predict_single(body.to_request())
    except PredictionServiceError as exc:
        raise _bad_gateway(exc) from exc
    return SinglePredictionResponse(is_anomaly=is_anomaly)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /ui for the dashboard."}
