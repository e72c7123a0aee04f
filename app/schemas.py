"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from models.analysis import AnalysisSnapshot, AnalysisStatus
from models.records import LockStatus
from services.dashboard import DashboardView
from services.prediction_client import SinglePredictionRequest
from services.trend import Trend


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RecordErrorSchema(_FromAttributes):
    """A device entry from the backend that was left out of the analysis."""

    index: int = Field(..., ge=0)
    reason: str


class AnalysisResult(BaseModel):
    """Metadata for the current analysis run."""

    analysis_id: str = Field(..., description="Identifier of the analysis snapshot.")
    filename: str
    status: AnalysisStatus
    created_at: datetime
    elapsed_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds of the backend round trip."
    )
    record_count: int = Field(..., ge=0)
    total_devices: int = Field(..., ge=0)
    total_anomalies: int = Field(..., ge=0)
    errors: List[RecordErrorSchema] = Field(default_factory=list)
    issues: Dict[str, str] = Field(
        default_factory=dict, description="Views that could not be computed, with the reason."
    )

    @classmethod
    def from_snapshot(cls, snapshot: AnalysisSnapshot) -> "AnalysisResult":
        return cls(
            analysis_id=snapshot.analysis_id,
            filename=snapshot.filename,
            status=snapshot.status,
            created_at=snapshot.created_at,
            elapsed_ms=snapshot.elapsed_ms,
            record_count=len(snapshot.records),
            total_devices=snapshot.total_devices,
            total_anomalies=snapshot.total_anomalies,
            errors=[RecordErrorSchema.model_validate(error) for error in snapshot.errors],
            issues=dict(snapshot.aggregation.issues),
        )


class PredictionRecordSchema(_FromAttributes):
    device_id: str
    location_id: str
    lock_status: LockStatus
    timestamp: str
    prediction: int = Field(..., ge=0, le=1)


class TimeSeriesPointSchema(_FromAttributes):
    timestamp: str
    total: int = Field(..., gt=0)
    anomaly_count: int = Field(..., ge=0)
    anomaly_rate: float
    smoothed_anomaly_rate: Optional[float] = None


class DeviceStatSchema(_FromAttributes):
    device_id: str
    total_events: int
    anomaly_count: int
    anomaly_rate: float


class LocationStatSchema(_FromAttributes):
    location_id: str
    total_events: int
    anomaly_count: int
    anomaly_rate: float


class HeatmapCellSchema(BaseModel):
    day: int = Field(..., ge=0, le=6, description="0 is Sunday.")
    hour: int = Field(..., ge=0, le=23)
    event_count: int
    sample_count: int = Field(..., ge=1)
    average_anomaly_rate: float
    color: str


class HeatmapScaleSchema(_FromAttributes):
    minimum: float
    maximum: float
    mean: float


class TrendSchema(BaseModel):
    percent_change: Optional[float] = None
    direction: Optional[str] = None
    display: str

    @classmethod
    def from_trend(cls, trend: Trend) -> "TrendSchema":
        return cls(
            percent_change=trend.percent_change,
            direction=trend.direction,
            display=trend.display(),
        )


class SummarySchema(BaseModel):
    total_devices: int
    total_anomalies: int
    anomaly_percentage: Optional[float] = None
    anomaly_trend: Optional[TrendSchema] = None
    rate_trend: Optional[TrendSchema] = None


class TimeSeriesSchema(BaseModel):
    points: List[TimeSeriesPointSchema]
    event_axis_max: int


class LocationPanelSchema(BaseModel):
    stats: List[LocationStatSchema]
    events_domain: Optional[Tuple[float, float]] = None
    anomalies_domain: Optional[Tuple[float, float]] = None


class HeatmapSchema(BaseModel):
    cells: List[HeatmapCellSchema]
    scale: Optional[HeatmapScaleSchema] = None


class RecordPageSchema(BaseModel):
    page: int
    rows_per_page: int
    total_records: int
    records: List[PredictionRecordSchema]


class DashboardViewResponse(BaseModel):
    """Everything the dashboard needs to draw one analysis with the given settings."""

    summary: SummarySchema
    time_series: Optional[TimeSeriesSchema] = None
    devices: Optional[List[DeviceStatSchema]] = None
    locations: Optional[LocationPanelSchema] = None
    heatmap: Optional[HeatmapSchema] = None
    sampled_records: List[PredictionRecordSchema] = Field(default_factory=list)
    record_page: RecordPageSchema
    issues: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_view(cls, view: DashboardView) -> "DashboardViewResponse":
        trends = view.summary.trends
        summary = SummarySchema(
            total_devices=view.summary.total_devices,
            total_anomalies=view.summary.total_anomalies,
            anomaly_percentage=view.summary.anomaly_percentage,
            anomaly_trend=TrendSchema.from_trend(trends.anomalies) if trends else None,
            rate_trend=TrendSchema.from_trend(trends.rate) if trends else None,
        )

        time_series = None
        if view.time_series is not None:
            time_series = TimeSeriesSchema(
                points=[TimeSeriesPointSchema.model_validate(p) for p in view.time_series.points],
                event_axis_max=view.time_series.event_axis_max,
            )

        locations = None
        if view.locations is not None:
            locations = LocationPanelSchema(
                stats=[LocationStatSchema.model_validate(s) for s in view.locations.stats],
                events_domain=view.locations.events_domain,
                anomalies_domain=view.locations.anomalies_domain,
            )

        heatmap = None
        if view.heatmap is not None:
            heatmap = HeatmapSchema(
                cells=[
                    HeatmapCellSchema(
                        day=entry.cell.day,
                        hour=entry.cell.hour,
                        event_count=entry.cell.event_count,
                        sample_count=entry.cell.sample_count,
                        average_anomaly_rate=entry.cell.average_anomaly_rate,
                        color=entry.color,
                    )
                    for entry in view.heatmap.cells
                ],
                scale=(
                    HeatmapScaleSchema.model_validate(view.heatmap.scale)
                    if view.heatmap.scale
                    else None
                ),
            )

        devices = None
        if view.devices is not None:
            devices = [DeviceStatSchema.model_validate(d) for d in view.devices]

        page = view.record_page
        return cls(
            summary=summary,
            time_series=time_series,
            devices=devices,
            locations=locations,
            heatmap=heatmap,
            sampled_records=[
                PredictionRecordSchema.model_validate(r) for r in view.sampled_records
            ],
            record_page=RecordPageSchema(
                page=page.page,
                rows_per_page=page.rows_per_page,
                total_records=page.total_records,
                records=[PredictionRecordSchema.model_validate(r) for r in page.records],
            ),
            issues=dict(view.issues),
        )


class TrainingResponse(BaseModel):
    """Outcome of a training upload and the chart rows for the training data."""

    status: str
    message: Optional[str] = None
    charts: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


class SinglePredictionBody(BaseModel):
    device_id: str = Field(..., min_length=1)
    lock_status: LockStatus = LockStatus.lock
    timestamp: str = Field(..., min_length=1)
    locationId: str = Field(..., min_length=1)
    ownerId: str = Field(..., min_length=1)
    roomId: str = Field(..., min_length=1)
    name: str = "VirtualSTS Lock 2"
    DeviceStatus: str = "online"
    manufacturerName: str = "SmartThingsCommunity"

    def to_request(self) -> SinglePredictionRequest:
        data = self.model_dump()
        data["lock_status"] = self.lock_status.value
        return SinglePredictionRequest(**data)


class SinglePredictionResponse(BaseModel):
    is_anomaly: bool
