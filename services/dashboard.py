"""Chart-ready views of an analysis snapshot.

``recompute_view`` is the single entry point the HTTP layer and the CLI call
whenever a display parameter changes. It holds no state between calls and
never mutates the snapshot.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from models.analysis import AnalysisSnapshot
from models.records import (
    DeviceStat,
    HeatmapCell,
    LocationStat,
    PredictionRecord,
    TimeSeriesPoint,
    anomaly_rate,
)
from services.heatmap import HeatmapScale, bin_heatmap, cell_color, heatmap_scale, parse_timestamp
from services.sampler import sample
from services.smoothing import smooth
from services.trend import TrendSummary, window_trends
from settings import SAMPLE_SIZE_CHOICES

SAMPLE_SIZES = SAMPLE_SIZE_CHOICES
ROWS_PER_PAGE_OPTIONS = (10, 25, 50, 100)


class TimeRange(str, Enum):
    all = "all"
    last_24h = "24h"
    last_7d = "7d"
    last_30d = "30d"

    @property
    def span(self) -> Optional[timedelta]:
        return _TIME_RANGE_SPANS.get(self)


_TIME_RANGE_SPANS = {
    TimeRange.last_24h: timedelta(hours=24),
    TimeRange.last_7d: timedelta(days=7),
    TimeRange.last_30d: timedelta(days=30),
}


class DeviceSort(str, Enum):
    anomaly_rate = "anomaly_rate"
    total_events = "total_events"
    anomaly_count = "anomaly_count"


@dataclass(frozen=True)
class DashboardConfig:
    sample_size: int = 50
    smoothing_window: int = 5
    time_range: TimeRange = TimeRange.all
    device_sort: DeviceSort = DeviceSort.anomaly_rate
    top_devices: int = 20
    trend_window: int = 24
    page: int = 0
    rows_per_page: int = 10

    def validate(self) -> "DashboardConfig":
        if self.sample_size not in SAMPLE_SIZES:
            raise ValueError(f"sample_size must be one of {', '.join(map(str, SAMPLE_SIZES))}.")
        if self.smoothing_window < 0:
            raise ValueError("smoothing_window must be zero or positive.")
        if self.top_devices < 1:
            raise ValueError("top_devices must be at least 1.")
        if self.trend_window < 1:
            raise ValueError("trend_window must be at least 1.")
        if self.page < 0:
            raise ValueError("page must be zero or positive.")
        if self.rows_per_page not in ROWS_PER_PAGE_OPTIONS:
            raise ValueError(
                f"rows_per_page must be one of {', '.join(map(str, ROWS_PER_PAGE_OPTIONS))}."
            )
        return self


@dataclass(frozen=True)
class Summary:
    total_devices: int
    total_anomalies: int
    anomaly_percentage: Optional[float]
    trends: Optional[TrendSummary]


@dataclass(frozen=True)
class TimeSeriesPanel:
    points: List[TimeSeriesPoint]
    event_axis_max: int


@dataclass(frozen=True)
class LocationPanel:
    stats: List[LocationStat]
    events_domain: Optional[Tuple[float, float]]
    anomalies_domain: Optional[Tuple[float, float]]


@dataclass(frozen=True)
class ColoredCell:
    cell: HeatmapCell
    color: str


@dataclass(frozen=True)
class HeatmapPanel:
    cells: List[ColoredCell]
    scale: Optional[HeatmapScale]


@dataclass(frozen=True)
class RecordPage:
    page: int
    rows_per_page: int
    total_records: int
    records: List[PredictionRecord]


@dataclass(frozen=True)
class DashboardView:
    config: DashboardConfig
    summary: Summary
    time_series: Optional[TimeSeriesPanel]
    devices: Optional[List[DeviceStat]]
    locations: Optional[LocationPanel]
    heatmap: Optional[HeatmapPanel]
    sampled_records: List[PredictionRecord]
    record_page: RecordPage
    issues: Dict[str, str] = field(default_factory=dict)


def filter_time_range(
    series: Sequence[TimeSeriesPoint], time_range: TimeRange, now: datetime
) -> List[TimeSeriesPoint]:
    span = time_range.span
    if span is None:
        return list(series)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    threshold = now.astimezone(timezone.utc) - span
    kept = []
    for point in series:
        try:
            moment = parse_timestamp(point.timestamp)
        except ValueError:
            continue
        if moment >= threshold:
            kept.append(point)
    return kept


def rank_devices(
    stats: Sequence[DeviceStat], sort_by: DeviceSort, limit: int
) -> List[DeviceStat]:
    key = sort_by.value
    return sorted(stats, key=lambda stat: getattr(stat, key), reverse=True)[:limit]


def log_domain(values: Sequence[float]) -> Optional[Tuple[float, float]]:
    """Axis bounds for a log-scale axis with some padding around the data."""
    if not values:
        return None
    return max(1, min(values) * 0.8), max(values) * 1.2


def paginate(records: Sequence[PredictionRecord], page: int, rows_per_page: int) -> RecordPage:
    start = page * rows_per_page
    return RecordPage(
        page=page,
        rows_per_page=rows_per_page,
        total_records=len(records),
        records=list(records[start : start + rows_per_page]),
    )


def recompute_view(
    snapshot: AnalysisSnapshot,
    config: DashboardConfig,
    now: Optional[datetime] = None,
) -> DashboardView:
    config.validate()
    now = now or datetime.now(timezone.utc)
    aggregation = snapshot.aggregation

    trends = None
    time_series_panel = None
    heatmap_panel = None
    if aggregation.time_series is not None:
        trends = window_trends(aggregation.time_series, config.trend_window)

        visible = filter_time_range(aggregation.time_series, config.time_range, now)
        points = smooth(visible, config.smoothing_window)
        axis_max = math.ceil(max(point.total for point in points) * 1.1) if points else 0
        time_series_panel = TimeSeriesPanel(points=points, event_axis_max=axis_max)

        cells = list(bin_heatmap(aggregation.time_series).values())
        scale = heatmap_scale(cells)
        heatmap_panel = HeatmapPanel(
            cells=[
                ColoredCell(cell=cell, color=cell_color(cell.average_anomaly_rate, scale))
                for cell in cells
            ],
            scale=scale,
        )

    devices = None
    if aggregation.device_stats is not None:
        devices = rank_devices(aggregation.device_stats, config.device_sort, config.top_devices)

    locations = None
    if aggregation.location_stats is not None:
        stats = aggregation.location_stats
        locations = LocationPanel(
            stats=list(stats),
            events_domain=log_domain([stat.total_events for stat in stats]),
            anomalies_domain=log_domain([stat.anomaly_count for stat in stats]),
        )

    summary = Summary(
        total_devices=snapshot.total_devices,
        total_anomalies=snapshot.total_anomalies,
        anomaly_percentage=anomaly_rate(snapshot.total_anomalies, snapshot.total_devices),
        trends=trends,
    )

    return DashboardView(
        config=config,
        summary=summary,
        time_series=time_series_panel,
        devices=devices,
        locations=locations,
        heatmap=heatmap_panel,
        sampled_records=sample(snapshot.records, config.sample_size),
        record_page=paginate(snapshot.records, config.page, config.rows_per_page),
        issues=dict(aggregation.issues),
    )
