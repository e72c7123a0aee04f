"""Momentum indicators comparing two trailing windows of a time series."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from models.records import TimeSeriesPoint

UP = "up"
DOWN = "down"
NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class Trend:
    percent_change: Optional[float]
    direction: Optional[str]

    @classmethod
    def undefined(cls) -> "Trend":
        return cls(percent_change=None, direction=None)

    @property
    def is_defined(self) -> bool:
        return self.percent_change is not None

    def display(self) -> str:
        if self.percent_change is None:
            return NOT_AVAILABLE
        arrow = "↑" if self.direction == UP else "↓"
        return f"{arrow} {abs(self.percent_change):.2f}%"


@dataclass(frozen=True)
class WindowMetrics:
    anomalies: int
    total: int
    rate: Optional[float]


@dataclass(frozen=True)
class TrendSummary:
    anomalies: Trend
    rate: Trend


def trend(current: Optional[float], previous: Optional[float]) -> Trend:
    """Percentage change from ``previous`` to ``current``.

    A zero or missing baseline has no meaningful change and yields an
    undefined trend rather than an infinite one.
    """
    if previous is None or current is None or previous == 0:
        return Trend.undefined()
    change = (current - previous) / previous * 100
    return Trend(percent_change=change, direction=UP if change > 0 else DOWN)


def window_metrics(points: Sequence[TimeSeriesPoint]) -> WindowMetrics:
    rate = None
    if points:
        rate = sum(point.anomaly_rate for point in points) / len(points)
    return WindowMetrics(
        anomalies=sum(point.anomaly_count for point in points),
        total=sum(point.total for point in points),
        rate=rate,
    )


def window_trends(series: Sequence[TimeSeriesPoint], window: int = 24) -> Optional[TrendSummary]:
    """Compare the latest ``window`` buckets with the ``window`` buckets before them."""
    if window < 1:
        raise ValueError("Trend window must be at least 1.")
    if len(series) < 2:
        return None

    recent = window_metrics(series[-window:])
    previous = window_metrics(series[-2 * window : -window])
    return TrendSummary(
        anomalies=trend(recent.anomalies, previous.anomalies),
        rate=trend(recent.rate, previous.rate),
    )
