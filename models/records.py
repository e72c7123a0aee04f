"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LockStatus(str, Enum):
    """Lock state reported with each event."""

    lock = "lock"
    unlock = "unlock"


@dataclass(frozen=True, slots=True)
class PredictionRecord:
    """A single lock event classified by the prediction backend."""

    device_id: str
    location_id: str
    lock_status: LockStatus
    timestamp: str
    prediction: int

    @property
    def is_anomaly(self) -> bool:
        return self.prediction == 1


@dataclass(frozen=True, slots=True)
class LocationSummary:
    """Location rollup computed by the backend and shipped with the predictions."""

    location_id: str
    total_events: int
    anomaly_count: int
    anomaly_percentage: Optional[float] = None


@dataclass(frozen=True, slots=True)
class TimeSeriesPoint:
    """Aggregate over one time bucket. Only emitted for buckets with events."""

    timestamp: str
    total: int
    anomaly_count: int
    anomaly_rate: float
    smoothed_anomaly_rate: Optional[float] = None


@dataclass(frozen=True, slots=True)
class DeviceStat:
    device_id: str
    total_events: int
    anomaly_count: int
    anomaly_rate: float


@dataclass(frozen=True, slots=True)
class LocationStat:
    location_id: str
    total_events: int
    anomaly_count: int
    anomaly_rate: float


@dataclass(frozen=True, slots=True)
class HeatmapCell:
    """Day/hour cell; ``day`` counts from Sunday (0) to Saturday (6)."""

    day: int
    hour: int
    event_count: int
    sample_count: int
    average_anomaly_rate: float


def anomaly_rate(anomaly_count: int, total: int) -> Optional[float]:
    """Percentage of anomalous events rounded for display, ``None`` when undefined."""
    if total <= 0:
        return None
    return round(anomaly_count / total * 100, 2)
