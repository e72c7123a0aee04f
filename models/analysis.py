"""State of one batch-prediction run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from models.records import PredictionRecord
from services.aggregator import AggregationResult
from services.payload import RecordError


class AnalysisStatus(str, Enum):
    processed = "processed"
    partial = "partial"
    failed = "failed"


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Immutable view of one prediction response and its aggregates.

    Replaced wholesale by the next upload; nothing here is updated in place.
    """

    analysis_id: str
    filename: str
    status: AnalysisStatus
    created_at: datetime
    records: List[PredictionRecord]
    timestamps: Optional[List[str]]
    total_devices: int
    total_anomalies: int
    aggregation: AggregationResult
    errors: List[RecordError] = field(default_factory=list)
    elapsed_ms: Optional[int] = None
