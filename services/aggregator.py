"""Aggregation logic for prediction records."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from models.records import (
    DeviceStat,
    LocationStat,
    LocationSummary,
    PredictionRecord,
    TimeSeriesPoint,
    anomaly_rate,
)

logger = logging.getLogger(__name__)

TIME_SERIES = "time_series"
DEVICE_STATS = "device_stats"
LOCATION_STATS = "location_stats"

_T = TypeVar("_T")


@dataclass
class AggregationResult:
    """Derived views for one analysis run.

    A view set to ``None`` could not be computed; ``issues`` explains why.
    Views fail independently of each other.
    """

    time_series: Optional[List[TimeSeriesPoint]] = None
    device_stats: Optional[List[DeviceStat]] = None
    location_stats: Optional[List[LocationStat]] = None
    issues: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def unavailable(cls, reason: str) -> "AggregationResult":
        return cls(issues={name: reason for name in (TIME_SERIES, DEVICE_STATS, LOCATION_STATS)})

    @property
    def available(self) -> bool:
        return any(
            view is not None
            for view in (self.time_series, self.device_stats, self.location_stats)
        )


@dataclass
class _Tally:
    total: int = 0
    anomalies: int = 0

    def add(self, record: PredictionRecord) -> None:
        self.total += 1
        if record.is_anomaly:
            self.anomalies += 1


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(
        self,
        records: Sequence[PredictionRecord],
        timestamps: Optional[Sequence[str]] = None,
        location_summaries: Optional[Sequence[LocationSummary]] = None,
    ) -> AggregationResult:
        if not records:
            logger.info("Nothing to aggregate", extra={"reason": "no data"})
            return AggregationResult.unavailable("no data")

        result = AggregationResult()

        if timestamps:
            result.time_series = self._guarded(
                TIME_SERIES, result, lambda: self.bucket_time_series(records, timestamps)
            )
        else:
            result.issues[TIME_SERIES] = "missing timestamps"

        result.device_stats = self._guarded(
            DEVICE_STATS, result, lambda: self.device_rollup(records)
        )
        if location_summaries:
            result.location_stats = self._guarded(
                LOCATION_STATS, result, lambda: self.location_from_summaries(location_summaries)
            )
        else:
            result.location_stats = self._guarded(
                LOCATION_STATS, result, lambda: self.location_rollup(records)
            )

        logger.debug(
            "Aggregated prediction records",
            extra={
                "record_count": len(records),
                "bucket_count": len(result.time_series or ()),
                "error_count": len(result.issues),
            },
        )
        return result

    def bucket_time_series(
        self, records: Sequence[PredictionRecord], timestamps: Sequence[str]
    ) -> List[TimeSeriesPoint]:
        """Partition records over ``timestamps`` by relative position.

        Record ``i`` of ``N`` lands in bucket ``floor(i * T / N)``; records are
        assumed to be in the same order as the timestamp series.
        """
        record_count = len(records)
        bucket_count = len(timestamps)
        tallies: Dict[int, _Tally] = {}
        for index, record in enumerate(records):
            bucket = index * bucket_count // record_count
            tallies.setdefault(bucket, _Tally()).add(record)

        points: List[TimeSeriesPoint] = []
        for bucket in sorted(tallies):
            tally = tallies[bucket]
            points.append(
                TimeSeriesPoint(
                    timestamp=timestamps[bucket],
                    total=tally.total,
                    anomaly_count=tally.anomalies,
                    anomaly_rate=anomaly_rate(tally.anomalies, tally.total),
                )
            )
        return points

    def device_rollup(self, records: Iterable[PredictionRecord]) -> List[DeviceStat]:
        tallies = _group(records, lambda record: record.device_id)
        return [
            DeviceStat(
                device_id=device_id,
                total_events=tally.total,
                anomaly_count=tally.anomalies,
                anomaly_rate=anomaly_rate(tally.anomalies, tally.total),
            )
            for device_id, tally in tallies.items()
        ]

    def location_rollup(self, records: Iterable[PredictionRecord]) -> List[LocationStat]:
        tallies = _group(records, lambda record: record.location_id)
        return [
            LocationStat(
                location_id=location_id,
                total_events=tally.total,
                anomaly_count=tally.anomalies,
                anomaly_rate=anomaly_rate(tally.anomalies, tally.total),
            )
            for location_id, tally in tallies.items()
        ]

    def location_from_summaries(
        self, summaries: Iterable[LocationSummary]
    ) -> List[LocationStat]:
        """Adopt the backend's location rollup, renaming its percentage field."""
        stats: List[LocationStat] = []
        for summary in summaries:
            total = int(summary.total_events)
            anomalies = int(summary.anomaly_count)
            if total <= 0:
                continue
            if anomalies < 0 or anomalies > total:
                raise ValueError(
                    f"Location {summary.location_id!r} reports {anomalies} anomalies "
                    f"out of {total} events."
                )
            rate = None
            if summary.anomaly_percentage is not None:
                rate = float(summary.anomaly_percentage)
            if rate is None or not math.isfinite(rate):
                rate = anomaly_rate(anomalies, total)
            else:
                rate = round(rate, 2)
            stats.append(
                LocationStat(
                    location_id=summary.location_id,
                    total_events=total,
                    anomaly_count=anomalies,
                    anomaly_rate=rate,
                )
            )
        return stats

    @staticmethod
    def _guarded(
        view: str, result: AggregationResult, build: Callable[[], List[_T]]
    ) -> Optional[List[_T]]:
        try:
            return build()
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Aggregation view unavailable", extra={"view": view, "reason": str(exc)}
            )
            result.issues[view] = str(exc)
            return None


def _group(
    records: Iterable[PredictionRecord], key: Callable[[PredictionRecord], str]
) -> Dict[str, _Tally]:
    tallies: Dict[str, _Tally] = {}
    for record in records:
        tallies.setdefault(key(record), _Tally()).add(record)
    return tallies
