"""Parsing of the prediction backend's batch response."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from models.records import LocationSummary, LockStatus, PredictionRecord

_REQUIRED_FIELDS = ("device_id", "location_id", "lock_status", "timestamp", "prediction")


@dataclass(frozen=True)
class RecordError:
    """A device entry that was dropped before aggregation."""

    index: int
    reason: str


@dataclass
class ParsedBatch:
    records: List[PredictionRecord] = field(default_factory=list)
    timestamps: Optional[List[str]] = None
    total_devices: int = 0
    total_anomalies: int = 0
    location_summaries: Optional[List[LocationSummary]] = None
    errors: List[RecordError] = field(default_factory=list)


def parse_batch_response(body: Mapping[str, Any]) -> ParsedBatch:
    """Validate the device entries of a ``/predict`` response.

    Accepts either the full body (``{"data": {...}}``) or the inner data
    object. Entries that cannot be used are reported and skipped.
    """
    data = body.get("data", body) if isinstance(body, Mapping) else None
    if not isinstance(data, Mapping) or "devices" not in data:
        raise ValueError("Response is missing prediction data.")

    devices = data.get("devices") or []
    if not isinstance(devices, list):
        raise ValueError("Response devices must be a list.")

    parsed = ParsedBatch()
    for index, entry in enumerate(devices):
        record = _parse_record(entry)
        if isinstance(record, str):
            parsed.errors.append(RecordError(index=index, reason=record))
            continue
        parsed.records.append(record)

    timestamps = data.get("timestamps")
    if isinstance(timestamps, list) and timestamps:
        parsed.timestamps = [str(value) for value in timestamps]

    parsed.location_summaries = _parse_location_summaries(data.get("location_stats"))

    anomalies = sum(1 for record in parsed.records if record.is_anomaly)
    parsed.total_devices = _read_count(data.get("total_devices"), len(parsed.records))
    parsed.total_anomalies = _read_count(data.get("total_anomalies"), anomalies)
    return parsed


def _parse_record(entry: Any) -> PredictionRecord | str:
    """Return a record, or the reason the entry was rejected."""
    if not isinstance(entry, Mapping):
        return "entry is not an object"

    for name in _REQUIRED_FIELDS:
        value = entry.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"missing {name}"

    try:
        lock_status = LockStatus(str(entry["lock_status"]).strip().lower())
    except ValueError:
        return "invalid lock_status"

    prediction = entry["prediction"]
    if isinstance(prediction, bool) or prediction not in (0, 1):
        return "invalid prediction"

    return PredictionRecord(
        device_id=str(entry["device_id"]).strip(),
        location_id=str(entry["location_id"]).strip(),
        lock_status=lock_status,
        timestamp=str(entry["timestamp"]).strip(),
        prediction=int(prediction),
    )


def _parse_location_summaries(raw: Any) -> Optional[List[LocationSummary]]:
    if not isinstance(raw, list) or not raw:
        return None
    summaries: List[LocationSummary] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        summaries.append(
            LocationSummary(
                location_id=str(entry.get("location_id", "")),
                total_events=entry.get("total_events", 0),
                anomaly_count=entry.get("anomaly_count", 0),
                anomaly_percentage=entry.get("anomaly_percentage"),
            )
        )
    return summaries or None


def _read_count(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default
