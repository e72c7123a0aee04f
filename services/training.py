"""Chart rows for the training data analysis returned by ``/train``."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

_SPLIT_SECTIONS = {
    "hourly_activity": "hour",
    "weekly_pattern": "day",
    "device_status": "status",
}


def _value_at(values: Any, index: int) -> Any:
    if not isinstance(values, list) or index >= len(values):
        return 0
    return values[index] or 0


def _split_rows(section: Mapping[str, Any], label_key: str) -> List[Dict[str, Any]]:
    rows = []
    for index, label in enumerate(section.get("labels") or []):
        rows.append(
            {
                label_key: f"{label}:00" if label_key == "hour" else label,
                "normal": _value_at(section.get("normal"), index),
                "anomaly": _value_at(section.get("anomaly"), index),
            }
        )
    return rows


def training_charts(visualization_data: Optional[Mapping[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Normal/anomaly counts per hour, weekday and device status, plus period counts."""
    data = visualization_data or {}
    charts: Dict[str, List[Dict[str, Any]]] = {}
    for name, label_key in _SPLIT_SECTIONS.items():
        section = data.get(name)
        charts[name] = _split_rows(section, label_key) if isinstance(section, Mapping) else []

    periods = data.get("time_periods")
    charts["time_periods"] = []
    if isinstance(periods, Mapping):
        charts["time_periods"] = [
            {"period": label, "count": _value_at(periods.get("data"), index)}
            for index, label in enumerate(periods.get("labels") or [])
        ]
    return charts
