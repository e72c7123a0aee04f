"""Weighted moving average over a time series."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

from models.records import TimeSeriesPoint


def triangular_weight(offset: int, half_window: int) -> float:
    """Weight of a point ``offset`` buckets away from the window centre."""
    return 1 - abs(offset) / (half_window + 1)


def smooth(series: Sequence[TimeSeriesPoint], half_window: int) -> List[TimeSeriesPoint]:
    """Return copies of ``series`` with ``smoothed_anomaly_rate`` filled in.

    Each point averages the anomaly rates within ``half_window`` buckets on
    either side using a triangular kernel. Windows are clipped at the edges
    and only the weights that fall inside the series are summed, so edge
    values renormalize on their own.
    """
    if half_window < 0:
        raise ValueError("Smoothing window must be zero or positive.")

    length = len(series)
    smoothed: List[TimeSeriesPoint] = []
    for index, point in enumerate(series):
        start = max(0, index - half_window)
        stop = min(length, index + half_window + 1)

        weighted_sum = 0.0
        weight_total = 0.0
        for neighbour in range(start, stop):
            weight = triangular_weight(neighbour - index, half_window)
            weighted_sum += series[neighbour].anomaly_rate * weight
            weight_total += weight

        smoothed.append(
            replace(point, smoothed_anomaly_rate=round(weighted_sum / weight_total, 3))
        )
    return smoothed
