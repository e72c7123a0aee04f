"""Day-of-week by hour-of-day binning of a time series.

All timestamps are interpreted in UTC. Naive values are assumed to already be
UTC; offset-aware values are converted. Days are numbered from Sunday (0) to
Saturday (6).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Sequence, Tuple

from models.records import HeatmapCell, TimeSeriesPoint

logger = logging.getLogger(__name__)

DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)
EMPTY_CELL_COLOR = "rgb(240, 240, 240)"
GAMMA = 0.7

CellKey = Tuple[int, int]


@dataclass(frozen=True)
class HeatmapScale:
    minimum: float
    maximum: float
    mean: float


@dataclass
class _Accumulator:
    events: int = 0
    samples: int = 0
    rate_sum: float = 0.0


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def day_and_hour(value: str) -> CellKey:
    moment = parse_timestamp(value)
    # isoweekday: Monday=1 .. Sunday=7
    return moment.isoweekday() % 7, moment.hour


def bin_heatmap(series: Iterable[TimeSeriesPoint]) -> Dict[CellKey, HeatmapCell]:
    """Fold time-series points into day/hour cells.

    A cell's rate is the plain mean of the per-bucket rates that fell into
    it, so every bucket counts equally whatever its event volume.
    """
    accumulators: Dict[CellKey, _Accumulator] = {}
    for point in series:
        try:
            key = day_and_hour(point.timestamp)
        except ValueError:
            logger.warning(
                "Skipping time-series point with unreadable timestamp",
                extra={"reason": point.timestamp},
            )
            continue
        accumulator = accumulators.setdefault(key, _Accumulator())
        accumulator.events += point.total
        accumulator.samples += 1
        accumulator.rate_sum += point.anomaly_rate

    return {
        key: HeatmapCell(
            day=key[0],
            hour=key[1],
            event_count=accumulator.events,
            sample_count=accumulator.samples,
            average_anomaly_rate=accumulator.rate_sum / accumulator.samples,
        )
        for key, accumulator in sorted(accumulators.items())
    }


def heatmap_scale(cells: Iterable[HeatmapCell]) -> Optional[HeatmapScale]:
    rates = [cell.average_anomaly_rate for cell in cells]
    if not rates:
        return None
    return HeatmapScale(minimum=min(rates), maximum=max(rates), mean=sum(rates) / len(rates))


def normalize(value: float, scale: HeatmapScale) -> float:
    """Gamma-corrected position of ``value`` within the scale, in ``[0, 1]``."""
    spread = scale.maximum - scale.minimum
    if spread <= 0:
        return 0.0
    position = min(max((value - scale.minimum) / spread, 0.0), 1.0)
    return position**GAMMA


def cell_color(value: Optional[float], scale: Optional[HeatmapScale]) -> str:
    if value is None or scale is None:
        return EMPTY_CELL_COLOR
    intensity = math.floor(255 * (1 - normalize(value, scale)))
    return f"rgb({intensity}, {intensity}, {min(255, intensity + 50)})"


def hottest_cells(cells: Sequence[HeatmapCell], limit: int = 5) -> list[HeatmapCell]:
    ranked = sorted(cells, key=lambda cell: (-cell.average_anomaly_rate, cell.day, cell.hour))
    return ranked[:limit]
