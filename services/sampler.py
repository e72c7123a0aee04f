"""Deterministic downsampling for chart display."""

from __future__ import annotations

from typing import List, Sequence, TypeVar

T = TypeVar("T")


def sample(records: Sequence[T], target_size: int) -> List[T]:
    """Keep every ``len // target_size``-th record, at most ``target_size`` of them."""
    if target_size < 1:
        raise ValueError("Sample size must be at least 1.")
    if len(records) <= target_size:
        return list(records)
    step = len(records) // target_size
    return list(records[::step][:target_size])
