from __future__ import annotations

from functools import lru_cache
from threading import Lock
from typing import Optional

from models.analysis import AnalysisSnapshot


class AnalysisStore:
    """Holds the snapshot of the most recent analysis, and nothing else.

    Results are never persisted: a new upload replaces the previous snapshot
    and a reset discards it.
    """

    def __init__(self) -> None:
        self._current: Optional[AnalysisSnapshot] = None
        self._lock = Lock()

    def put(self, snapshot: AnalysisSnapshot) -> None:
        with self._lock:
            self._current = snapshot

    def get(self, analysis_id: str) -> Optional[AnalysisSnapshot]:
        with self._lock:
            if self._current is None or self._current.analysis_id != analysis_id:
                return None
            return self._current

    def current(self) -> Optional[AnalysisSnapshot]:
        with self._lock:
            return self._current

    def clear(self) -> None:
        with self._lock:
            self._current = None


@lru_cache
def build_default_store() -> AnalysisStore:
    return AnalysisStore()
