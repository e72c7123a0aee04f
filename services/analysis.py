"""Upload orchestration for training and prediction runs."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterator, Optional
from uuid import uuid4

from datastore.analysis_store import AnalysisStore, build_default_store
from models.analysis import AnalysisSnapshot, AnalysisStatus
from services.aggregator import AggregationResult, Aggregator
from services.payload import ParsedBatch, parse_batch_response
from services.prediction_client import (
    PredictionClient,
    PredictionServiceError,
    SinglePredictionRequest,
)
from settings import get_settings

logger = logging.getLogger(__name__)


class UploadInProgressError(Exception):
    """Another upload is still waiting on the backend."""


class AnalysisService:
    """Coordinates the backend client, aggregation and the current snapshot."""

    def __init__(
        self,
        client: PredictionClient,
        store: AnalysisStore,
        aggregator: Aggregator,
    ) -> None:
        self.client = client
        self.store = store
        self.aggregator = aggregator
        self._upload_lock = Lock()

    def run_batch(self, filename: Optional[str], contents: bytes) -> AnalysisSnapshot:
        """Send a CSV for prediction and replace the current snapshot with the result."""
        name = Path(filename or "upload.csv").name
        if not contents:
            raise ValueError("Uploaded file is empty.")

        with self._single_flight(name):
            self.store.clear()
            start_time = time.perf_counter()
            body = self.client.predict_batch(name, contents)
            snapshot = self.build_snapshot(name, body)
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            snapshot = replace(snapshot, elapsed_ms=elapsed_ms)
            self.store.put(snapshot)

        logger.info(
            "Analysis ready",
            extra={
                "analysis_id": snapshot.analysis_id,
                "status": snapshot.status.value,
                "record_count": len(snapshot.records),
                "error_count": len(snapshot.errors),
                "elapsed_ms": elapsed_ms,
            },
        )
        return snapshot

    def build_snapshot(self, filename: str, body: Dict[str, Any]) -> AnalysisSnapshot:
        try:
            parsed = parse_batch_response(body)
        except ValueError as exc:
            logger.warning("Unusable prediction response", extra={"reason": str(exc)})
            parsed = ParsedBatch()
            aggregation = AggregationResult.unavailable(str(exc))
        else:
            aggregation = self.aggregator.aggregate(
                parsed.records,
                parsed.timestamps,
                parsed.location_summaries,
            )

        if not aggregation.available:
            status = AnalysisStatus.failed
        elif parsed.errors or aggregation.issues:
            status = AnalysisStatus.partial
        else:
            status = AnalysisStatus.processed

        return AnalysisSnapshot(
            analysis_id=str(uuid4()),
            filename=filename,
            status=status,
            created_at=datetime.now(timezone.utc),
            records=parsed.records,
            timestamps=parsed.timestamps,
            total_devices=parsed.total_devices,
            total_anomalies=parsed.total_anomalies,
            aggregation=aggregation,
            errors=parsed.errors,
        )

    def train(self, filename: Optional[str], contents: bytes) -> Dict[str, Any]:
        name = Path(filename or "upload.csv").name
        if not contents:
            raise ValueError("Uploaded file is empty.")
        with self._single_flight(name):
            return self.client.train_model(name, contents)

    def predict_single(self, request: SinglePredictionRequest) -> bool:
        return self.client.predict_single(request)

    def fetch(self, analysis_id: str) -> AnalysisSnapshot:
        snapshot = self.store.get(analysis_id)
        if snapshot is None:
            raise KeyError(f"Analysis {analysis_id!r} not found.")
        return snapshot

    def current(self) -> Optional[AnalysisSnapshot]:
        return self.store.current()

    def reset(self) -> None:
        self.store.clear()

    def shutdown(self) -> None:
        self.client.close()

    @contextmanager
    def _single_flight(self, name: str) -> Iterator[None]:
        """Reject a second upload while one is still waiting on the backend."""
        if not self._upload_lock.acquire(blocking=False):
            logger.info("Rejected concurrent upload", extra={"upload_name": name})
            raise UploadInProgressError("An upload is already in progress.")
        try:
            yield
        except PredictionServiceError as exc:
            logger.warning(
                "Prediction backend request failed",
                extra={"upload_name": name, "reason": str(exc)},
            )
            raise
        finally:
            self._upload_lock.release()


@lru_cache
def build_default_service() -> AnalysisService:
    """Factory that wires the service with the configured backend."""
    settings = get_settings()
    client = PredictionClient(
        base_url=settings.prediction_api_url,
        timeout=settings.prediction_api_timeout,
    )
    return AnalysisService(client=client, store=build_default_store(), aggregator=Aggregator())
