"""HTTP client for the remote training and prediction backend."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = (
    "Unable to connect to the server. Please ensure the server is running."
)


class PredictionServiceError(Exception):
    """The backend could not be reached or refused the request."""


@dataclass
class SinglePredictionRequest:
    """Form fields the backend expects for a one-off prediction."""

    device_id: str
    lock_status: str
    timestamp: str
    locationId: str
    ownerId: str
    roomId: str
    name: str = "VirtualSTS Lock 2"
    DeviceStatus: str = "online"
    manufacturerName: str = "SmartThingsCommunity"

    def to_payload(self) -> Dict[str, str]:
        return asdict(self)


class PredictionClient:
    """Minimal HTTP client for the anomaly-detection backend."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def train_model(self, filename: str, contents: bytes) -> Dict[str, Any]:
        """Upload a training CSV and return the backend's training report."""
        text = contents.decode("utf-8")
        if not text.strip().splitlines():
            raise ValueError("File is empty")

        logger.info("Uploading training data", extra={"upload_name": filename})
        payload = self._post(
            "/train",
            default_error="Failed to train model",
            files={"file": ("data.csv", text.encode("utf-8"), "text/csv")},
        )
        if payload.get("status") != "success":
            raise PredictionServiceError(payload.get("message") or "Training failed")
        return payload

    def predict_batch(self, filename: str, contents: bytes) -> Dict[str, Any]:
        logger.info("Requesting batch prediction", extra={"upload_name": filename})
        return self._post(
            "/predict",
            default_error="Failed to make predictions",
            files={"file": (filename, contents, "text/csv")},
        )

    def predict_single(self, request: SinglePredictionRequest) -> bool:
        payload = self._post(
            "/predict-single",
            default_error="Failed to make prediction",
            json=request.to_payload(),
        )
        return bool(payload.get("is_anomaly"))

    def _post(self, path: str, default_error: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.post(path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PredictionServiceError(self._error_detail(exc.response, default_error)) from exc
        except httpx.TransportError as exc:
            logger.warning(
                "Prediction backend unreachable", extra={"reason": exc.__class__.__name__}
            )
            raise PredictionServiceError(CONNECTION_ERROR_MESSAGE) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise PredictionServiceError(default_error) from exc
        if not isinstance(payload, dict):
            raise PredictionServiceError(default_error)
        return payload

    @staticmethod
    def _error_detail(response: httpx.Response, default: str) -> str:
        try:
            data = response.json()
        except ValueError:
            return default
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return default
