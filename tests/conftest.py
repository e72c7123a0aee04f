from __future__ import annotations

from typing import Any, Dict, List

import pytest

from services.prediction_client import PredictionServiceError, SinglePredictionRequest


def make_batch_body(predictions: List[int], locations: List[str] | None = None) -> Dict[str, Any]:
    """Backend ``/predict`` body with one device per prediction and hourly timestamps."""
    locations = locations or ["L1"] * len(predictions)
    devices = [
        {
            "device_id": f"device-{index}",
            "location_id": locations[index],
            "lock_status": "lock" if index % 2 == 0 else "unlock",
            "timestamp": f"2024-01-01T{index % 24:02d}:00:00",
            "prediction": prediction,
        }
        for index, prediction in enumerate(predictions)
    ]
    return {
        "data": {
            "devices": devices,
            "timestamps": [f"2024-01-01T{hour:02d}:00:00" for hour in range(2)],
            "total_devices": len(devices),
            "total_anomalies": sum(predictions),
        }
    }


class StubPredictionClient:
    """Stands in for ``PredictionClient`` without any network access."""

    def __init__(self, body: Dict[str, Any] | None = None) -> None:
        self.body = body if body is not None else make_batch_body([0, 1, 0, 1])
        self.batch_calls: List[tuple[str, bytes]] = []
        self.train_calls: List[tuple[str, bytes]] = []
        self.single_requests: List[SinglePredictionRequest] = []
        self.error: PredictionServiceError | None = None
        self.is_anomaly = True
        self.training_payload: Dict[str, Any] = {
            "status": "success",
            "message": "Model trained",
            "visualization_data": {
                "hourly_activity": {"labels": [0, 1], "normal": [5, 3], "anomaly": [1]},
                "time_periods": {"labels": ["night", "day"], "data": [4, 9]},
            },
        }
        self.closed = False

    def predict_batch(self, filename: str, contents: bytes) -> Dict[str, Any]:
        self.batch_calls.append((filename, contents))
        if self.error is not None:
            raise self.error
        return self.body

    def train_model(self, filename: str, contents: bytes) -> Dict[str, Any]:
        self.train_calls.append((filename, contents))
        if self.error is not None:
            raise self.error
        return self.training_payload

    def predict_single(self, request: SinglePredictionRequest) -> bool:
        self.single_requests.append(request)
        if self.error is not None:
            raise self.error
        return self.is_anomaly

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def stub_client() -> StubPredictionClient:
    return StubPredictionClient()
