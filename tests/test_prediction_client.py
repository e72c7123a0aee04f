from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from services.prediction_client import (
    CONNECTION_ERROR_MESSAGE,
    PredictionClient,
    PredictionServiceError,
    SinglePredictionRequest,
)


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> PredictionClient:
    return PredictionClient("http://backend.test/api/", transport=httpx.MockTransport(handler))


def test_predict_batch_posts_file_and_returns_body() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        seen.append(request)
        return httpx.Response(200, json={"data": {"devices": []}})

    client = _client(handler)
    try:
        body = client.predict_batch("locks.csv", b"device_id\nlock-1\n")
    finally:
        client.close()

    assert body == {"data": {"devices": []}}
    assert seen[0].url == "http://backend.test/api/predict"
    assert b'filename="locks.csv"' in seen[0].content
    assert b"lock-1" in seen[0].content


def test_backend_error_field_becomes_message() -> None:
    client = _client(lambda request: httpx.Response(400, json={"error": "Model not trained"}))

    with pytest.raises(PredictionServiceError, match="Model not trained"):
        client.predict_batch("locks.csv", b"x")


def test_non_json_error_falls_back_to_default_message() -> None:
    client = _client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(PredictionServiceError, match="Failed to make predictions"):
        client.predict_batch("locks.csv", b"x")


def test_non_object_body_is_rejected() -> None:
    client = _client(lambda request: httpx.Response(200, json=[1, 2, 3]))

    with pytest.raises(PredictionServiceError, match="Failed to make predictions"):
        client.predict_batch("locks.csv", b"x")


def test_unreachable_backend_reports_connection_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(PredictionServiceError) as excinfo:
        client.predict_single(
            SinglePredictionRequest("lock-1", "lock", "2024-01-01T09:00", "L1", "O1", "R1")
        )

    assert str(excinfo.value) == CONNECTION_ERROR_MESSAGE


def test_train_model_rejects_blank_file_without_request() -> None:
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"status": "success"})

    client = _client(handler)

    with pytest.raises(ValueError, match="File is empty"):
        client.train_model("train.csv", b"  \n\n")
    assert calls == []


def test_train_model_uploads_as_data_csv() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        seen.append(request)
        return httpx.Response(200, json={"status": "success", "message": "done"})

    client = _client(handler)

    payload = client.train_model("my-training.csv", b"a,b\n1,2\n")

    assert payload["message"] == "done"
    assert seen[0].url.path == "/api/train"
    assert b'filename="data.csv"' in seen[0].content


def test_train_model_non_success_status_is_an_error() -> None:
    client = _client(lambda request: httpx.Response(200, json={"status": "error", "message": "bad labels"}))

    with pytest.raises(PredictionServiceError, match="bad labels"):
        client.train_model("train.csv", b"a,b\n1,2\n")


def test_predict_single_sends_fixed_device_fields() -> None:
    seen: List[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.read()))
        return httpx.Response(200, json={"is_anomaly": True})

    client = _client(handler)

    result = client.predict_single(
        SinglePredictionRequest("lock-1", "unlock", "2024-01-01T03:00", "L1", "O1", "R1")
    )

    assert result is True
    assert seen[0]["device_id"] == "lock-1"
    assert seen[0]["locationId"] == "L1"
    assert seen[0]["name"] == "VirtualSTS Lock 2"
    assert seen[0]["DeviceStatus"] == "online"
    assert seen[0]["manufacturerName"] == "SmartThingsCommunity"
