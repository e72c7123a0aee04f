from __future__ import annotations

from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from conftest import StubPredictionClient, make_batch_body
from datastore.analysis_store import AnalysisStore
from services.aggregator import Aggregator
from services.analysis import AnalysisService
from services.prediction_client import PredictionServiceError
from settings import get_settings


@pytest.fixture
def stub_backend() -> StubPredictionClient:
    return StubPredictionClient(make_batch_body([1, 0, 1, 1]))


@pytest.fixture
def api_client(stub_backend, monkeypatch) -> Iterator[TestClient]:
    services: List[AnalysisService] = []

    def build_test_service() -> AnalysisService:
        if not services:
            services.append(
                AnalysisService(client=stub_backend, store=AnalysisStore(), aggregator=Aggregator())
            )
        return services[0]

    build_test_service.cache_clear = services.clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)
    monkeypatch.setattr("app.web.build_default_service", build_test_service)

    app = create_app()
    with TestClient(app) as client:
        yield client


def _upload(client: TestClient, contents: bytes = b"device_id,lock_status\nlock-1,lock\n"):
    return client.post("/analyses", files={"file": ("locks.csv", contents, "text/csv")})


def test_lifespan_shutdown_closes_client(stub_backend, monkeypatch) -> None:
    service = AnalysisService(client=stub_backend, store=AnalysisStore(), aggregator=Aggregator())

    def build_test_service() -> AnalysisService:
        return service

    build_test_service.cache_clear = lambda: None  # type: ignore[attr-defined]
    monkeypatch.setattr("app.main.build_default_service", build_test_service)

    with TestClient(create_app()):
        assert stub_backend.closed is False

    assert stub_backend.closed is True


def test_upload_then_fetch_analysis(api_client, stub_backend) -> None:
    response = _upload(api_client)

    assert response.status_code == 201
    payload = response.json()
    assert payload["status"] == "processed"
    assert payload["filename"] == "locks.csv"
    assert payload["record_count"] == 4
    assert payload["total_anomalies"] == 3
    assert stub_backend.batch_calls[0][0] == "locks.csv"

    fetched = api_client.get(f"/analyses/{payload['analysis_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["analysis_id"] == payload["analysis_id"]


def test_view_is_recomputed_from_query_parameters(api_client) -> None:
    analysis_id = _upload(api_client).json()["analysis_id"]

    response = api_client.get(
        f"/analyses/{analysis_id}/view",
        params={"sample_size": 10, "smoothing_window": 0, "sort_by": "total_events", "top": 2},
    )

    assert response.status_code == 200
    view = response.json()
    assert view["summary"]["total_devices"] == 4
    assert view["summary"]["anomaly_percentage"] == 75.0
    assert view["summary"]["rate_trend"]["display"] == "N/A"
    points = view["time_series"]["points"]
    assert [point["smoothed_anomaly_rate"] for point in points] == [50.0, 100.0]
    assert view["time_series"]["event_axis_max"] == 3
    assert len(view["devices"]) == 2
    assert {cell["color"] for cell in view["heatmap"]["cells"]} == {
        "rgb(255, 255, 255)",
        "rgb(0, 0, 50)",
    }
    assert len(view["sampled_records"]) == 4
    assert view["issues"] == {}


def test_view_rejects_unknown_sample_size(api_client) -> None:
    analysis_id = _upload(api_client).json()["analysis_id"]

    response = api_client.get(f"/analyses/{analysis_id}/view", params={"sample_size": 7})

    assert response.status_code == 422
    assert "sample_size" in response.json()["detail"]


def test_export_returns_csv(api_client) -> None:
    analysis_id = _upload(api_client).json()["analysis_id"]

    response = api_client.get(f"/analyses/{analysis_id}/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="predictions.csv"' in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "timestamp,device_id,location_id,lock_status,prediction"
    assert len(lines) == 5


def test_reset_discards_current_analysis(api_client) -> None:
    analysis_id = _upload(api_client).json()["analysis_id"]

    assert api_client.delete("/analyses/current").status_code == 204
    assert api_client.get(f"/analyses/{analysis_id}").status_code == 404


def test_superseded_analysis_is_gone(api_client) -> None:
    first = _upload(api_client).json()["analysis_id"]
    second = _upload(api_client).json()["analysis_id"]

    assert api_client.get(f"/analyses/{first}").status_code == 404
    assert api_client.get(f"/analyses/{second}/view").status_code == 200


def test_empty_upload_is_bad_request(api_client, stub_backend) -> None:
    response = _upload(api_client, contents=b"")

    assert response.status_code == 400
    assert stub_backend.batch_calls == []


def test_backend_failure_is_bad_gateway(api_client, stub_backend) -> None:
    stub_backend.error = PredictionServiceError("Model not trained")

    response = _upload(api_client)

    assert response.status_code == 502
    assert response.json()["detail"] == "Model not trained"


def test_train_returns_chart_rows(api_client, stub_backend) -> None:
    response = api_client.post(
        "/train", files={"file": ("train.csv", b"a,b\n1,2\n", "text/csv")}
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    assert payload["charts"]["hourly_activity"][0] == {"hour": "0:00", "normal": 5, "anomaly": 1}
    assert payload["charts"]["time_periods"][1] == {"period": "day", "count": 9}
    assert stub_backend.train_calls == [("train.csv", b"a,b\n1,2\n")]


def test_predict_single(api_client, stub_backend) -> None:
    stub_backend.is_anomaly = False

    response = api_client.post(
        "/predict-single",
        json={
            "device_id": "lock-1",
            "lock_status": "unlock",
            "timestamp": "2024-01-01T03:00",
            "locationId": "L1",
            "ownerId": "O1",
            "roomId": "R1",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"is_anomaly": False}
    request = stub_backend.single_requests[0]
    assert request.lock_status == "unlock"
    assert request.name == "VirtualSTS Lock 2"


def test_unknown_analysis_is_not_found(api_client) -> None:
    assert api_client.get("/analyses/missing").status_code == 404
    assert api_client.get("/analyses/missing/export").status_code == 404


def test_ui_renders_empty_and_loaded_states(api_client) -> None:
    empty = api_client.get("/ui")
    assert empty.status_code == 200
    assert "No results available" in empty.text

    _upload(api_client)
    loaded = api_client.get("/ui", params={"time_range": "all"})
    assert loaded.status_code == 200
    assert "Detailed results" in loaded.text
    assert "device-0" in loaded.text


def test_health_endpoints(api_client) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_view_tolerates_unsupported_sample_size_setting(api_client, monkeypatch) -> None:
    monkeypatch.setenv("DASHBOARD_SAMPLE_SIZE", "30")
    get_settings.cache_clear()
    try:
        analysis_id = _upload(api_client).json()["analysis_id"]

        view = api_client.get(f"/analyses/{analysis_id}/view")
        page = api_client.get("/ui")
    finally:
        get_settings.cache_clear()

    assert view.status_code == 200
    assert page.status_code == 200
