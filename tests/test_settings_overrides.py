from __future__ import annotations

from typing import Iterable

from datastore.analysis_store import build_default_store
from services.analysis import build_default_service
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("PREDICTION_API_URL", "http://backend.internal:9000/api/")
    monkeypatch.setenv("PREDICTION_API_TIMEOUT", "5")
    monkeypatch.setenv("DASHBOARD_SAMPLE_SIZE", "100")
    monkeypatch.setenv("DASHBOARD_SMOOTHING_WINDOW", "0")
    monkeypatch.setenv("DASHBOARD_TREND_WINDOW", "12")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_store, build_default_service)
    _clear_caches(caches)

    settings = get_settings()
    service = build_default_service()

    try:
        assert settings.prediction_api_url == "http://backend.internal:9000/api"
        assert settings.prediction_api_timeout == 5.0
        assert settings.default_sample_size == 100
        assert settings.default_smoothing_window == 0
        assert settings.default_trend_window == 12
        assert settings.log_level == "DEBUG"
        assert service.client.base_url == "http://backend.internal:9000/api"
        assert service.store is build_default_store()
    finally:
        service.shutdown()
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PREDICTION_API_URL", "   ")
    monkeypatch.setenv("PREDICTION_API_TIMEOUT", "-3")
    monkeypatch.setenv("DASHBOARD_SAMPLE_SIZE", "many")
    monkeypatch.setenv("DASHBOARD_SMOOTHING_WINDOW", "-1")
    monkeypatch.delenv("DASHBOARD_TREND_WINDOW", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.prediction_api_url == "http://127.0.0.1:4000/api"
        assert settings.prediction_api_timeout == 30.0
        assert settings.default_sample_size == 50
        assert settings.default_smoothing_window == 5
        assert settings.default_trend_window == 24
        assert settings.log_level == "INFO"
    finally:
        get_settings.cache_clear()


def test_unsupported_sample_size_falls_back_to_default(monkeypatch) -> None:
    monkeypatch.setenv("DASHBOARD_SAMPLE_SIZE", "30")
    get_settings.cache_clear()

    try:
        assert get_settings().default_sample_size == 50
    finally:
        get_settings.cache_clear()
