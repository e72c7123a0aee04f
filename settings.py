from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_API_URL_ENV = "PREDICTION_API_URL"
_API_TIMEOUT_ENV = "PREDICTION_API_TIMEOUT"
_SAMPLE_SIZE_ENV = "DASHBOARD_SAMPLE_SIZE"
_SMOOTHING_WINDOW_ENV = "DASHBOARD_SMOOTHING_WINDOW"
_TREND_WINDOW_ENV = "DASHBOARD_TREND_WINDOW"
_LOG_LEVEL_ENV = "LOG_LEVEL"

SAMPLE_SIZE_CHOICES = (10, 20, 50, 100, 200, 500)


@dataclass(frozen=True)
class Settings:
    prediction_api_url: str
    prediction_api_timeout: float
    default_sample_size: int
    default_smoothing_window: int
    default_trend_window: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_int_env(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_choice_env(name: str, default: int, choices: tuple[int, ...]) -> int:
    parsed = _read_int_env(name, default)
    return parsed if parsed in choices else default


def _read_timeout(default: float) -> float:
    value = os.getenv(_API_TIMEOUT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        prediction_api_url=_read_str_env(_API_URL_ENV, "http://127.0.0.1:4000/api").rstrip("/"),
        prediction_api_timeout=_read_timeout(30.0),
        default_sample_size=_read_choice_env(_SAMPLE_SIZE_ENV, 50, SAMPLE_SIZE_CHOICES),
        default_smoothing_window=_read_int_env(_SMOOTHING_WINDOW_ENV, 5, minimum=0),
        default_trend_window=_read_int_env(_TREND_WINDOW_ENV, 24),
        log_level=_read_log_level("INFO"),
    )
