from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_INSTALLATION_ID_ENV = "GLOF_INSTALLATION_ID"
_CLASSIFIER_URL_ENV = "CLASSIFIER_BASE_URL"
_GEOCODER_URL_ENV = "GEOCODER_BASE_URL"
_OUTBOUND_TIMEOUT_ENV = "OUTBOUND_TIMEOUT_SECONDS"
_DEFAULT_WINDOW_ENV = "DEFAULT_SERIES_WINDOW"
_WORKER_COUNT_ENV = "PIPELINE_WORKER_COUNT"
_FEED_PATH_ENV = "TELEMETRY_FEED_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_KNOWN_WINDOWS = ("hour", "day", "week", "all")


@dataclass(frozen=True)
class Settings:
    installation_id: str
    classifier_base_url: str
    geocoder_base_url: str
    outbound_timeout: float
    default_window: str
    pipeline_workers: int
    feed_persistence_path: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timeout(default: float) -> float:
    value = os.getenv(_OUTBOUND_TIMEOUT_ENV)
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


def _read_window(default: str) -> str:
    candidate = _read_str_env(_DEFAULT_WINDOW_ENV, default).lower()
    return candidate if candidate in _KNOWN_WINDOWS else default


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
        installation_id=_read_str_env(_INSTALLATION_ID_ENV, "default"),
        classifier_base_url=_read_str_env(_CLASSIFIER_URL_ENV, "http://localhost:8001").rstrip("/"),
        geocoder_base_url=_read_str_env(
            _GEOCODER_URL_ENV, "https://nominatim.openstreetmap.org"
        ).rstrip("/"),
        outbound_timeout=_read_timeout(10.0),
        default_window=_read_window("all"),
        pipeline_workers=_read_worker_count(2),
        feed_persistence_path=_read_optional_env(_FEED_PATH_ENV, "./tmp/telemetry_feed.json"),
        log_level=_read_log_level("INFO"),
    )
