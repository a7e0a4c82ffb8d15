from __future__ import annotations

from typing import Iterable

from feeds.mock_feed import build_default_feed
from models.readings import SeriesWindow
from services.registry import build_default_registry
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    feed_path = tmp_path / "feed.json"

    monkeypatch.setenv("GLOF_INSTALLATION_ID", " shisper ")
    monkeypatch.setenv("CLASSIFIER_BASE_URL", "http://model.internal:9000/")
    monkeypatch.setenv("GEOCODER_BASE_URL", "http://geo.internal")
    monkeypatch.setenv("OUTBOUND_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("DEFAULT_SERIES_WINDOW", "HOUR")
    monkeypatch.setenv("PIPELINE_WORKER_COUNT", "3")
    monkeypatch.setenv("TELEMETRY_FEED_PATH", str(feed_path))

    caches = (get_settings, build_default_feed, build_default_registry)
    _clear_caches(caches)

    settings = get_settings()
    registry = build_default_registry()

    try:
        assert settings.installation_id == "shisper"
        assert registry.classifier.base_url == "http://model.internal:9000"
        assert registry.geocoder.base_url == "http://geo.internal"
        assert registry.default_window is SeriesWindow.hour
        assert registry.workers == 3
        assert registry.feed.persistence_path == feed_path
        pipeline = registry.get_or_create("shisper")
        assert pipeline.executor._max_workers == 3
        assert pipeline.window is SeriesWindow.hour
    finally:
        registry.shutdown()
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("DEFAULT_SERIES_WINDOW", "month")
    monkeypatch.setenv("PIPELINE_WORKER_COUNT", "-1")
    monkeypatch.setenv("OUTBOUND_TIMEOUT_SECONDS", "soon")
    monkeypatch.setenv("TELEMETRY_FEED_PATH", "  ")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.default_window == "all"
        assert settings.pipeline_workers == 2
        assert settings.outbound_timeout == 10.0
        assert settings.feed_persistence_path is None
    finally:
        get_settings.cache_clear()
