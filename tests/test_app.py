import time
from typing import Dict, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from feeds.mock_feed import MockTelemetryFeed, build_default_feed
from services.classifier import ClassificationClient
from services.geocoder import LocationLookup
from services.registry import PipelineRegistry, build_default_registry
from settings import get_settings

NOW = int(time.time())


def _model_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"probabilities": [0.1, 0.2, 0.7]})


def _geo_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"display_name": "Passu Lake, Gojal, Pakistan"})


@pytest.fixture
def api_client(tmp_path, monkeypatch) -> Iterator[TestClient]:
    registries: Dict[int, PipelineRegistry] = {}

    def build_test_registry(workers: int | None = None) -> PipelineRegistry:
        worker_count = workers or 1
        registry = registries.get(worker_count)
        if registry is None:
            registry = PipelineRegistry(
                feed=MockTelemetryFeed(persistence_path=tmp_path / "feed.json"),
                classifier=ClassificationClient(
                    base_url="http://model.test", transport=httpx.MockTransport(_model_handler)
                ),
                geocoder=LocationLookup(
                    base_url="http://geo.test", transport=httpx.MockTransport(_geo_handler)
                ),
                workers=worker_count,
            )
            registries[worker_count] = registry
        return registry

    def cache_clear() -> None:
        while registries:
            _, registry = registries.popitem()
            registry.shutdown()

    build_test_registry.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_registry", build_test_registry)
    monkeypatch.setattr("app.api.build_default_registry", build_test_registry)

    app = create_app()
    with TestClient(app) as client:
        yield client

    cache_clear()


def test_lifespan_shuts_down_registry_and_clears_cache(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TELEMETRY_FEED_PATH", str(tmp_path / "feed.json"))
    monkeypatch.setenv("GLOF_INSTALLATION_ID", "shisper")
    get_settings.cache_clear()
    build_default_feed.cache_clear()
    app = create_app()

    with TestClient(app) as client:
        registry_during = build_default_registry()
        assert registry_during.installations() == ["shisper"]
        assert client.get("/installations/shisper/view").json()["state"] == "idle"
        pipeline = registry_during.get_or_create("lake-1")

    registry_after = build_default_registry()
    try:
        assert registry_after is not registry_during
        assert pipeline.executor._shutdown is True
    finally:
        registry_after.shutdown()
        build_default_registry.cache_clear()
        build_default_feed.cache_clear()
        get_settings.cache_clear()


def _wait_for(client: TestClient, installation_id: str, predicate, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    last_payload: dict | None = None
    while time.monotonic() < deadline:
        response = client.get(f"/installations/{installation_id}/view")
        assert response.status_code == 200
        last_payload = response.json()
        if predicate(last_payload):
            return last_payload
        time.sleep(0.05)
    pytest.fail(f"View for {installation_id} never matched: {last_payload}")


def test_start_push_and_view(api_client: TestClient) -> None:
    response = api_client.post("/installations/lake-1/pipeline/start")
    assert response.status_code == 200
    assert response.json() == {"installation_id": "lake-1", "state": "subscribed", "window": "all"}

    for offset, temperature in ((7200, "1.0"), (60, "2.0")):
        response = api_client.put(
            f"/installations/lake-1/readings/{NOW - offset}",
            json={"floatTemperature": temperature, "floatLatitude": "36.3", "floatLongitude": "74.8"},
        )
        assert response.status_code == 202

    payload = _wait_for(
        api_client,
        "lake-1",
        lambda view: view["risk"]["level"] == "high" and view["location_name"] == "Passu Lake",
    )

    assert payload["latest"]["timestamp"] == NOW - 60
    assert payload["latest"]["fields"]["floatTemperature"] == 2.0
    assert payload["latest"]["display"]["floatHumidity"] == "N/A"
    assert "floatLatitude" not in payload["latest"]["fields"]
    assert payload["risk"]["color"] == "bg-red-500"
    assert payload["risk"]["probabilities"] == [0.1, 0.2, 0.7]
    assert [point["temperature"] for point in payload["float_trend"]] == [1.0, 2.0]
    assert payload["generation"] == 2


def test_window_change_reprojects(api_client: TestClient) -> None:
    api_client.post("/installations/lake-1/pipeline/start")
    api_client.put(f"/installations/lake-1/readings/{NOW - 7200}", json={})
    api_client.put(f"/installations/lake-1/readings/{NOW - 60}", json={})

    response = api_client.put("/installations/lake-1/pipeline/window", json={"window": "hour"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["window"] == "hour"
    assert len(payload["gyro_trend"]) == 1


def test_invalid_window_is_rejected(api_client: TestClient) -> None:
    api_client.post("/installations/lake-1/pipeline/start")

    response = api_client.put("/installations/lake-1/pipeline/window", json={"window": "month"})

    assert response.status_code == 422


def test_start_twice_conflicts(api_client: TestClient) -> None:
    assert api_client.post("/installations/lake-1/pipeline/start").status_code == 200

    response = api_client.post("/installations/lake-1/pipeline/start")

    assert response.status_code == 409


def test_stop_then_restart(api_client: TestClient) -> None:
    api_client.post("/installations/lake-1/pipeline/start", json={"window": "week"})

    response = api_client.post("/installations/lake-1/pipeline/stop")

    assert response.status_code == 200
    assert response.json()["state"] == "idle"
    assert api_client.post("/installations/lake-1/pipeline/start").json()["window"] == "week"


def test_unknown_installation_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/installations/missing/view")

    assert response.status_code == 404
    assert "missing" in response.json()["detail"]


def test_non_numeric_timestamp_is_rejected(api_client: TestClient) -> None:
    response = api_client.put("/installations/lake-1/readings/yesterday", json={})

    assert response.status_code == 400


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
