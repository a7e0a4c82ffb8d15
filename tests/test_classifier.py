"""Unit tests for the classification client."""

from __future__ import annotations

import json
from typing import Any, List

import httpx
import pytest

from models.readings import RiskLevel, SensorReading
from services.classifier import ClassificationClient, assess, build_features, parse_prediction
from services.errors import PredictionFormatError, PredictionTransportError


def _client(handler) -> ClassificationClient:
    return ClassificationClient(base_url="http://model.test", transport=httpx.MockTransport(handler))


def _respond(payload: Any, status_code: int = 200):
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json=payload)

    return handler, requests


def test_build_features_uses_fixed_order_and_zero_fill() -> None:
    reading = SensorReading(
        timestamp=1,
        float_temperature=1.0,
        float_humidity=2.0,
        float_water_temperature=3.0,
        float_altitude=4.0,
        float_x_axis=5.0,
        float_y_axis=None,
        float_z_axis=7.0,
        shore_temperature=8.0,
        shore_humidity=99.0,
        shore_vibration=9.0,
        float_velocity=None,
    )

    features = build_features(reading)

    assert features == [1.0, 2.0, 3.0, 4.0, 5.0, 0.0, 7.0, 8.0, 9.0, 0.0]
    assert reading.float_y_axis is None


@pytest.mark.parametrize(
    ("probabilities", "expected"),
    [
        ([0.4, 0.4, 0.2], RiskLevel.low),
        ([0.1, 0.1, 0.8], RiskLevel.high),
        ([0.2, 0.4, 0.4], RiskLevel.medium),
        ([0.1, 0.7, 0.2], RiskLevel.medium),
        ([1 / 3, 1 / 3, 1 / 3], RiskLevel.low),
    ],
)
def test_assess_picks_first_maximum(probabilities, expected) -> None:
    assert assess(probabilities).level is expected


@pytest.mark.parametrize(
    "payload",
    [
        {"probabilities": [0.5, 0.5]},
        {"probabilities": [0.2, 0.2, 0.2, 0.4]},
        {"probabilities": "0.1,0.2,0.7"},
        {"probabilities": [0.1, "high", 0.7]},
        {"probabilities": [True, False, False]},
        {"prediction": [0.1, 0.2, 0.7]},
        [0.1, 0.2, 0.7],
    ],
)
def test_parse_prediction_rejects_malformed_payloads(payload) -> None:
    with pytest.raises(PredictionFormatError):
        parse_prediction(payload)


def test_classify_posts_features_and_maps_response() -> None:
    handler, requests = _respond({"probabilities": [0.1, 0.1, 0.8]})
    client = _client(handler)

    assessment = client.classify(SensorReading(timestamp=1, float_temperature=2.5))

    assert assessment.level is RiskLevel.high
    assert assessment.color == "bg-red-500"
    assert assessment.source_probabilities == (0.1, 0.1, 0.8)
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/predict"
    assert json.loads(request.content) == {"features": [2.5] + [0.0] * 9}
    client.close()


def test_classify_wraps_transport_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(PredictionTransportError):
        client.classify(SensorReading(timestamp=1))


def test_classify_treats_error_status_as_transport_failure() -> None:
    handler, _ = _respond({"detail": "boom"}, status_code=503)
    client = _client(handler)

    with pytest.raises(PredictionTransportError):
        client.classify(SensorReading(timestamp=1))


def test_classify_rejects_non_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    client = _client(handler)

    with pytest.raises(PredictionFormatError):
        client.classify(SensorReading(timestamp=1))


def test_risk_levels_all_have_colors() -> None:
    colors = {level: level.color for level in RiskLevel}

    assert colors == {
        RiskLevel.low: "bg-green-500",
        RiskLevel.medium: "bg-yellow-500",
        RiskLevel.high: "bg-red-500",
    }
    assert [RiskLevel.from_index(i) for i in range(3)] == [RiskLevel.low, RiskLevel.medium, RiskLevel.high]
