"""Client for the hosted hazard classification model."""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence

import httpx

from models.readings import RiskAssessment, RiskLevel, SensorReading
from services.errors import PredictionFormatError, PredictionTransportError

# Order is part of the model contract.
FEATURE_FIELDS = (
    "float_temperature",
    "float_humidity",
    "float_water_temperature",
    "float_altitude",
    "float_x_axis",
    "float_y_axis",
    "float_z_axis",
    "shore_temperature",
    "shore_vibration",
    "float_velocity",
)

PREDICT_PATH = "/predict"


def build_features(reading: SensorReading) -> List[float]:
    return [reading.value_or_zero(name) for name in FEATURE_FIELDS]


def _is_probability(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def assess(probabilities: Sequence[float]) -> RiskAssessment:
    """Pick the most likely level; the lowest index wins ties."""
    best_index = 0
    for index, probability in enumerate(probabilities):
        if probability > probabilities[best_index]:
            best_index = index
    return RiskAssessment(
        level=RiskLevel.from_index(best_index),
        source_probabilities=tuple(float(p) for p in probabilities),
    )


def parse_prediction(payload: Any) -> RiskAssessment:
    if not isinstance(payload, dict):
        raise PredictionFormatError(f"Expected a JSON object, got {type(payload).__name__}.")
    probabilities = payload.get("probabilities")
    if not isinstance(probabilities, list) or len(probabilities) != len(RiskLevel):
        raise PredictionFormatError(f"Invalid probabilities format: {payload!r}")
    if not all(_is_probability(value) for value in probabilities):
        raise PredictionFormatError(f"Non-numeric probabilities: {probabilities!r}")
    return assess(probabilities)


class ClassificationClient:
    """Stateless per call: every request is derived from the reading it is given."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def classify(self, latest: SensorReading) -> RiskAssessment:
        features = build_features(latest)
        try:
            response = self._client.post(PREDICT_PATH, json={"features": features})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PredictionTransportError(f"Classification request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise PredictionFormatError("Classification response is not valid JSON.") from exc
        return parse_prediction(payload)
