"""Unit tests for derived trend projection."""

from __future__ import annotations

import math

from models.readings import SensorReading
from services.metrics import MetricsEngine, magnitude, utc_time_label


def test_project_empty_iterable_returns_empty_trends() -> None:
    projection = MetricsEngine().project([])

    assert projection.float_trend == ()
    assert projection.shore_trend == ()
    assert projection.gyro_trend == ()


def test_project_builds_points_in_input_order() -> None:
    readings = [
        SensorReading(
            timestamp=60,
            float_temperature=1.5,
            float_humidity=80.0,
            float_water_temperature=0.5,
            shore_temperature=3.0,
            shore_humidity=70.0,
            shore_vibration=0.02,
            float_x_axis=3.0,
            float_y_axis=4.0,
            float_z_axis=12.0,
        ),
        SensorReading(timestamp=120),
    ]

    projection = MetricsEngine().project(readings)

    first_float, second_float = projection.float_trend
    assert (first_float.temperature, first_float.humidity, first_float.water_temperature) == (1.5, 80.0, 0.5)
    assert (second_float.temperature, second_float.humidity, second_float.water_temperature) == (0.0, 0.0, 0.0)

    first_shore = projection.shore_trend[0]
    assert (first_shore.temperature, first_shore.humidity, first_shore.vibration) == (3.0, 70.0, 0.02)

    assert [point.magnitude for point in projection.gyro_trend] == [13.0, 0.0]
    assert [point.timestamp for point in projection.gyro_trend] == [60, 120]
    assert projection.float_trend[0].time == "1970-01-01 00:01:00"


def test_magnitude_zero_fills_missing_axes() -> None:
    assert magnitude(SensorReading(timestamp=1)) == 0.0
    assert magnitude(SensorReading(timestamp=1, float_x_axis=-3.0)) == 3.0
    assert math.isclose(
        magnitude(SensorReading(timestamp=1, float_x_axis=-1.0, float_z_axis=-1.0)), math.sqrt(2)
    )


def test_project_uses_caller_label() -> None:
    projection = MetricsEngine().project([SensorReading(timestamp=7)], label=lambda ts: f"t{ts}")

    assert projection.gyro_trend[0].time == "t7"
    assert projection.shore_trend[0].time == "t7"


def test_utc_labels_sort_like_timestamps() -> None:
    timestamps = [1_600_000_000, 1_700_000_000, 1_699_999_999]

    labels = [utc_time_label(ts) for ts in timestamps]

    assert sorted(labels) == [utc_time_label(ts) for ts in sorted(timestamps)]
