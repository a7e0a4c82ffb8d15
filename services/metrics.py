"""Derived chart series for windowed readings."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Iterable

from models.readings import (
    FloatTrendPoint,
    GyroTrendPoint,
    SensorReading,
    ShoreTrendPoint,
    TrendProjection,
)

TimeLabel = Callable[[int], str]


def utc_time_label(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def magnitude(reading: SensorReading) -> float:
    """Euclidean norm of the three axes, treating missing axes as zero."""
    return math.sqrt(
        reading.value_or_zero("float_x_axis") ** 2
        + reading.value_or_zero("float_y_axis") ** 2
        + reading.value_or_zero("float_z_axis") ** 2
    )


class MetricsEngine:
    """Pure projection component that can be unit tested in isolation."""

    def project(
        self, readings: Iterable[SensorReading], label: TimeLabel = utc_time_label
    ) -> TrendProjection:
        float_trend: list[FloatTrendPoint] = []
        shore_trend: list[ShoreTrendPoint] = []
        gyro_trend: list[GyroTrendPoint] = []

        for reading in readings:
            time_label = label(reading.timestamp)
            float_trend.append(
                FloatTrendPoint(
                    timestamp=reading.timestamp,
                    time=time_label,
                    temperature=reading.value_or_zero("float_temperature"),
                    humidity=reading.value_or_zero("float_humidity"),
                    water_temperature=reading.value_or_zero("float_water_temperature"),
                )
            )
            shore_trend.append(
                ShoreTrendPoint(
                    timestamp=reading.timestamp,
                    time=time_label,
                    temperature=reading.value_or_zero("shore_temperature"),
                    humidity=reading.value_or_zero("shore_humidity"),
                    vibration=reading.value_or_zero("shore_vibration"),
                )
            )
            gyro_trend.append(
                GyroTrendPoint(
                    timestamp=reading.timestamp,
                    time=time_label,
                    magnitude=magnitude(reading),
                )
            )

        return TrendProjection(
            float_trend=tuple(float_trend),
            shore_trend=tuple(shore_trend),
            gyro_trend=tuple(gyro_trend),
        )
