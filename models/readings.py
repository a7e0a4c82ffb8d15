"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

UNKNOWN = "N/A"


@dataclass(frozen=True, slots=True)
class SensorField:
    """Binding between a raw telemetry key and its typed attribute."""

    raw_key: str
    attribute: str
    precision: int


SENSOR_FIELDS: Tuple[SensorField, ...] = (
    SensorField("floatAltitude", "float_altitude", 0),
    SensorField("floatHumidity", "float_humidity", 1),
    SensorField("floatTemperature", "float_temperature", 1),
    SensorField("floatWaterTemperature", "float_water_temperature", 1),
    SensorField("floatX-Axis", "float_x_axis", 3),
    SensorField("floatY-Axis", "float_y_axis", 3),
    SensorField("floatZ-Axis", "float_z_axis", 3),
    SensorField("shoreTemperature", "shore_temperature", 1),
    SensorField("shoreHumidity", "shore_humidity", 1),
    SensorField("shoreVibration", "shore_vibration", 3),
    SensorField("floatVelocity", "float_velocity", 2),
)

FIELDS_BY_ATTRIBUTE: Mapping[str, SensorField] = MappingProxyType(
    {sensor_field.attribute: sensor_field for sensor_field in SENSOR_FIELDS}
)

LATITUDE_KEY = "floatLatitude"
LONGITUDE_KEY = "floatLongitude"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """One point-in-time observation; ``None`` marks an unknown value."""

    timestamp: int
    float_altitude: Optional[float] = None
    float_humidity: Optional[float] = None
    float_temperature: Optional[float] = None
    float_water_temperature: Optional[float] = None
    float_x_axis: Optional[float] = None
    float_y_axis: Optional[float] = None
    float_z_axis: Optional[float] = None
    shore_temperature: Optional[float] = None
    shore_humidity: Optional[float] = None
    shore_vibration: Optional[float] = None
    float_velocity: Optional[float] = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def value(self, attribute: str) -> Optional[float]:
        if attribute not in FIELDS_BY_ATTRIBUTE:
            raise KeyError(f"Unknown sensor field {attribute!r}.")
        return getattr(self, attribute)

    def value_or_zero(self, attribute: str) -> float:
        value = self.value(attribute)
        return 0.0 if value is None else value

    def display(self, attribute: str) -> str:
        value = self.value(attribute)
        if value is None:
            return UNKNOWN
        return f"{value:.{FIELDS_BY_ATTRIBUTE[attribute].precision}f}"

    def raw_fields(self) -> dict[str, Optional[float]]:
        """Known fields keyed by their telemetry names."""
        return {
            sensor_field.raw_key: getattr(self, sensor_field.attribute)
            for sensor_field in SENSOR_FIELDS
        }


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class ParsedRecord:
    reading: SensorReading
    coordinates: Optional[Coordinates] = None


class SeriesWindow(str, Enum):
    """Retention policies selecting which readings feed the trends."""

    hour = "hour"
    day = "day"
    week = "week"
    all = "all"

    @property
    def cutoff_seconds(self) -> Optional[int]:
        return _WINDOW_CUTOFFS[self]

    def includes(self, timestamp: int, now: float) -> bool:
        cutoff = self.cutoff_seconds
        if cutoff is None:
            return True
        return now - timestamp <= cutoff


# day and week share the 7-day cutoff.
_WINDOW_CUTOFFS: Mapping[SeriesWindow, Optional[int]] = MappingProxyType(
    {
        SeriesWindow.hour: 3600,
        SeriesWindow.day: 604800,
        SeriesWindow.week: 604800,
        SeriesWindow.all: None,
    }
)


class RiskLevel(str, Enum):
    """Discrete hazard categories, positionally aligned with model output."""

    low = "low"
    medium = "medium"
    high = "high"

    @classmethod
    def from_index(cls, index: int) -> "RiskLevel":
        return _RISK_ORDER[index]

    @property
    def color(self) -> str:
        return _RISK_COLORS[self]


_RISK_ORDER: Tuple[RiskLevel, ...] = (RiskLevel.low, RiskLevel.medium, RiskLevel.high)

_RISK_COLORS: Mapping[RiskLevel, str] = MappingProxyType(
    {
        RiskLevel.low: "bg-green-500",
        RiskLevel.medium: "bg-yellow-500",
        RiskLevel.high: "bg-red-500",
    }
)


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    level: RiskLevel
    source_probabilities: Tuple[float, ...] = ()

    @property
    def color(self) -> str:
        return self.level.color


INITIAL_RISK = RiskAssessment(level=RiskLevel.low)


@dataclass(frozen=True, slots=True)
class FloatTrendPoint:
    timestamp: int
    time: str
    temperature: float
    humidity: float
    water_temperature: float


@dataclass(frozen=True, slots=True)
class ShoreTrendPoint:
    timestamp: int
    time: str
    temperature: float
    humidity: float
    vibration: float


@dataclass(frozen=True, slots=True)
class GyroTrendPoint:
    timestamp: int
    time: str
    magnitude: float


@dataclass(frozen=True, slots=True)
class TrendProjection:
    float_trend: Tuple[FloatTrendPoint, ...] = ()
    shore_trend: Tuple[ShoreTrendPoint, ...] = ()
    gyro_trend: Tuple[GyroTrendPoint, ...] = ()


@dataclass(frozen=True, slots=True)
class ViewState:
    """Complete snapshot published after each processing step."""

    installation_id: str
    window: SeriesWindow
    latest: Optional[SensorReading] = None
    risk: RiskAssessment = INITIAL_RISK
    trends: TrendProjection = TrendProjection()
    location_name: str = ""
    generation: int = 0
    updated_at: Optional[float] = None
