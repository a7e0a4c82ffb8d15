"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.readings import (
    SENSOR_FIELDS,
    RiskLevel,
    SensorReading,
    SeriesWindow,
    ViewState,
)
from services.pipeline import PipelineState


class StartRequest(BaseModel):
    """Optional window to activate when the pipeline starts."""

    window: Optional[SeriesWindow] = None


class WindowRequest(BaseModel):
    window: SeriesWindow


class PipelineStatus(BaseModel):
    """Lifecycle information for one installation's pipeline."""

    installation_id: str
    state: PipelineState
    window: SeriesWindow


class ReadingAccepted(BaseModel):
    installation_id: str
    timestamp: str


class LatestReading(BaseModel):
    """Most recent reading, raw-keyed, with unknown values as null."""

    timestamp: int
    fields: Dict[str, Optional[float]] = Field(default_factory=dict)
    display: Dict[str, str] = Field(
        default_factory=dict, description="Values formatted for display; 'N/A' when unknown."
    )

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "LatestReading":
        return cls(
            timestamp=reading.timestamp,
            fields=reading.raw_fields(),
            display={
                sensor_field.raw_key: reading.display(sensor_field.attribute)
                for sensor_field in SENSOR_FIELDS
            },
        )


class RiskResponse(BaseModel):
    level: RiskLevel
    color: str
    probabilities: List[float] = Field(default_factory=list)


class FloatPoint(BaseModel):
    time: str
    temperature: float
    humidity: float
    water_temperature: float


class ShorePoint(BaseModel):
    time: str
    temperature: float
    humidity: float
    vibration: float


class GyroPoint(BaseModel):
    time: str
    magnitude: float


class ViewStateResponse(BaseModel):
    """Full published snapshot of an installation's pipeline."""

    installation_id: str
    state: PipelineState
    window: SeriesWindow
    latest: Optional[LatestReading] = None
    risk: RiskResponse
    float_trend: List[FloatPoint] = Field(default_factory=list)
    shore_trend: List[ShorePoint] = Field(default_factory=list)
    gyro_trend: List[GyroPoint] = Field(default_factory=list)
    location_name: str = ""
    generation: int = Field(0, ge=0)
    updated_at: Optional[datetime] = None

    @classmethod
    def from_view(cls, view: ViewState, state: PipelineState) -> "ViewStateResponse":
        trends = view.trends
        return cls(
            installation_id=view.installation_id,
            state=state,
            window=view.window,
            latest=LatestReading.from_reading(view.latest) if view.latest else None,
            risk=RiskResponse(
                level=view.risk.level,
                color=view.risk.color,
                probabilities=list(view.risk.source_probabilities),
            ),
            float_trend=[
                FloatPoint(
                    time=point.time,
                    temperature=point.temperature,
                    humidity=point.humidity,
                    water_temperature=point.water_temperature,
                )
                for point in trends.float_trend
            ],
            shore_trend=[
                ShorePoint(
                    time=point.time,
                    temperature=point.temperature,
                    humidity=point.humidity,
                    vibration=point.vibration,
                )
                for point in trends.shore_trend
            ],
            gyro_trend=[GyroPoint(time=point.time, magnitude=point.magnitude) for point in trends.gyro_trend],
            location_name=view.location_name,
            generation=view.generation,
            updated_at=(
                datetime.fromtimestamp(view.updated_at, tz=timezone.utc)
                if view.updated_at is not None
                else None
            ),
        )
