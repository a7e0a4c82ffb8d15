"""Conversion of raw feed records into typed sensor readings."""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional

from models.readings import (
    LATITUDE_KEY,
    LONGITUDE_KEY,
    SENSOR_FIELDS,
    Coordinates,
    ParsedRecord,
    SensorReading,
)
from services.errors import ParseError

logger = logging.getLogger(__name__)


def parse_number(field: str, raw: Any) -> float:
    """Coerce a raw scalar into a finite float or raise ``ParseError``."""
    if isinstance(raw, bool):
        raise ParseError(field, raw)
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        candidate = raw.strip()
        if not candidate:
            raise ParseError(field, raw)
        try:
            value = float(candidate)
        except ValueError as exc:
            raise ParseError(field, raw) from exc
    else:
        raise ParseError(field, raw)

    if not math.isfinite(value):
        raise ParseError(field, raw)
    return value


def parse_optional(field: str, raw: Any) -> Optional[float]:
    if raw is None:
        return None
    try:
        return parse_number(field, raw)
    except ParseError:
        logger.debug(
            "Treating malformed field as unknown",
            extra={"field": field, "invalid_value": repr(raw)},
        )
        return None


def parse_timestamp(raw: Any) -> Optional[int]:
    """Integer seconds for a feed key, or ``None`` when it is not numeric."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    try:
        return int(parse_number("timestamp", raw))
    except ParseError:
        return None


class ReadingParser:
    """Turns one ``(timestamp_key, field_map)`` entry into a ``ParsedRecord``."""

    def parse(self, timestamp_key: Any, raw_record: Any) -> Optional[ParsedRecord]:
        timestamp = parse_timestamp(timestamp_key)
        if timestamp is None:
            logger.warning(
                "Skipping record with non-numeric timestamp",
                extra={"invalid_value": repr(timestamp_key)},
            )
            return None

        fields: dict[str, Any] = dict(raw_record) if isinstance(raw_record, Mapping) else {}
        latitude = parse_optional(LATITUDE_KEY, fields.pop(LATITUDE_KEY, None))
        longitude = parse_optional(LONGITUDE_KEY, fields.pop(LONGITUDE_KEY, None))
        coordinates = None
        if latitude is not None and longitude is not None:
            coordinates = Coordinates(latitude=latitude, longitude=longitude)

        values = {
            sensor_field.attribute: parse_optional(
                sensor_field.raw_key, fields.pop(sensor_field.raw_key, None)
            )
            for sensor_field in SENSOR_FIELDS
        }
        reading = SensorReading(timestamp=timestamp, extra=fields, **values)
        return ParsedRecord(reading=reading, coordinates=coordinates)
