"""Error taxonomy for the telemetry pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for recoverable pipeline failures."""


class ParseError(PipelineError, ValueError):
    """A single raw field could not be coerced to a number."""

    def __init__(self, field: str, raw_value: object) -> None:
        super().__init__(f"Field {field!r} is not numeric: {raw_value!r}")
        self.field = field
        self.raw_value = raw_value


class EmptyBatchError(PipelineError):
    """The upstream feed delivered no usable entries."""


class PredictionError(PipelineError):
    """Base class for classification service failures."""


class PredictionFormatError(PredictionError):
    """The classification service answered with an unexpected payload."""


class PredictionTransportError(PredictionError):
    """The classification service could not be reached."""


class LocationLookupError(PipelineError):
    """Reverse geocoding failed."""


class PipelineStateError(PipelineError, RuntimeError):
    """An operation was requested in a state that does not allow it."""
