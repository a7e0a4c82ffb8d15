"""Timestamp-ordered history of parsed readings."""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from models.readings import Coordinates, ParsedRecord, SensorReading, SeriesWindow
from services.errors import EmptyBatchError
from services.parser import ReadingParser

logger = logging.getLogger(__name__)

Batch = Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]]]


class SeriesStore:
    """Holds the complete dataset last delivered by the feed.

    Every notification carries the full dataset, so ``ingest`` replaces the
    history instead of merging into it.
    """

    def __init__(
        self,
        parser: Optional[ReadingParser] = None,
        clock: Callable[[], float] = time.time,
        installation_id: Optional[str] = None,
    ) -> None:
        self.parser = parser or ReadingParser()
        self.clock = clock
        self.installation_id = installation_id
        self._records: Tuple[ParsedRecord, ...] = ()
        self._lock = Lock()

    def ingest(self, batch: Optional[Batch]) -> int:
        """Replace the history with ``batch``; returns the number of readings held."""
        entries = list(batch.items() if isinstance(batch, Mapping) else batch or ())
        if not entries:
            logger.warning(
                "Feed delivered no entries; keeping previous history",
                extra={"installation_id": self.installation_id, "reason": "empty batch"},
            )
            raise EmptyBatchError("Telemetry batch contained no entries.")

        by_timestamp: dict[int, ParsedRecord] = {}
        for timestamp_key, raw_record in entries:
            parsed = self.parser.parse(timestamp_key, raw_record)
            if parsed is not None:
                by_timestamp[parsed.reading.timestamp] = parsed

        if not by_timestamp:
            logger.warning(
                "Feed delivered no parseable entries; keeping previous history",
                extra={
                    "installation_id": self.installation_id,
                    "record_count": len(entries),
                    "reason": "no parseable records",
                },
            )
            raise EmptyBatchError("Telemetry batch contained no parseable entries.")

        ordered = tuple(by_timestamp[timestamp] for timestamp in sorted(by_timestamp))
        with self._lock:
            self._records = ordered
        logger.debug(
            "Series history replaced",
            extra={"installation_id": self.installation_id, "record_count": len(ordered)},
        )
        return len(ordered)

    def latest(self) -> Optional[SensorReading]:
        with self._lock:
            return self._records[-1].reading if self._records else None

    def latest_coordinates(self) -> Optional[Coordinates]:
        with self._lock:
            return self._records[-1].coordinates if self._records else None

    def readings(self) -> Tuple[SensorReading, ...]:
        with self._lock:
            return tuple(record.reading for record in self._records)

    def windowed(
        self, window: SeriesWindow, now: Optional[float] = None
    ) -> Tuple[SensorReading, ...]:
        """Readings visible under ``window``, evaluated against ``now``."""
        reference = self.clock() if now is None else now
        return tuple(
            reading for reading in self.readings() if window.includes(reading.timestamp, reference)
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
