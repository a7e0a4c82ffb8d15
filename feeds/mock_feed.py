"""In-process telemetry feed that pushes full snapshots to subscribers."""

from __future__ import annotations

import copy
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock, RLock
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from settings import get_settings

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Dict[str, Any]]
Listener = Callable[[Snapshot], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class TelemetrySource(Protocol):
    """Push-based key-value feed that always delivers the full dataset."""

    def subscribe(self, installation_id: str, callback: Listener) -> Subscription: ...


class FeedSubscription:
    """Handle returned by ``subscribe``; ``unsubscribe`` may be called repeatedly."""

    def __init__(self, feed: "MockTelemetryFeed", installation_id: str, token: int) -> None:
        self._feed = feed
        self.installation_id = installation_id
        self._token = token
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove_listener(self.installation_id, self._token)


class MockTelemetryFeed:
    """In-process stand-in for the hosted telemetry store.

    Readings live under ``installation_id -> timestamp_key -> field map``.
    Subscribers receive the complete dataset of their installation right away
    and again after every write, mirroring a realtime-database value listener.
    Deliveries for one installation happen in write order.
    """

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._data: Dict[str, Snapshot] = {}
        self._listeners: Dict[str, Dict[int, Listener]] = {}
        self._next_token = 0
        self.persistence_path = persistence_path
        self._lock = Lock()
        self._delivery_locks: Dict[str, RLock] = {}
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def subscribe(self, installation_id: str, callback: Listener) -> FeedSubscription:
        with self._delivery_lock(installation_id):
            with self._lock:
                token = self._next_token
                self._next_token += 1
                self._listeners.setdefault(installation_id, {})[token] = callback
                snapshot = self._snapshot_locked(installation_id)
            callback(snapshot)
        return FeedSubscription(self, installation_id, token)

    def put_reading(
        self, installation_id: str, timestamp_key: str | int, fields: Mapping[str, Any]
    ) -> None:
        with self._lock:
            readings = self._data.setdefault(installation_id, {})
            readings[str(timestamp_key)] = dict(fields)
            self._persist()
        self._notify(installation_id)

    def replace(self, installation_id: str, entries: Mapping[str, Mapping[str, Any]]) -> None:
        with self._lock:
            self._data[installation_id] = {str(key): dict(value) for key, value in entries.items()}
            self._persist()
        self._notify(installation_id)

    def snapshot(self, installation_id: str) -> Snapshot:
        with self._lock:
            return self._snapshot_locked(installation_id)

    def listener_count(self, installation_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(installation_id, {}))

    def _delivery_lock(self, installation_id: str) -> RLock:
        with self._lock:
            return self._delivery_locks.setdefault(installation_id, RLock())

    def _notify(self, installation_id: str) -> None:
        # snapshot and delivery share one lock; deliveries follow write order
        with self._delivery_lock(installation_id):
            with self._lock:
                listeners = list(self._listeners.get(installation_id, {}).values())
                snapshot = self._snapshot_locked(installation_id)
            for listener in listeners:
                listener(copy.deepcopy(snapshot))

    def _remove_listener(self, installation_id: str, token: int) -> None:
        with self._lock:
            listeners = self._listeners.get(installation_id)
            if listeners is None:
                return
            listeners.pop(token, None)
            if not listeners:
                del self._listeners[installation_id]

    def _snapshot_locked(self, installation_id: str) -> Snapshot:
        return copy.deepcopy(self._data.get(installation_id, {}))

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._data, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable feed file", extra={"reason": str(self.persistence_path)})
            data = {}

        for installation_id, readings in data.items():
            if isinstance(readings, dict):
                self._data[installation_id] = readings


@lru_cache
def build_default_feed(path: Optional[str] = None) -> MockTelemetryFeed:
    settings = get_settings()
    feed_path = settings.feed_persistence_path if path is None else path
    persistence = Path(feed_path) if feed_path else None
    return MockTelemetryFeed(persistence_path=persistence)
