"""Live orchestration of the telemetry pipeline for one installation."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from enum import Enum
from threading import Lock
from typing import Callable, Dict, Optional, Set

from feeds.mock_feed import Snapshot, Subscription, TelemetrySource
from models.readings import Coordinates, SensorReading, SeriesWindow, ViewState
from services.classifier import ClassificationClient
from services.errors import (
    EmptyBatchError,
    LocationLookupError,
    PipelineStateError,
    PredictionError,
)
from services.geocoder import LOCATION_ERROR, LocationLookup
from services.metrics import MetricsEngine, TimeLabel, utc_time_label
from services.series_store import SeriesStore

logger = logging.getLogger(__name__)

ViewListener = Callable[[ViewState], None]


class PipelineState(str, Enum):
    idle = "idle"
    subscribed = "subscribed"
    updating = "updating"


class PipelineController:
    """Owns the feed subscription, the active window and the published view.

    Notifications are handled one at a time. Classification and location
    lookups run on a worker pool; their results are applied only while the
    session that issued them is still running and only while the notification
    they were issued for is still the newest one.
    """

    def __init__(
        self,
        installation_id: str,
        source: TelemetrySource,
        classifier: ClassificationClient,
        geocoder: LocationLookup,
        store: Optional[SeriesStore] = None,
        engine: Optional[MetricsEngine] = None,
        window: SeriesWindow = SeriesWindow.all,
        workers: int = 2,
        label: TimeLabel = utc_time_label,
    ) -> None:
        if not installation_id:
            raise ValueError("installation_id is required.")
        self.installation_id = installation_id
        self.source = source
        self.classifier = classifier
        self.geocoder = geocoder
        self.store = store or SeriesStore(installation_id=installation_id)
        self.engine = engine or MetricsEngine()
        self.label = label
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=f"pipeline-{installation_id}"
        )

        self._state = PipelineState.idle
        self._view = ViewState(installation_id=installation_id, window=window)
        self._subscription: Optional[Subscription] = None
        self._session = 0
        self._generation = 0
        self._futures: Set[Future] = set()
        self._listeners: Dict[int, ViewListener] = {}
        self._next_listener = 0

        self._notification_lock = Lock()
        self._state_lock = Lock()

    @property
    def state(self) -> PipelineState:
        with self._state_lock:
            return self._state

    @property
    def window(self) -> SeriesWindow:
        with self._state_lock:
            return self._view.window

    def view(self) -> ViewState:
        with self._state_lock:
            return self._view

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        with self._state_lock:
            token = self._next_listener
            self._next_listener += 1
            self._listeners[token] = listener

        def remove() -> None:
            with self._state_lock:
                self._listeners.pop(token, None)

        return remove

    def start(self, window: Optional[SeriesWindow] = None) -> None:
        with self._state_lock:
            if self._state is not PipelineState.idle:
                raise PipelineStateError(
                    f"Pipeline for {self.installation_id!r} is already {self._state.value}."
                )
            self._state = PipelineState.subscribed
            self._session += 1
            session = self._session
            if window is not None:
                self._view = replace(self._view, window=window)

        logger.info(
            "Subscribing to telemetry feed",
            extra={"installation_id": self.installation_id, "window": self.window.value},
        )
        subscription = self.source.subscribe(self.installation_id, self.on_notification)

        with self._state_lock:
            if session == self._session and self._state is not PipelineState.idle:
                self._subscription = subscription
                return
        # stopped while the initial snapshot was being handled
        subscription.unsubscribe()

    def stop(self) -> None:
        with self._state_lock:
            if self._state is PipelineState.idle:
                return
            self._state = PipelineState.idle
            self._session += 1
            subscription, self._subscription = self._subscription, None
            pending = list(self._futures)

        if subscription is not None:
            subscription.unsubscribe()
        for future in pending:
            future.cancel()
        logger.info(
            "Pipeline stopped",
            extra={"installation_id": self.installation_id, "record_count": len(pending)},
        )

    def shutdown(self) -> None:
        self.stop()
        self.executor.shutdown(wait=False, cancel_futures=True)

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until outbound work dispatched so far has finished."""
        with self._state_lock:
            pending = list(self._futures)
        wait(pending, timeout=timeout)

    def set_window(self, window: SeriesWindow) -> ViewState:
        """Switch the active window and re-project the held history."""
        with self._notification_lock:
            trends = self.engine.project(self.store.windowed(window), self.label)
            with self._state_lock:
                self._view = replace(
                    self._view,
                    window=window,
                    trends=trends,
                    updated_at=self.store.clock(),
                )
                view = self._view
            logger.info(
                "Series window changed",
                extra={"installation_id": self.installation_id, "window": window.value},
            )
            self._publish(view)
            return view

    def on_notification(self, batch: Optional[Snapshot]) -> None:
        with self._notification_lock:
            with self._state_lock:
                if self._state is PipelineState.idle:
                    return
                self._state = PipelineState.updating
                session = self._session

            try:
                self._process(batch, session)
            finally:
                with self._state_lock:
                    if self._state is PipelineState.updating:
                        self._state = PipelineState.subscribed

    def _process(self, batch: Optional[Snapshot], session: int) -> None:
        try:
            self.store.ingest(batch)
        except EmptyBatchError:
            return

        latest = self.store.latest()
        coordinates = self.store.latest_coordinates()
        with self._state_lock:
            window = self._view.window
        trends = self.engine.project(self.store.windowed(window), self.label)

        with self._state_lock:
            if session != self._session:
                return
            self._generation += 1
            generation = self._generation
            self._view = replace(
                self._view,
                latest=latest,
                trends=trends,
                generation=generation,
                updated_at=self.store.clock(),
            )
            view = self._view
        try:
            self._publish(view)
        finally:
            if latest is not None:
                self._dispatch_classification(latest, session, generation)
            if coordinates is not None:
                self._dispatch_location(coordinates, session, generation)

    def _dispatch_classification(self, reading: SensorReading, session: int, generation: int) -> None:
        self._submit(self._classify, reading, session, generation)

    def _dispatch_location(self, coordinates: Coordinates, session: int, generation: int) -> None:
        self._submit(self._locate, coordinates, session, generation)

    def _submit(self, fn: Callable[..., None], *args: object) -> None:
        try:
            future = self.executor.submit(fn, *args)
        except RuntimeError:
            logger.warning(
                "Worker pool is shut down; skipping outbound request",
                extra={"installation_id": self.installation_id},
            )
            return
        with self._state_lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._state_lock:
            self._futures.discard(future)

    def _classify(self, reading: SensorReading, session: int, generation: int) -> None:
        context = {"installation_id": self.installation_id, "generation": generation}
        try:
            assessment = self.classifier.classify(reading)
        except PredictionError as exc:
            logger.warning(
                "Classification failed; keeping previous risk assessment",
                extra={**context, "reason": str(exc)},
            )
            return
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected classification failure", extra={**context, "reason": str(exc)})
            return

        with self._state_lock:
            if not self._is_current(session, generation):
                logger.debug("Discarding stale classification result", extra=context)
                return
            self._view = replace(self._view, risk=assessment)
            view = self._view
        logger.info("Risk assessment updated", extra={**context, "risk_level": assessment.level.value})
        self._publish(view)

    def _locate(self, coordinates: Coordinates, session: int, generation: int) -> None:
        context = {"installation_id": self.installation_id, "generation": generation}
        try:
            location_name = self.geocoder.lookup(coordinates)
        except LocationLookupError as exc:
            logger.warning("Location lookup failed", extra={**context, "reason": str(exc)})
            location_name = LOCATION_ERROR
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected location lookup failure", extra={**context, "reason": str(exc)})
            location_name = LOCATION_ERROR

        with self._state_lock:
            if not self._is_current(session, generation):
                logger.debug("Discarding stale location result", extra=context)
                return
            self._view = replace(self._view, location_name=location_name)
            view = self._view
        logger.debug("Location updated", extra={**context, "location": location_name})
        self._publish(view)

    def _is_current(self, session: int, generation: int) -> bool:
        # caller holds _state_lock
        return session == self._session and generation == self._generation

    def _publish(self, view: ViewState) -> None:
        with self._state_lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(view)
            except Exception:
                logger.exception(
                    "View listener failed",
                    extra={"installation_id": self.installation_id, "generation": view.generation},
                )
