"""One independent pipeline per monitored installation."""

from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Dict, Optional

from feeds.mock_feed import MockTelemetryFeed, build_default_feed
from models.readings import SeriesWindow
from services.classifier import ClassificationClient
from services.geocoder import LocationLookup
from services.pipeline import PipelineController
from settings import get_settings

logger = logging.getLogger(__name__)


class PipelineRegistry:
    """Creates pipelines on demand; they share only the outbound clients and the feed."""

    def __init__(
        self,
        feed: MockTelemetryFeed,
        classifier: ClassificationClient,
        geocoder: LocationLookup,
        default_window: SeriesWindow = SeriesWindow.all,
        workers: int = 2,
    ) -> None:
        self.feed = feed
        self.classifier = classifier
        self.geocoder = geocoder
        self.default_window = default_window
        self.workers = workers
        self._pipelines: Dict[str, PipelineController] = {}
        self._lock = Lock()

    def get(self, installation_id: str) -> PipelineController:
        with self._lock:
            pipeline = self._pipelines.get(installation_id)
        if pipeline is None:
            raise KeyError(f"No pipeline for installation {installation_id!r}.")
        return pipeline

    def get_or_create(self, installation_id: str) -> PipelineController:
        with self._lock:
            pipeline = self._pipelines.get(installation_id)
            if pipeline is None:
                pipeline = PipelineController(
                    installation_id=installation_id,
                    source=self.feed,
                    classifier=self.classifier,
                    geocoder=self.geocoder,
                    window=self.default_window,
                    workers=self.workers,
                )
                self._pipelines[installation_id] = pipeline
                logger.info("Pipeline created", extra={"installation_id": installation_id})
            return pipeline

    def installations(self) -> list[str]:
        with self._lock:
            return sorted(self._pipelines)

    def shutdown(self) -> None:
        """Stop every pipeline and release outbound connections."""
        with self._lock:
            pipelines = list(self._pipelines.values())
            self._pipelines.clear()
        for pipeline in pipelines:
            pipeline.shutdown()
        self.classifier.close()
        self.geocoder.close()


@lru_cache
def build_default_registry(workers: Optional[int] = None) -> PipelineRegistry:
    """Factory that wires pipelines to the default feed and configured services."""
    settings = get_settings()
    classifier = ClassificationClient(
        base_url=settings.classifier_base_url, timeout=settings.outbound_timeout
    )
    geocoder = LocationLookup(base_url=settings.geocoder_base_url, timeout=settings.outbound_timeout)
    return PipelineRegistry(
        feed=build_default_feed(),
        classifier=classifier,
        geocoder=geocoder,
        default_window=SeriesWindow(settings.default_window),
        workers=workers or settings.pipeline_workers,
    )
