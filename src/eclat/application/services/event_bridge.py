"""Routes pushed catalog events into cache invalidation and progress display."""

from __future__ import annotations

import logging
from typing import Optional

from eclat.application.interfaces import Notification, NotificationLevel, NotificationSink, ProgressSink
from eclat.application.services.asset_cache import AssetCache
from eclat.application.services.query_engine import QueryEngine
from eclat.config import AGGREGATE_COLORS, AGGREGATE_STATS
from eclat.domain.models import ScanProgress
from eclat.events.bus import EventBus, Subscription
from eclat.events.catalog_events import (
    BackendToastEvent,
    CatalogChangedEvent,
    ScanProgressEvent,
    ScanState,
    ScanStatusEvent,
)
from eclat.events.signal import ObservableProperty
from eclat.utils.aio import TaskTracker

LOGGER = logging.getLogger(__name__)

_TOAST_LEVELS = {
    "info": NotificationLevel.INFO,
    "success": NotificationLevel.SUCCESS,
    "warning": NotificationLevel.WARNING,
    "error": NotificationLevel.ERROR,
    "danger": NotificationLevel.ERROR,
}


class EventBridge:
    """Subscribes to the push events on the bus for as long as it lives.

    ``dispose()`` cancels every subscription and may be called repeatedly.
    """

    def __init__(
        self,
        event_bus: EventBus,
        cache: AssetCache,
        query_engine: QueryEngine,
        tasks: Optional[TaskTracker] = None,
        progress: Optional[ProgressSink] = None,
        notifications: Optional[NotificationSink] = None,
    ) -> None:
        self._cache = cache
        self._engine = query_engine
        self._tasks = tasks or TaskTracker()
        self._progress = progress
        self._notifications = notifications
        self._last_scan_state: Optional[ScanState] = None
        self.scanning = ObservableProperty(False, name="scanning")

        self._subscriptions: list[Subscription] = [
            event_bus.subscribe(CatalogChangedEvent, self._on_catalog_changed),
            event_bus.subscribe(ScanStatusEvent, self._on_scan_status),
            event_bus.subscribe(ScanProgressEvent, self._on_scan_progress),
            event_bus.subscribe(BackendToastEvent, self._on_backend_toast),
        ]

    @property
    def disposed(self) -> bool:
        return not self._subscriptions

    def set_progress_sink(self, sink: Optional[ProgressSink]) -> None:
        self._progress = sink

    def set_notification_sink(self, sink: Optional[NotificationSink]) -> None:
        self._notifications = sink

    def dispose(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _on_catalog_changed(self, event: CatalogChangedEvent) -> None:
        LOGGER.info("[PUSH] Catalog changed (%s)", event.reason or "unspecified")
        self._cache.invalidate_lists()
        self._cache.invalidate_aggregates((AGGREGATE_STATS,))

    def _on_scan_status(self, event: ScanStatusEvent) -> None:
        previous, self._last_scan_state = self._last_scan_state, event.state
        if self.scanning.set(event.state is ScanState.SCANNING):
            LOGGER.debug("[PUSH] Scan state now %s", event.state.value)
        if event.state is not ScanState.IDLE or previous is ScanState.IDLE:
            return
        LOGGER.info("[PUSH] Scan finished; refreshing catalog")
        self._cache.invalidate_lists()
        self._cache.invalidate_aggregates((AGGREGATE_STATS, AGGREGATE_COLORS))
        if self._tasks.spawn(self._engine.get_stats(force=True)) is None:
            LOGGER.debug("[PUSH] No running loop; refresh deferred to next read")
            return
        self._tasks.spawn(self._engine.refresh())

    def _on_scan_progress(self, event: ScanProgressEvent) -> None:
        if self._progress is None:
            return
        self._progress.update(
            ScanProgress(
                current=event.current,
                total=event.total,
                last_item=event.last_item,
                scanning=self._last_scan_state is not ScanState.IDLE,
            )
        )

    def _on_backend_toast(self, event: BackendToastEvent) -> None:
        if self._notifications is None:
            LOGGER.info("[PUSH] %s: %s", event.title, event.message)
            return
        level = _TOAST_LEVELS.get(str(event.level).lower(), NotificationLevel.INFO)
        self._notifications.notify(Notification(level, event.title, event.message))
