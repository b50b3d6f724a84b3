"""Observable gallery state driven by the query engine."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from eclat.application.dtos import EmptyState
from eclat.application.services.filter_store import FilterStore
from eclat.application.services.query_engine import QueryEngine
from eclat.application.services.selection_controller import SelectionController
from eclat.domain.models import AssetRecord, QuerySnapshot
from eclat.events.bus import EventBus
from eclat.events.catalog_events import AssetsMutatedEvent
from eclat.events.signal import ObservableProperty, Signal
from eclat.gui.viewmodels.base import BaseViewModel
from eclat.utils.aio import TaskTracker


class GalleryViewModel(BaseViewModel):
    """Gallery ViewModel: pure Python, no Qt dependency.

    Mirrors the active accumulation into observable properties.  Views call
    :meth:`on_sentinel_visible` when the end-of-list marker scrolls into view;
    the next page is requested only when nothing is in flight and the server
    reported more items.
    """

    def __init__(
        self,
        query_engine: QueryEngine,
        filters: FilterStore,
        selection: SelectionController,
        event_bus: EventBus,
        tasks: Optional[TaskTracker] = None,
    ) -> None:
        super().__init__()
        self._engine = query_engine
        self._filters = filters
        self._selection = selection
        self._tasks = tasks or TaskTracker()
        self._logger = logging.getLogger(__name__)

        self.items = ObservableProperty([], name="items")
        self.loading = ObservableProperty(False, name="loading")
        self.has_more = ObservableProperty(False, name="has_more")
        self.total_count = ObservableProperty(0, name="total_count")
        self.empty_state = ObservableProperty(EmptyState.NONE, name="empty_state")
        self.selected = ObservableProperty(frozenset(), name="selected")

        self.items_updated = Signal("items_updated")
        self.error_occurred = Signal("error_occurred")

        self.connect_signal(query_engine.page_loaded, self._on_page_loaded)
        self.connect_signal(query_engine.accumulation_replaced, self._on_accumulation_replaced)
        self.connect_signal(query_engine.page_failed, self._on_page_failed)
        self.connect_signal(filters.snapshot_changed, self._on_snapshot_changed)
        self.connect_signal(selection.selection_changed, self._on_selection_changed)
        self.connect_signal(query_engine.cache.record_changed, self._on_record_changed)
        self.connect_signal(query_engine.cache.list_changed, self._on_list_changed)
        self.subscribe_event(event_bus, AssetsMutatedEvent, self._on_assets_mutated)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def on_sentinel_visible(self) -> Optional[asyncio.Task[Any]]:
        """Schedule the next page when the list end becomes visible."""
        if self._engine.is_loading or not self._engine.has_more:
            return None
        if self._engine.active_entry().error is not None and not self._engine.active_entry().stale:
            # A failed page waits for an explicit retry.
            return None
        return self._schedule(self.load_more())

    async def load_more(self) -> None:
        self.loading.value = True
        try:
            await self._engine.load_next_page()
        finally:
            self.sync()

    async def reload(self) -> None:
        self.loading.value = True
        try:
            await self._engine.refresh()
        finally:
            self.sync()

    async def retry(self) -> None:
        self._engine.active_entry().error = None
        await self.load_more()

    def sync(self) -> None:
        """Copy the engine's current state into the observable properties."""
        records = self._engine.items()
        self.items.value = records
        self.loading.value = self._engine.is_loading
        self.has_more.value = self._engine.has_more
        self.total_count.value = self._engine.total_count
        self.empty_state.value = self._engine.empty_state()
        self.items_updated.emit(records)

    def record_at(self, row: int) -> Optional[AssetRecord]:
        records = self.items.value
        return records[row] if 0 <= row < len(records) else None

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------
    def _on_page_loaded(self, key: str, _result: Any) -> None:
        if key == self._engine.active_key:
            self.sync()

    def _on_accumulation_replaced(self, key: str, _ids: Any) -> None:
        if key == self._engine.active_key:
            self.sync()

    def _on_page_failed(self, key: str, error: Exception) -> None:
        if key == self._engine.active_key:
            self.loading.value = False
            self.error_occurred.emit(str(error))

    def _on_snapshot_changed(self, _snapshot: QuerySnapshot) -> None:
        self.sync()
        self._schedule(self._ensure_loaded())

    def _on_selection_changed(self, selected: frozenset[int]) -> None:
        self.selected.value = selected

    def _on_assets_mutated(self, _event: AssetsMutatedEvent) -> None:
        self.sync()

    def _on_record_changed(self, asset_id: int, record: Optional[AssetRecord]) -> None:
        # Optimistic edits and rollbacks only touch the record table.
        records = self.items.value
        for row, current in enumerate(records):
            if current.id != asset_id:
                continue
            if record is None:
                self.sync()
            elif record != current:
                updated = list(records)
                updated[row] = record
                self.items.value = updated
                self.items_updated.emit(updated)
            return

    def _on_list_changed(self, key: str) -> None:
        if key == self._engine.active_key:
            self.sync()

    async def _ensure_loaded(self) -> None:
        await self._engine.ensure_loaded()
        self.sync()

    def _schedule(self, coro) -> Optional[asyncio.Task[Any]]:
        task = self._tasks.spawn(coro)
        if task is None:
            self._logger.debug("No running event loop; gallery load not scheduled")
        return task
