"""Incremental page loading for the active query snapshot."""

from __future__ import annotations

import logging
from typing import List, Optional

from eclat.application.dtos import EmptyState, PageResult
from eclat.application.interfaces import CatalogBackend
from eclat.application.services.asset_cache import AssetCache, ListEntry
from eclat.application.services.filter_store import FilterStore
from eclat.config import AGGREGATE_COLORS, AGGREGATE_STATS, DEFAULT_REQUEST_TIMEOUT_SEC
from eclat.domain.models import DEFAULT_FILTERS, AggregateStats, AssetRecord, DisplayMode, QuerySnapshot
from eclat.errors import BackendError, NotFoundError
from eclat.errors.handler import ErrorHandler
from eclat.events.signal import Signal
from eclat.utils.aio import with_timeout

LOGGER = logging.getLogger(__name__)


class QueryEngine:
    """Turns the current :class:`QuerySnapshot` into accumulated pages.

    Fetches for one snapshot key are strictly serialised: a second
    :meth:`load_next_page` while one is in flight returns ``None`` without
    touching the backend.  Responses that resolve after the active key changed,
    or after the key was invalidated, are dropped.  Pages are appended in
    server order; there is no client-side re-sorting.

    Signals:
        page_loaded(key, PageResult)
        accumulation_replaced(key, tuple[int, ...])
        page_failed(key, Exception)
    """

    def __init__(
        self,
        backend: CatalogBackend,
        cache: AssetCache,
        filters: FilterStore,
        error_handler: ErrorHandler,
        timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT_SEC,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._filters = filters
        self._errors = error_handler
        self._timeout = timeout

        self.page_loaded = Signal("page_loaded")
        self.accumulation_replaced = Signal("accumulation_replaced")
        self.page_failed = Signal("page_failed")

    # ------------------------------------------------------------------
    # Active accumulation
    # ------------------------------------------------------------------
    @property
    def cache(self) -> AssetCache:
        return self._cache

    @property
    def snapshot(self) -> QuerySnapshot:
        return self._filters.snapshot

    @property
    def active_key(self) -> str:
        return self._filters.snapshot.cache_key

    def active_entry(self) -> ListEntry:
        return self._cache.entry(self._filters.snapshot)

    def items(self) -> List[AssetRecord]:
        return self._cache.records_for(self.active_entry())

    def loaded_ids(self) -> List[int]:
        return list(self.active_entry().ids)

    @property
    def has_more(self) -> bool:
        entry = self.active_entry()
        return not entry.loaded or entry.has_more

    @property
    def total_count(self) -> int:
        return self.active_entry().total_count

    @property
    def is_loading(self) -> bool:
        return self.active_entry().in_flight

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.active_entry().error

    # ------------------------------------------------------------------
    # Paging
    # ------------------------------------------------------------------
    async def load_next_page(self) -> Optional[PageResult]:
        """Fetch the next page of the active snapshot and append it.

        A stale accumulation restarts at page 1.  Returns ``None`` when the
        call was a no-op or its response was discarded or failed.
        """
        entry = self.active_entry()
        if entry.in_flight:
            LOGGER.debug("[PAGE] Fetch already in flight for %s", entry.key[:10])
            return None
        if entry.stale:
            page = 1
        elif entry.loaded and not entry.has_more:
            return None
        else:
            page = entry.page_index + 1
        return await self._fetch(entry, page)

    async def ensure_loaded(self) -> Optional[PageResult]:
        """Load page 1 unless the active accumulation is already fresh."""
        entry = self.active_entry()
        if entry.loaded and not entry.stale:
            return None
        return await self.load_next_page()

    async def refresh(self) -> Optional[PageResult]:
        """Refetch page 1 of the active snapshot, keeping current items visible."""
        entry = self.active_entry()
        self._cache.invalidate_list(entry.key)
        if entry.in_flight:
            # The running fetch sees the generation bump and restarts at page 1.
            return None
        return await self._fetch(entry, 1)

    async def _fetch(self, entry: ListEntry, page: int) -> Optional[PageResult]:
        key = entry.key
        generation = entry.generation
        entry.in_flight = True
        entry.refetch_requested = False
        LOGGER.debug("[PAGE] Fetching page %d for %s", page, key[:10])
        try:
            result = await with_timeout(
                self._backend.fetch_assets(entry.snapshot, page),
                self._timeout,
                f"page {page}",
            )
        except NotFoundError:
            result = PageResult(items=[], total_count=0, page=page, page_size=entry.page_size)
        except BackendError as exc:
            entry.error = exc
            self._errors.handle(exc, title="Failed to load assets", context={"page": page})
            self.page_failed.emit(key, exc)
            return None
        finally:
            entry.in_flight = False

        if entry.generation != generation:
            LOGGER.debug("[PAGE] Dropping page %d for invalidated %s", page, key[:10])
            if entry.refetch_requested and key == self.active_key:
                return await self._fetch(entry, 1)
            return None
        if key != self.active_key:
            LOGGER.debug("[PAGE] Dropping page %d for superseded %s", page, key[:10])
            return None

        if page == 1 and entry.loaded:
            self._cache.replace_accumulation(entry, result.items, result.total_count)
            self.accumulation_replaced.emit(key, tuple(entry.ids))
        else:
            self._cache.append_page(entry, result.items, result.total_count, page)
        LOGGER.debug(
            "[PAGE] Loaded page %d (%d items, %d/%d)",
            page, len(result.items), len(entry.ids), entry.total_count,
        )
        self.page_loaded.emit(key, result)
        return result

    # ------------------------------------------------------------------
    # Aggregates and entities
    # ------------------------------------------------------------------
    async def get_stats(self, force: bool = False) -> Optional[AggregateStats]:
        if not force and not self._cache.needs_stats():
            return self._cache.stats
        generation = self._cache.aggregate_generation(AGGREGATE_STATS)
        try:
            stats = await with_timeout(self._backend.fetch_aggregate_stats(), self._timeout, "stats")
        except BackendError as exc:
            self._errors.handle(exc, title="Failed to load statistics")
            return self._cache.stats
        self._cache.set_stats(stats, generation)
        return stats

    async def get_colors(self, force: bool = False) -> List[str]:
        if not force and not self._cache.needs_colors():
            return self._cache.colors or []
        generation = self._cache.aggregate_generation(AGGREGATE_COLORS)
        try:
            colors = await with_timeout(self._backend.fetch_available_colors(), self._timeout, "colors")
        except BackendError as exc:
            self._errors.handle(exc, title="Failed to load colors")
            return self._cache.colors or []
        self._cache.set_colors(colors, generation)
        return list(colors)

    async def fetch_asset(self, asset_id: int) -> Optional[AssetRecord]:
        """Reload one record from the server; a vanished asset is evicted."""
        try:
            record = await with_timeout(self._backend.fetch_asset(asset_id), self._timeout, "asset")
        except NotFoundError:
            LOGGER.info("Asset %s no longer exists; evicting", asset_id)
            self._cache.evict([asset_id])
            return None
        except BackendError as exc:
            self._errors.handle(exc, title="Failed to load asset", context={"asset_id": asset_id})
            return None
        self._cache.put_records([record])
        return self._cache.get(asset_id)

    def empty_state(self) -> EmptyState:
        """Tell an empty library apart from a filter that matches nothing."""
        entry = self.active_entry()
        if not entry.loaded or entry.in_flight or entry.ids or entry.total_count > 0:
            return EmptyState.NONE
        stats = self._cache.stats
        if stats is not None:
            return EmptyState.EMPTY_LIBRARY if stats.total_assets == 0 else EmptyState.NO_MATCHES
        snapshot = entry.snapshot
        if snapshot.criteria == DEFAULT_FILTERS and snapshot.mode.kind is DisplayMode.ALL:
            return EmptyState.EMPTY_LIBRARY
        return EmptyState.NO_MATCHES
