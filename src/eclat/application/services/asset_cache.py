"""Keyed in-memory cache shared by the query engine and the mutation coordinator.

List accumulations are keyed by :attr:`QuerySnapshot.cache_key`; asset records
are keyed by id so that an edit on one record is visible in every list that
contains it.  Only :class:`QueryEngine` (pages, stats, colors) and
:class:`MutationCoordinator` (entity fields) write here.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from eclat.config import AGGREGATE_COLORS, AGGREGATE_STATS
from eclat.domain.models import AggregateStats, AssetRecord, QuerySnapshot
from eclat.events.signal import Signal

LOGGER = logging.getLogger(__name__)

MAX_CACHED_LISTS = 32


@dataclass
class ListEntry:
    """Accumulated page sequence for one query snapshot."""

    key: str
    snapshot: QuerySnapshot
    ids: List[int] = field(default_factory=list)
    total_count: int = 0
    page_index: int = 0
    in_flight: bool = False
    stale: bool = False
    generation: int = 0
    refetch_requested: bool = False
    error: Optional[BaseException] = None

    @property
    def page_size(self) -> int:
        return self.snapshot.page_size

    @property
    def loaded(self) -> bool:
        return self.page_index > 0

    @property
    def has_more(self) -> bool:
        return self.page_index * self.page_size < self.total_count


class AssetCache:
    def __init__(self, max_lists: int = MAX_CACHED_LISTS) -> None:
        self._max_lists = max(1, max_lists)
        self._records: dict[int, AssetRecord] = {}
        self._lists: OrderedDict[str, ListEntry] = OrderedDict()
        # Optimistic field values that must survive a page refresh until the
        # owning mutation settles.
        self._pinned: dict[int, dict[str, Any]] = {}
        self._stats: Optional[AggregateStats] = None
        self._colors: Optional[list[str]] = None
        self._stale_aggregates: set[str] = set()
        self._aggregate_generation: dict[str, int] = {}

        self.record_changed = Signal("record_changed")  # (asset_id, record | None)
        self.list_changed = Signal("list_changed")  # (key)
        self.aggregates_invalidated = Signal("aggregates_invalidated")  # (frozenset of names)

    # ------------------------------------------------------------------
    # Entity records
    # ------------------------------------------------------------------
    def get(self, asset_id: int) -> Optional[AssetRecord]:
        return self._records.get(asset_id)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._records

    def put_records(self, records: Iterable[AssetRecord]) -> None:
        for record in records:
            pinned = self._pinned.get(record.id)
            if pinned:
                record = record.with_fields(**pinned)
            self._records[record.id] = record
            self.record_changed.emit(record.id, record)

    def write_fields(self, asset_id: int, values: dict[str, Any]) -> Optional[AssetRecord]:
        current = self._records.get(asset_id)
        if current is None:
            return None
        updated = current.with_fields(**values)
        self._records[asset_id] = updated
        self.record_changed.emit(asset_id, updated)
        return updated

    def pin(self, asset_id: int, values: dict[str, Any]) -> None:
        if not values:
            return
        self._pinned.setdefault(asset_id, {}).update(values)

    def unpin(self, asset_id: int, names: Iterable[str]) -> None:
        pinned = self._pinned.get(asset_id)
        if not pinned:
            return
        for name in names:
            pinned.pop(name, None)
        if not pinned:
            del self._pinned[asset_id]

    def evict(self, asset_ids: Iterable[int]) -> None:
        """Drop *asset_ids* from every accumulation and from the record map."""
        doomed = set(asset_ids)
        if not doomed:
            return
        for entry in self._lists.values():
            before = len(entry.ids)
            entry.ids = [asset_id for asset_id in entry.ids if asset_id not in doomed]
            removed = before - len(entry.ids)
            if removed:
                entry.total_count = max(0, entry.total_count - removed)
                self.list_changed.emit(entry.key)
        for asset_id in doomed:
            self._pinned.pop(asset_id, None)
            if self._records.pop(asset_id, None) is not None:
                self.record_changed.emit(asset_id, None)

    # ------------------------------------------------------------------
    # List accumulations
    # ------------------------------------------------------------------
    def entry(self, snapshot: QuerySnapshot) -> ListEntry:
        """Return the accumulation for *snapshot*, creating an empty one."""
        key = snapshot.cache_key
        entry = self._lists.get(key)
        if entry is None:
            entry = ListEntry(key=key, snapshot=snapshot)
            self._lists[key] = entry
            self._trim_lists()
        else:
            self._lists.move_to_end(key)
        return entry

    def peek(self, key: str) -> Optional[ListEntry]:
        return self._lists.get(key)

    def list_keys(self) -> list[str]:
        return list(self._lists.keys())

    def records_for(self, entry: ListEntry) -> list[AssetRecord]:
        return [self._records[asset_id] for asset_id in entry.ids if asset_id in self._records]

    def append_page(self, entry: ListEntry, items: List[AssetRecord], total_count: int, page: int) -> None:
        self.put_records(items)
        known = set(entry.ids)
        entry.ids.extend(item.id for item in items if item.id not in known)
        entry.total_count = total_count
        entry.page_index = page
        if page == 1:
            entry.stale = False
            entry.refetch_requested = False
        entry.error = None
        self.list_changed.emit(entry.key)

    def replace_accumulation(self, entry: ListEntry, items: List[AssetRecord], total_count: int) -> None:
        self.put_records(items)
        entry.ids = [item.id for item in items]
        entry.total_count = total_count
        entry.page_index = 1
        entry.stale = False
        entry.error = None
        self.list_changed.emit(entry.key)

    def invalidate_list(self, key: str) -> None:
        entry = self._lists.get(key)
        if entry is None:
            return
        entry.stale = True
        entry.generation += 1
        if entry.in_flight:
            entry.refetch_requested = True

    def invalidate_lists(self) -> None:
        for key in list(self._lists.keys()):
            self.invalidate_list(key)
        LOGGER.debug("[CACHE] Invalidated %d list accumulation(s)", len(self._lists))

    def _trim_lists(self) -> None:
        while len(self._lists) > self._max_lists:
            for key, entry in self._lists.items():
                if not entry.in_flight:
                    del self._lists[key]
                    break
            else:
                return

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    @property
    def stats(self) -> Optional[AggregateStats]:
        return self._stats

    def set_stats(self, stats: AggregateStats, generation: Optional[int] = None) -> None:
        self._stats = stats
        self._settle(AGGREGATE_STATS, generation)

    @property
    def colors(self) -> Optional[list[str]]:
        return None if self._colors is None else list(self._colors)

    def set_colors(self, colors: Iterable[str], generation: Optional[int] = None) -> None:
        self._colors = list(colors)
        self._settle(AGGREGATE_COLORS, generation)

    def invalidate_aggregates(self, names: Iterable[str]) -> None:
        names = frozenset(names)
        if not names:
            return
        self._stale_aggregates.update(names)
        for name in names:
            self._aggregate_generation[name] = self._aggregate_generation.get(name, 0) + 1
        self.aggregates_invalidated.emit(names)

    def aggregate_generation(self, name: str) -> int:
        return self._aggregate_generation.get(name, 0)

    def _settle(self, name: str, generation: Optional[int]) -> None:
        # A value fetched before the latest invalidation stays stale.
        if generation is None or generation == self.aggregate_generation(name):
            self._stale_aggregates.discard(name)

    def is_aggregate_stale(self, name: str) -> bool:
        return name in self._stale_aggregates

    def needs_stats(self) -> bool:
        return self._stats is None or AGGREGATE_STATS in self._stale_aggregates

    def needs_colors(self) -> bool:
        return self._colors is None or AGGREGATE_COLORS in self._stale_aggregates
