"""Mutable filter, sort and mode state of the gallery."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

from eclat.domain.models import DEFAULT_FILTERS, FilterCriteria, Mode, QuerySnapshot, SortField
from eclat.domain.models.query import normalise_filter_value
from eclat.events.signal import Signal

LOGGER = logging.getLogger(__name__)


class FilterStore:
    """Holds the current query inputs and derives :class:`QuerySnapshot` objects.

    Every mutator is synchronous and returns the fresh snapshot.  When the
    snapshot's cache key changes ``snapshot_changed`` fires with the new
    snapshot; setting a value to what it already was is silent.
    """

    def __init__(self, initial: Optional[QuerySnapshot] = None) -> None:
        self._snapshot = initial or QuerySnapshot()
        self.snapshot_changed = Signal("snapshot_changed")

    @property
    def snapshot(self) -> QuerySnapshot:
        return self._snapshot

    @property
    def criteria(self) -> FilterCriteria:
        return self._snapshot.criteria

    @property
    def mode(self) -> Mode:
        return self._snapshot.mode

    def set_filters(self, **partial: Any) -> QuerySnapshot:
        changes: dict[str, Any] = {}
        for name, value in partial.items():
            try:
                changes[name] = normalise_filter_value(name, value)
            except KeyError:
                LOGGER.warning("Ignoring unknown filter %r", name)
            except (TypeError, ValueError) as exc:
                LOGGER.warning("Ignoring invalid value for filter %r: %s", name, exc)
        if not changes:
            return self._snapshot
        return self._update(criteria=replace(self._snapshot.criteria, **changes))

    def reset_filters(self) -> QuerySnapshot:
        return self._update(criteria=DEFAULT_FILTERS)

    def set_sort(self, field: Any, desc: Optional[bool] = None) -> QuerySnapshot:
        sort_field = SortField.parse(field)
        if desc is None:
            desc = self._snapshot.sort_desc
        return self._update(sort_field=sort_field, sort_desc=bool(desc))

    def toggle_sort_direction(self) -> QuerySnapshot:
        return self._update(sort_desc=not self._snapshot.sort_desc)

    def set_page_size(self, page_size: Any) -> QuerySnapshot:
        try:
            size = int(page_size)
        except (TypeError, ValueError):
            LOGGER.warning("Ignoring invalid page size %r", page_size)
            return self._snapshot
        return self._update(page_size=max(1, size))

    def set_mode(self, mode: Any) -> QuerySnapshot:
        try:
            parsed = Mode.parse(mode)
        except (TypeError, ValueError):
            LOGGER.warning("Ignoring unknown mode %r", mode)
            return self._snapshot
        return self._update(mode=parsed)

    def _update(self, **changes: Any) -> QuerySnapshot:
        previous = self._snapshot
        snapshot = replace(previous, **changes)
        self._snapshot = snapshot
        if snapshot.cache_key != previous.cache_key:
            LOGGER.debug("[FILTER] Snapshot changed: %s", snapshot.cache_key[:10])
            self.snapshot_changed.emit(snapshot)
        return snapshot
