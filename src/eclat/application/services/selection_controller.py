"""Multi-item selection over the loaded, ordered asset sequence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from eclat.domain.models import QuerySnapshot
from eclat.events.signal import Signal

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    selected: frozenset[int] = frozenset()
    anchor: Optional[int] = None


class SelectionController:
    """Single, toggle and range selection.

    ``selection_changed`` fires with the new ``frozenset`` of ids whenever the
    selected set or the anchor actually changes.
    """

    def __init__(self, order_provider: Optional[Callable[[], Sequence[int]]] = None) -> None:
        self._state = SelectionState()
        self._order_provider = order_provider
        self.selection_changed = Signal("selection_changed")

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def selected(self) -> frozenset[int]:
        return self._state.selected

    @property
    def anchor(self) -> Optional[int]:
        return self._state.anchor

    def is_selected(self, asset_id: int) -> bool:
        return asset_id in self._state.selected

    def __len__(self) -> int:
        return len(self._state.selected)

    def select_single(self, asset_id: int) -> None:
        if not self._is_loaded(asset_id):
            return
        self._set(SelectionState(frozenset({asset_id}), asset_id))

    def toggle_multi(self, asset_id: int) -> None:
        selected = set(self._state.selected)
        if asset_id in selected:
            selected.remove(asset_id)
        elif self._is_loaded(asset_id):
            selected.add(asset_id)
        else:
            return
        self._set(SelectionState(frozenset(selected), asset_id))

    def select_range(self, asset_id: int, order: Optional[Sequence[int]] = None) -> None:
        """Select the inclusive slice of *order* between the anchor and *asset_id*.

        The result replaces the whole selection; the anchor is kept.  Without
        an anchor, or when either end is not in *order*, nothing changes.
        """
        anchor = self._state.anchor
        if anchor is None:
            return
        if order is None:
            order = self._order_provider() if self._order_provider is not None else ()
        order = list(order)
        try:
            start = order.index(anchor)
            end = order.index(asset_id)
        except ValueError:
            LOGGER.debug("Range selection ignored: %s or %s is not loaded", anchor, asset_id)
            return
        if start > end:
            start, end = end, start
        self._set(SelectionState(frozenset(order[start:end + 1]), anchor))

    def clear_selection(self) -> None:
        self._set(SelectionState())

    def set_selection(self, asset_ids: Iterable[int]) -> None:
        ids = list(asset_ids)
        self._set(SelectionState(frozenset(ids), ids[0] if ids else None))

    def retain(self, asset_ids: Iterable[int]) -> None:
        """Drop every selected id not contained in *asset_ids*."""
        keep = set(asset_ids)
        self._prune(lambda asset_id: asset_id not in keep)

    def discard(self, asset_ids: Iterable[int]) -> None:
        doomed = set(asset_ids)
        self._prune(lambda asset_id: asset_id in doomed)

    # Slots for the query side
    def on_snapshot_changed(self, _snapshot: QuerySnapshot) -> None:
        self.clear_selection()

    def on_accumulation_replaced(self, _key: str, asset_ids: Sequence[int]) -> None:
        self.retain(asset_ids)

    def _is_loaded(self, asset_id: int) -> bool:
        if self._order_provider is None or asset_id in self._order_provider():
            return True
        LOGGER.debug("Selection of %s ignored: not loaded", asset_id)
        return False

    def _prune(self, drop: Callable[[int], bool]) -> None:
        selected = frozenset(asset_id for asset_id in self._state.selected if not drop(asset_id))
        anchor = self._state.anchor
        if anchor is not None and drop(anchor):
            anchor = None
        self._set(SelectionState(selected, anchor))

    def _set(self, state: SelectionState) -> None:
        if state == self._state:
            return
        self._state = state
        self.selection_changed.emit(state.selected)
