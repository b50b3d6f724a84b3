"""Qt list model over the gallery view state."""

from __future__ import annotations

from typing import Dict, List, Optional

from PySide6.QtCore import QAbstractListModel, QModelIndex, Qt

from eclat.application.services.selection_controller import SelectionController
from eclat.domain.models import AssetRecord
from eclat.gui.viewmodels.gallery_viewmodel import GalleryViewModel

from .roles import Roles, role_names


class CatalogListModel(QAbstractListModel):
    """Exposes the loaded assets of the active query to Qt views.

    Appended pages become row insertions; any other change of the id sequence
    resets the model.  Field edits on loaded rows emit ``dataChanged``.
    """

    def __init__(self, view_model: GalleryViewModel, selection: SelectionController, parent=None) -> None:
        super().__init__(parent)
        self._view_model = view_model
        self._selection = selection
        self._rows: List[AssetRecord] = list(view_model.items.value)
        self._row_by_id: Dict[int, int] = {}
        self._selected = selection.selected
        self._reindex()

        view_model.items_updated.connect(self._on_items_updated)
        selection.selection_changed.connect(self._on_selection_changed)

    def detach(self) -> None:
        self._view_model.items_updated.disconnect(self._on_items_updated)
        self._selection.selection_changed.disconnect(self._on_selection_changed)

    # ------------------------------------------------------------------
    # Qt model API
    # ------------------------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():
            return 0
        return len(self._rows)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._rows)):
            return None
        record = self._rows[index.row()]
        if role == Qt.DisplayRole or role == Roles.NAME:
            return record.name
        if role == Qt.ToolTipRole or role == Roles.FILE_PATH:
            return record.file_path
        if role == Roles.ASSET_ID:
            return record.id
        if role == Roles.ASSET_TYPE:
            return record.asset_type.value
        if role == Roles.SIZE:
            return record.size_bytes
        if role == Roles.DIMENSIONS:
            return (record.width, record.height) if record.has_dimensions else None
        if role == Roles.IS_FAVORITE:
            return record.is_favorite
        if role == Roles.IS_HIDDEN:
            return record.is_hidden
        if role == Roles.IS_DELETED:
            return record.is_deleted
        if role == Roles.RATING:
            return record.rating
        if role == Roles.TAGS:
            return list(record.tags)
        if role == Roles.DOMINANT_COLOR:
            return record.dominant_color
        if role == Roles.THUMBNAIL:
            return record.thumbnail_path
        if role == Roles.DATE_ADDED:
            return record.created_at.isoformat() if record.created_at else None
        if role == Roles.IS_SELECTED:
            return record.id in self._selected
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return role_names(super().roleNames())

    def canFetchMore(self, parent: QModelIndex = QModelIndex()) -> bool:
        if parent.isValid():
            return False
        return bool(self._view_model.has_more.value) and not self._view_model.loading.value

    def fetchMore(self, parent: QModelIndex = QModelIndex()) -> None:
        if parent.isValid():
            return
        self._view_model.on_sentinel_visible()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def record_at(self, row: int) -> Optional[AssetRecord]:
        return self._rows[row] if 0 <= row < len(self._rows) else None

    def row_of(self, asset_id: int) -> int:
        return self._row_by_id.get(asset_id, -1)

    def _reindex(self) -> None:
        self._row_by_id = {record.id: row for row, record in enumerate(self._rows)}

    def _on_items_updated(self, records: List[AssetRecord]) -> None:
        old_ids = [record.id for record in self._rows]
        new_ids = [record.id for record in records]
        if new_ids[: len(old_ids)] == old_ids:
            for row, record in enumerate(records[: len(old_ids)]):
                if record != self._rows[row]:
                    self._rows[row] = record
                    index = self.index(row, 0)
                    self.dataChanged.emit(index, index, [])
            if len(new_ids) > len(old_ids):
                self.beginInsertRows(QModelIndex(), len(old_ids), len(new_ids) - 1)
                self._rows.extend(records[len(old_ids):])
                self.endInsertRows()
        else:
            self.beginResetModel()
            self._rows = list(records)
            self.endResetModel()
        self._reindex()

    def _on_selection_changed(self, selected: frozenset) -> None:
        changed = selected.symmetric_difference(self._selected)
        self._selected = selected
        for asset_id in changed:
            row = self._row_by_id.get(asset_id)
            if row is not None:
                index = self.index(row, 0)
                self.dataChanged.emit(index, index, [Roles.IS_SELECTED])
