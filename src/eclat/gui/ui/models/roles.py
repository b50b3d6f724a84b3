"""Role definitions shared by the catalog models."""

from __future__ import annotations

from enum import IntEnum
from typing import Dict

from PySide6.QtCore import Qt


class Roles(IntEnum):
    """Custom roles exposed to QML or widgets."""

    ASSET_ID = Qt.UserRole + 1
    FILE_PATH = Qt.UserRole + 2
    NAME = Qt.UserRole + 3
    ASSET_TYPE = Qt.UserRole + 4
    SIZE = Qt.UserRole + 5
    DIMENSIONS = Qt.UserRole + 6
    IS_FAVORITE = Qt.UserRole + 7
    IS_HIDDEN = Qt.UserRole + 8
    IS_DELETED = Qt.UserRole + 9
    RATING = Qt.UserRole + 10
    TAGS = Qt.UserRole + 11
    DOMINANT_COLOR = Qt.UserRole + 12
    THUMBNAIL = Qt.UserRole + 13
    DATE_ADDED = Qt.UserRole + 14
    IS_SELECTED = Qt.UserRole + 15


def role_names(base: Dict[int, bytes] | None = None) -> Dict[int, bytes]:
    """Return a mapping of Qt role numbers to byte names."""

    mapping: Dict[int, bytes] = {} if base is None else dict(base)
    mapping.update(
        {
            Roles.ASSET_ID: b"assetId",
            Roles.FILE_PATH: b"filePath",
            Roles.NAME: b"name",
            Roles.ASSET_TYPE: b"assetType",
            Roles.SIZE: b"size",
            Roles.DIMENSIONS: b"dimensions",
            Roles.IS_FAVORITE: b"isFavorite",
            Roles.IS_HIDDEN: b"isHidden",
            Roles.IS_DELETED: b"isDeleted",
            Roles.RATING: b"rating",
            Roles.TAGS: b"tags",
            Roles.DOMINANT_COLOR: b"dominantColor",
            Roles.THUMBNAIL: b"thumbnail",
            Roles.DATE_ADDED: b"dateAdded",
            Roles.IS_SELECTED: b"isSelected",
        }
    )
    return mapping


__all__ = ["Roles", "role_names"]
