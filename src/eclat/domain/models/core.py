from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional


class AssetType(str, Enum):
    MODEL = "model"
    IMAGE = "image"
    TEXTURE = "texture"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "AssetType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").lower())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class CollectionRef:
    """Membership of an asset in a named collection (material set)."""

    id: int
    name: str
    color: Optional[str] = None


@dataclass(frozen=True)
class AssetRecord:
    id: int
    file_path: str
    name: str
    extension: str
    asset_type: AssetType
    size_bytes: int
    file_hash: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bit_depth: Optional[int] = None
    dominant_color: Optional[str] = None
    is_favorite: bool = False
    is_hidden: bool = False
    is_deleted: bool = False
    rating: int = 0
    description: str = ""
    tags: tuple[str, ...] = ()
    collections: tuple[CollectionRef, ...] = ()
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    thumbnail_path: Optional[str] = None
    group_id: Optional[str] = None

    def with_fields(self, **patch: Any) -> "AssetRecord":
        """Return a copy with *patch* applied."""
        return replace(self, **patch)

    def field_values(self, names: Iterable[str]) -> dict[str, Any]:
        return {name: getattr(self, name) for name in names}

    def in_collection(self, collection_id: int) -> bool:
        return any(ref.id == collection_id for ref in self.collections)

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width) and bool(self.height)


ASSET_FIELDS: frozenset[str] = frozenset(f.name for f in fields(AssetRecord))

# Fields a mutation may never touch.
IMMUTABLE_FIELDS: frozenset[str] = frozenset({"id"})


@dataclass(frozen=True)
class AggregateStats:
    """Sidebar counters, used to tell an empty library from an empty filter."""

    total_assets: int = 0
    total_favorites: int = 0
    total_uncategorized: int = 0
    total_hidden: int = 0
    total_trash: int = 0


@dataclass(frozen=True)
class ScanProgress:
    current: int = 0
    total: int = 0
    last_item: str = ""
    scanning: bool = True

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0 if self.scanning else 100.0
        return min(100.0, self.current / self.total * 100.0)


__all__ = [
    "ASSET_FIELDS",
    "AggregateStats",
    "AssetRecord",
    "AssetType",
    "CollectionRef",
    "IMMUTABLE_FIELDS",
    "ScanProgress",
]
