"""Filter criteria, display modes and the canonical query snapshot."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

from eclat.config import (
    BYTES_IN_MB,
    DEFAULT_PAGE_SIZE,
    DIMENSION_FILTER_CEILING,
    MAX_DIMENSION,
    MAX_FILE_SIZE_MB,
    MAX_RATING,
)

from .core import AssetRecord


class SortField(str, Enum):
    DATE_ADDED = "dateadded"
    FILE_NAME = "filename"
    FILE_SIZE = "filesize"
    LAST_MODIFIED = "lastmodified"
    RATING = "rating"

    @classmethod
    def parse(cls, value: Any) -> "SortField":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.DATE_ADDED


class DisplayMode(str, Enum):
    ALL = "default"
    FAVORITES = "favorites"
    UNCATEGORIZED = "uncategorized"
    TRASH = "trash"
    COLLECTION = "collection"
    HIDDEN = "hidden"


@dataclass(frozen=True)
class Mode:
    """Display context selecting which subset of the catalog is queried."""

    kind: DisplayMode = DisplayMode.ALL
    collection_id: Optional[int] = None

    @classmethod
    def all(cls) -> "Mode":
        return cls(DisplayMode.ALL)

    @classmethod
    def favorites(cls) -> "Mode":
        return cls(DisplayMode.FAVORITES)

    @classmethod
    def uncategorized(cls) -> "Mode":
        return cls(DisplayMode.UNCATEGORIZED)

    @classmethod
    def trash(cls) -> "Mode":
        return cls(DisplayMode.TRASH)

    @classmethod
    def hidden(cls) -> "Mode":
        return cls(DisplayMode.HIDDEN)

    @classmethod
    def collection(cls, collection_id: int) -> "Mode":
        return cls(DisplayMode.COLLECTION, int(collection_id))

    @classmethod
    def parse(cls, value: Any) -> "Mode":
        if isinstance(value, Mode):
            return value
        return cls(DisplayMode(value))

    def matches(self, record: AssetRecord) -> bool:
        """Return ``True`` when *record* belongs to this mode's result set."""
        if self.kind is DisplayMode.TRASH:
            return record.is_deleted
        if record.is_deleted:
            return False
        if self.kind is DisplayMode.HIDDEN:
            return record.is_hidden
        if record.is_hidden:
            return False
        if self.kind is DisplayMode.FAVORITES:
            return record.is_favorite
        if self.kind is DisplayMode.UNCATEGORIZED:
            return not record.tags
        if self.kind is DisplayMode.COLLECTION:
            return self.collection_id is not None and record.in_collection(self.collection_id)
        return True

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "onlyFavorites": self.kind is DisplayMode.FAVORITES,
            "onlyUncategorized": self.kind is DisplayMode.UNCATEGORIZED,
            "isDeleted": self.kind is DisplayMode.TRASH,
            "isHidden": self.kind is DisplayMode.HIDDEN,
        }
        if self.kind is DisplayMode.COLLECTION and self.collection_id is not None:
            params["collectionId"] = self.collection_id
        return params


@dataclass(frozen=True)
class FilterCriteria:
    search: str = ""
    tags: frozenset[str] = frozenset()
    match_all_tags: bool = True
    file_types: frozenset[str] = frozenset()
    colors: frozenset[str] = frozenset()
    rating_range: tuple[int, int] = (0, MAX_RATING)
    width_range: tuple[int, int] = (0, MAX_DIMENSION)
    height_range: tuple[int, int] = (0, MAX_DIMENSION)
    # Megabytes, like the slider that drives it.
    file_size_range: tuple[int, int] = (0, MAX_FILE_SIZE_MB)
    date_range: tuple[Optional[str], Optional[str]] = (None, None)
    has_alpha: Optional[bool] = None

    def to_params(self) -> dict[str, Any]:
        """Render the criteria as wire parameters, omitting unbounded ranges."""
        params: dict[str, Any] = {"matchAll": self.match_all_tags}
        if self.search:
            params["fileName"] = self.search
        if self.tags:
            params["tags"] = sorted(self.tags)
        if self.file_types:
            params["fileType"] = sorted(self.file_types)
        if self.colors:
            params["dominantColors"] = sorted(self.colors)

        params["ratingMin"], params["ratingMax"] = self.rating_range

        min_width, max_width = self.width_range
        if min_width > 0:
            params["minWidth"] = min_width
        if max_width < DIMENSION_FILTER_CEILING:
            params["maxWidth"] = max_width
        min_height, max_height = self.height_range
        if min_height > 0:
            params["minHeight"] = min_height
        if max_height < DIMENSION_FILTER_CEILING:
            params["maxHeight"] = max_height

        min_size, max_size = self.file_size_range
        if min_size > 0:
            params["fileSizeMin"] = min_size * BYTES_IN_MB
        if max_size < MAX_FILE_SIZE_MB:
            params["fileSizeMax"] = max_size * BYTES_IN_MB

        date_from, date_to = self.date_range
        if date_from:
            params["dateFrom"] = date_from
        if date_to:
            params["dateTo"] = date_to
        if self.has_alpha is not None:
            params["hasAlphaChannel"] = self.has_alpha
        return params


DEFAULT_FILTERS = FilterCriteria()


def _as_frozenset(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    return frozenset(str(item).strip() for item in value if str(item).strip())


def _as_range(value: Any, lower: int, upper: int) -> tuple[int, int]:
    start, end = value
    start = max(lower, min(upper, int(start)))
    end = max(lower, min(upper, int(end)))
    if start > end:
        start, end = end, start
    return (start, end)


def _as_date(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def normalise_filter_value(name: str, value: Any) -> Any:
    """Coerce a partial filter update into the canonical stored form.

    Raises ``KeyError`` for unknown filter names and ``TypeError`` /
    ``ValueError`` for values that cannot be coerced.
    """
    if name == "search":
        return str(value or "").strip()
    if name in ("tags", "file_types", "colors"):
        return _as_frozenset(value)
    if name == "match_all_tags":
        return bool(value)
    if name == "rating_range":
        return _as_range(value, 0, MAX_RATING)
    if name in ("width_range", "height_range"):
        return _as_range(value, 0, MAX_DIMENSION)
    if name == "file_size_range":
        return _as_range(value, 0, MAX_FILE_SIZE_MB)
    if name == "date_range":
        if isinstance(value, dict):
            value = (value.get("from"), value.get("to"))
        start, end = value
        return (_as_date(start), _as_date(end))
    if name == "has_alpha":
        return None if value is None else bool(value)
    raise KeyError(name)


@dataclass(frozen=True)
class QuerySnapshot:
    """Immutable, hashable identity of one cached result sequence."""

    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    mode: Mode = field(default_factory=Mode)
    sort_field: SortField = SortField.DATE_ADDED
    sort_desc: bool = True
    page_size: int = DEFAULT_PAGE_SIZE

    def to_params(self, page: Optional[int] = None) -> dict[str, Any]:
        params = self.criteria.to_params()
        params.update(self.mode.to_params())
        params["sortBy"] = self.sort_field.value
        params["sortDesc"] = self.sort_desc
        params["pageSize"] = self.page_size
        if page is not None:
            params["pageNumber"] = page
        return params

    @property
    def cache_key(self) -> str:
        canonical = json.dumps(self.to_params(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def filter_names() -> Iterable[str]:
    return FilterCriteria.__dataclass_fields__.keys()


__all__ = [
    "DEFAULT_FILTERS",
    "DisplayMode",
    "FilterCriteria",
    "Mode",
    "QuerySnapshot",
    "SortField",
    "filter_names",
    "normalise_filter_value",
]
