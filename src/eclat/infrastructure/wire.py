"""camelCase JSON payloads of the catalog service to and from domain objects."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from dateutil import parser

from eclat.application.dtos import PageResult
from eclat.domain.models import AggregateStats, AssetRecord, AssetType, CollectionRef
from eclat.errors import BackendError

LOGGER = logging.getLogger(__name__)

# Domain field -> wire key for PATCH /assets/{id}.
PATCHABLE_FIELDS = {
    "rating": "rating",
    "description": "description",
    "is_favorite": "isFavorite",
}


def _parse_dt(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parser.isoparse(str(value))
    except (ValueError, TypeError, OverflowError):
        return None


def _opt_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number or None


def _opt_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value)


def _extension(payload: Mapping[str, Any], file_name: str) -> str:
    extension = str(payload.get("fileExtension") or "")
    if not extension:
        dot = file_name.rfind(".")
        extension = file_name[dot:] if dot > 0 else ""
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension.lower()


def _tags(values: Optional[Iterable[Any]]) -> tuple[str, ...]:
    names = []
    for value in values or ():
        name = value.get("name") if isinstance(value, Mapping) else value
        if name:
            names.append(str(name))
    return tuple(names)


def _collections(values: Optional[Iterable[Any]]) -> tuple[CollectionRef, ...]:
    refs = []
    for value in values or ():
        if not isinstance(value, Mapping) or value.get("id") is None:
            continue
        refs.append(
            CollectionRef(
                id=int(value["id"]),
                name=str(value.get("name") or ""),
                color=_opt_str(value.get("customColor") or value.get("color")),
            )
        )
    return tuple(refs)


def decode_asset(payload: Mapping[str, Any]) -> AssetRecord:
    """Build an :class:`AssetRecord` from one asset object."""
    try:
        asset_id = int(payload["id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise BackendError(f"Malformed asset payload: {exc}") from exc
    file_name = str(payload.get("fileName") or "")
    return AssetRecord(
        id=asset_id,
        file_path=str(payload.get("filePath") or ""),
        name=file_name,
        extension=_extension(payload, file_name),
        asset_type=AssetType.parse(payload.get("fileType")),
        size_bytes=int(payload.get("fileSize") or 0),
        file_hash=_opt_str(payload.get("fileHash")),
        width=_opt_int(payload.get("imageWidth")),
        height=_opt_int(payload.get("imageHeight")),
        bit_depth=_opt_int(payload.get("bitDepth")),
        dominant_color=_opt_str(payload.get("dominantColor")),
        is_favorite=bool(payload.get("isFavorite", False)),
        is_hidden=bool(payload.get("isHidden", False)),
        is_deleted=bool(payload.get("isDeleted", False)),
        rating=int(payload.get("rating") or 0),
        description=str(payload.get("description") or ""),
        tags=_tags(payload.get("tags")),
        collections=_collections(payload.get("materialSets")),
        created_at=_parse_dt(payload.get("dateAdded")),
        modified_at=_parse_dt(payload.get("lastModified")),
        thumbnail_path=_opt_str(payload.get("thumbnailPath")),
        group_id=_opt_str(payload.get("groupId")),
    )


def decode_page(payload: Mapping[str, Any], page: int, page_size: int) -> PageResult:
    """Decode a paged response; ``totalCount``/``totalItems`` are both accepted."""
    if not isinstance(payload, Mapping):
        raise BackendError("Malformed page payload")
    items = [decode_asset(item) for item in payload.get("items") or ()]
    total = payload.get("totalCount", payload.get("totalItems", len(items)))
    return PageResult(
        items=items,
        total_count=int(total or 0),
        page=int(payload.get("page", payload.get("currentPage", page)) or page),
        page_size=int(payload.get("pageSize", page_size) or page_size),
    )


def decode_stats(payload: Mapping[str, Any]) -> AggregateStats:
    return AggregateStats(
        total_assets=int(payload.get("totalAssets") or 0),
        total_favorites=int(payload.get("totalFavorites") or 0),
        total_uncategorized=int(payload.get("totalUncategorized") or 0),
        total_hidden=int(payload.get("totalHidden") or 0),
        total_trash=int(payload.get("totalTrash", payload.get("totalTrashed")) or 0),
    )


def decode_colors(payload: Any) -> list[str]:
    if not isinstance(payload, list):
        raise BackendError("Malformed colors payload")
    return [str(color) for color in payload if color]


def encode_patch(patch: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a domain field patch into the PATCH request body."""
    body = {}
    for name, value in patch.items():
        key = PATCHABLE_FIELDS.get(name)
        if key is None:
            LOGGER.warning("Field %r cannot be patched remotely; skipped", name)
            continue
        body[key] = value
    return body


def encode_query(params: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Flatten snapshot parameters into repeated query pairs."""
    pairs: list[tuple[str, str]] = []
    for key in sorted(params):
        value = params[key]
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(item)) for item in value)
        elif isinstance(value, bool):
            pairs.append((key, "true" if value else "false"))
        else:
            pairs.append((key, str(value)))
    return pairs
