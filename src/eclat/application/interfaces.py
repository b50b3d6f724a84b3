"""Contracts between the engine and the outside world.

``CatalogBackend`` is the request/response side of the catalog service.  The
sinks are collaborators owned by the presentation layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Sequence

from eclat.application.dtos import PageResult
from eclat.domain.models import AggregateStats, AssetRecord, QuerySnapshot, ScanProgress


class CatalogBackend(ABC):
    """Interface of the remote catalog service."""

    @abstractmethod
    async def fetch_assets(self, snapshot: QuerySnapshot, page: int) -> PageResult:
        """Return page *page* (1-based) of the assets matching *snapshot*."""

    @abstractmethod
    async def fetch_aggregate_stats(self) -> AggregateStats:
        pass

    @abstractmethod
    async def fetch_available_colors(self) -> list[str]:
        pass

    @abstractmethod
    async def fetch_asset(self, asset_id: int) -> AssetRecord:
        pass

    @abstractmethod
    async def mutate_asset_fields(self, asset_id: int, patch: dict[str, Any]) -> AssetRecord:
        """Patch rating / description / favorite and return the stored record."""

    @abstractmethod
    async def toggle_favorite(self, asset_id: int) -> Optional[AssetRecord]:
        pass

    @abstractmethod
    async def set_hidden(self, asset_id: int, hidden: bool) -> Optional[AssetRecord]:
        pass

    @abstractmethod
    async def rename_asset(self, asset_id: int, new_name: str) -> Optional[AssetRecord]:
        pass

    @abstractmethod
    async def update_tags(self, asset_id: int, tag_names: Sequence[str]) -> None:
        pass

    @abstractmethod
    async def delete_assets_permanently(self, asset_ids: Sequence[int]) -> None:
        pass

    @abstractmethod
    async def trash_assets(self, asset_ids: Sequence[int]) -> None:
        pass

    @abstractmethod
    async def restore_assets(self, asset_ids: Sequence[int]) -> None:
        pass

    @abstractmethod
    async def set_asset_type(self, asset_id: int, asset_type: str) -> None:
        pass

    @abstractmethod
    async def add_asset_to_collection(self, collection_id: int, asset_id: int) -> None:
        pass

    @abstractmethod
    async def remove_asset_from_collection(self, collection_id: int, asset_id: int) -> None:
        pass

    async def aclose(self) -> None:
        """Release transport resources.  The default backend holds none."""


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    title: str
    message: str


class NotificationSink(Protocol):
    """Toast area of the presentation layer."""

    def notify(self, notification: Notification) -> None: ...


class ProgressSink(Protocol):
    """Scan progress display of the presentation layer."""

    def update(self, progress: ScanProgress) -> None: ...


class ShellIntegration(Protocol):
    """Operating-system shell actions ("show in folder", "open")."""

    def reveal(self, path: str) -> None: ...

    def open_default(self, path: str) -> None: ...

__all__ = [
    "CatalogBackend",
    "Notification",
    "NotificationLevel",
    "NotificationSink",
    "PageResult",
    "ProgressSink",
    "ShellIntegration",
]
