"""Events pushed by the catalog service or emitted by the engine itself."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .domain_events import DomainEvent


class ScanState(str, Enum):
    SCANNING = "scanning"
    IDLE = "idle"


@dataclass(kw_only=True)
class CatalogChangedEvent(DomainEvent):
    reason: str = ""


@dataclass(kw_only=True)
class ScanStatusEvent(DomainEvent):
    state: ScanState = ScanState.IDLE


@dataclass(kw_only=True)
class ScanProgressEvent(DomainEvent):
    current: int = 0
    total: int = 0
    last_item: str = ""

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.current / self.total * 100.0


@dataclass(kw_only=True)
class BackendToastEvent(DomainEvent):
    level: str = "info"
    title: str = ""
    message: str = ""


@dataclass(kw_only=True)
class AssetsMutatedEvent(DomainEvent):
    """Published by the mutation coordinator after a committed change."""

    kind: str = ""
    asset_ids: tuple[int, ...] = field(default_factory=tuple)
    collection_id: Optional[int] = None
