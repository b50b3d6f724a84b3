from .bus import Event, EventBus, Subscription
from .domain_events import DomainEvent
from .signal import ObservableProperty, Signal
from .catalog_events import (
    AssetsMutatedEvent,
    BackendToastEvent,
    CatalogChangedEvent,
    ScanProgressEvent,
    ScanState,
    ScanStatusEvent,
)

__all__ = [
    "AssetsMutatedEvent",
    "BackendToastEvent",
    "CatalogChangedEvent",
    "DomainEvent",
    "Event",
    "EventBus",
    "ObservableProperty",
    "ScanProgressEvent",
    "ScanState",
    "ScanStatusEvent",
    "Signal",
    "Subscription",
]
