"""Decodes push messages of the catalog service into bus events."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterable, Mapping, Optional

from eclat.events.bus import Event, EventBus
from eclat.events.catalog_events import (
    BackendToastEvent,
    CatalogChangedEvent,
    ScanProgressEvent,
    ScanState,
    ScanStatusEvent,
)

LOGGER = logging.getLogger(__name__)

PUSH_SOURCE = "push"


def _field(payload: Any, *names: str, default: Any = None) -> Any:
    if not isinstance(payload, Mapping):
        return default
    for name in names:
        if name in payload:
            return payload[name]
    return default


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def decode_push(name: str, payload: Any) -> Optional[Event]:
    """Return the bus event for one push message, or ``None`` if unknown."""
    if name in ("catalog_changed", "assets:changed"):
        reason = payload if isinstance(payload, str) else _field(payload, "reason", default="")
        return CatalogChangedEvent(reason=str(reason or name), source=PUSH_SOURCE)
    if name == "scan_status":
        status = payload if isinstance(payload, str) else _field(payload, "status", "state")
        try:
            state = ScanState(str(status).lower())
        except ValueError:
            LOGGER.warning("Unknown scan status %r", status)
            return None
        return ScanStatusEvent(state=state, source=PUSH_SOURCE)
    if name == "scan_progress":
        return ScanProgressEvent(
            current=_int(_field(payload, "current")),
            total=_int(_field(payload, "total")),
            last_item=str(_field(payload, "lastItem", "lastFile", "last_item", default="") or ""),
            source=PUSH_SOURCE,
        )
    if name == "toast":
        return BackendToastEvent(
            level=str(_field(payload, "type", "level", default="info")),
            title=str(_field(payload, "title", default="") or ""),
            message=str(_field(payload, "message", default="") or ""),
            source=PUSH_SOURCE,
        )
    return None


class PushChannel:
    """Publishes decoded push messages on the :class:`EventBus`."""

    def __init__(self, event_bus: EventBus) -> None:
        self._events = event_bus

    def dispatch(self, name: str, payload: Any = None) -> bool:
        event = decode_push(name, payload)
        if event is None:
            LOGGER.debug("[PUSH] Ignoring message %r", name)
            return False
        self._events.publish(event)
        return True

    async def consume(self, stream: AsyncIterable[tuple[str, Any]]) -> int:
        """Dispatch every message of *stream* until it ends; returns the count."""
        count = 0
        async for name, payload in stream:
            if self.dispatch(name, payload):
                count += 1
        return count
