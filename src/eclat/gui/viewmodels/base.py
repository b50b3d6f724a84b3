"""BaseViewModel: pure Python, no Qt dependency.

Tracks event-bus subscriptions and signal connections so that concrete view
models release everything through ``dispose()``.
"""

from __future__ import annotations

from typing import Callable, Type

from eclat.events.bus import EventBus, Subscription
from eclat.events.signal import Signal


class BaseViewModel:
    """ViewModel base class: pure Python, no Qt dependency."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._connections: list[tuple[Signal, Callable]] = []

    def subscribe_event(
        self,
        event_bus: EventBus,
        event_type: Type,
        handler: Callable,
    ) -> Subscription:
        """Subscribe to an event type and track the subscription."""
        sub = event_bus.subscribe(event_type, handler)
        self._subscriptions.append(sub)
        return sub

    def connect_signal(self, signal: Signal, handler: Callable) -> None:
        signal.connect(handler)
        self._connections.append((signal, handler))

    def dispose(self) -> None:
        """Cancel all tracked subscriptions and signal connections."""
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions.clear()
        for signal, handler in self._connections:
            try:
                signal.disconnect(handler)
            except ValueError:
                pass
        self._connections.clear()
