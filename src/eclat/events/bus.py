import logging
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type


@dataclass(kw_only=True)
class Event:
    """Base class for everything published on the :class:`EventBus`."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(eq=False)
class Subscription:
    """Handle returned by subscribe(); ``cancel()`` detaches the handler.

    Cancelling is idempotent: the handler is removed from the bus on the first
    call and later calls do nothing.
    """
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Type = Event
    handler: Callable = field(default=lambda e: None)
    active: bool = True
    _detach: Optional[Callable[["Subscription"], None]] = field(default=None, repr=False)

    def cancel(self):
        if not self.active:
            return
        self.active = False
        if self._detach is not None:
            detach, self._detach = self._detach, None
            detach(self)


class EventBus:
    """Synchronous publish/subscribe hub.

    Handlers run in subscription order on the publishing thread.  A failing
    handler is logged and does not prevent the remaining handlers from running.
    """

    def __init__(self, logger: logging.Logger = None):
        self._logger = logger or logging.getLogger(__name__)
        self._handlers: Dict[Type[Event], List[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], handler: Callable) -> Subscription:
        sub = Subscription(event_type=event_type, handler=handler, _detach=self._remove)
        with self._lock:
            self._handlers[event_type].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription):
        subscription.cancel()

    def publish(self, event: Event):
        event_type = type(event)

        with self._lock:
            subs = list(self._handlers[event_type])

        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.handler(event)
            except Exception as e:
                self._logger.error("Handler failed for %s: %s", event_type.__name__, e)

    def subscriber_count(self, event_type: Type[Event]) -> int:
        with self._lock:
            return sum(1 for sub in self._handlers.get(event_type, ()) if sub.active)

    def clear(self):
        """Cancel every subscription still registered on the bus."""
        with self._lock:
            subs = [sub for store in self._handlers.values() for sub in store]
        for sub in subs:
            sub.cancel()

    def _remove(self, subscription: Subscription):
        with self._lock:
            subs = self._handlers.get(subscription.event_type)
            if not subs:
                return
            try:
                subs.remove(subscription)
            except ValueError:
                pass
