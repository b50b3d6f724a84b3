"""Synchronous callbacks for engine state, usable without Qt.

``Signal`` carries engine notifications such as ``snapshot_changed`` and
``page_loaded``; ``ObservableProperty`` holds view state that widgets bind to.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)


class Signal:
    """Ordered handler list; a failing handler is logged and skipped.

    Handlers run on the emitting thread, in connection order.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._handlers: list[Callable[..., Any]] = []
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, handlers={self.handler_count})"

    def connect(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Register *handler* once and return it, so it can decorate."""
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
        return handler

    def disconnect(self, handler: Callable[..., Any]) -> None:
        """Raises ``ValueError`` when *handler* is not connected."""
        with self._lock:
            self._handlers.remove(handler)

    def disconnect_all(self) -> None:
        with self._lock:
            self._handlers.clear()

    def emit(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            handlers = tuple(self._handlers)
        for handler in handlers:
            try:
                handler(*args, **kwargs)
            except Exception:
                LOGGER.exception("[SIGNAL] %s handler %r failed", self.name or "anonymous", handler)

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)


class ObservableProperty:
    """Value holder emitting ``changed(new_value, old_value)`` on inequality."""

    def __init__(self, initial_value: Any = None, name: str = "") -> None:
        self._value = initial_value
        self.changed = Signal(name)

    def __repr__(self) -> str:
        return f"ObservableProperty({self._value!r})"

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        self.set(new_value)

    def set(self, new_value: Any) -> bool:
        """Store *new_value*; returns whether it differed from the old one."""
        if self._value == new_value:
            return False
        old_value, self._value = self._value, new_value
        self.changed.emit(new_value, old_value)
        return True
