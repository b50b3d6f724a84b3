import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from eclat.application.interfaces import Notification, NotificationLevel, NotificationSink
from eclat.events.bus import Event, EventBus


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(kw_only=True)
class ErrorOccurredEvent(Event):
    error: Exception
    severity: ErrorSeverity
    title: str = ""
    context: dict = field(default_factory=dict)


class ErrorHandler:
    """Single route for failures: log, publish on the bus, notify the user."""

    def __init__(
        self,
        logger: logging.Logger,
        event_bus: EventBus,
        notifications: Optional[NotificationSink] = None,
    ):
        self._logger = logger
        self._events = event_bus
        self._notifications = notifications

    def set_notification_sink(self, sink: Optional[NotificationSink]) -> None:
        self._notifications = sink

    def handle(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        title: str = "Operation Failed",
        context: dict = None,
    ):
        log_method = getattr(self._logger, severity.value, self._logger.error)
        log_method("%s: %s (%s)", error.__class__.__name__, error, context or {})

        self._events.publish(ErrorOccurredEvent(
            error=error,
            severity=severity,
            title=title,
            context=context or {},
        ))

        if self._notifications is not None and severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self._notifications.notify(Notification(
                level=NotificationLevel.ERROR,
                title=title,
                message=str(error) or error.__class__.__name__,
            ))
