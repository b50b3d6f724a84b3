"""Explicitly constructed context object wiring the catalog engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .application.interfaces import CatalogBackend, NotificationSink, ProgressSink, ShellIntegration
from .application.services import (
    AssetCache,
    EventBridge,
    FilterStore,
    MutationCoordinator,
    QueryEngine,
    SelectionController,
    ShellActions,
)
from .errors.handler import ErrorHandler
from .events.bus import EventBus
from .infrastructure.push import PushChannel
from .settings import EngineSettings, load_settings
from .utils.aio import TaskTracker
from .utils.logging import configure_logging, get_logger

LOGGER = get_logger()


@dataclass
class CatalogContext:
    """Container object owning every engine component for one backend.

    Built by :meth:`create`; ``await close()`` (or ``async with``) disposes
    the bridge, cancels background work and closes the backend.
    """

    settings: EngineSettings
    backend: CatalogBackend
    event_bus: EventBus
    cache: AssetCache
    filters: FilterStore
    errors: ErrorHandler
    query: QueryEngine
    selection: SelectionController
    mutations: MutationCoordinator
    bridge: EventBridge
    push: PushChannel
    tasks: TaskTracker
    shell: Optional[ShellActions] = None
    closed: bool = field(default=False, init=False)

    @classmethod
    def create(
        cls,
        backend: Optional[CatalogBackend] = None,
        settings: Optional[EngineSettings] = None,
        *,
        settings_path: Optional[Path] = None,
        notifications: Optional[NotificationSink] = None,
        progress: Optional[ProgressSink] = None,
        shell: Optional[ShellIntegration] = None,
        desktop_shell: bool = False,
        configure_logs: bool = False,
    ) -> "CatalogContext":
        if settings is None:
            settings = load_settings(settings_path) if settings_path is not None else EngineSettings.defaults()
        if configure_logs:
            configure_logging(settings.log_level)
        if backend is None:
            from .infrastructure.http_backend import HttpCatalogBackend

            backend = HttpCatalogBackend(settings.base_url, settings.timeout_seconds)
        if shell is None and desktop_shell:
            from .infrastructure.desktop_shell import QtDesktopShell

            shell = QtDesktopShell()

        event_bus = EventBus(get_logger("events"))
        tasks = TaskTracker()
        cache = AssetCache()
        filters = FilterStore(settings.initial_snapshot())
        errors = ErrorHandler(get_logger("errors"), event_bus, notifications)
        query = QueryEngine(backend, cache, filters, errors, settings.timeout_seconds)
        selection = SelectionController(query.loaded_ids)
        filters.snapshot_changed.connect(selection.on_snapshot_changed)
        query.accumulation_replaced.connect(selection.on_accumulation_replaced)
        mutations = MutationCoordinator(
            backend,
            cache,
            query,
            selection,
            errors,
            event_bus=event_bus,
            notifications=notifications,
            timeout=settings.timeout_seconds,
        )
        bridge = EventBridge(event_bus, cache, query, tasks, progress=progress, notifications=notifications)
        LOGGER.debug("Catalog context created for %s", settings.base_url)
        return cls(
            settings=settings,
            backend=backend,
            event_bus=event_bus,
            cache=cache,
            filters=filters,
            errors=errors,
            query=query,
            selection=selection,
            mutations=mutations,
            bridge=bridge,
            push=PushChannel(event_bus),
            tasks=tasks,
            shell=ShellActions(shell, cache, errors) if shell is not None else None,
        )

    def set_notification_sink(self, sink: Optional[NotificationSink]) -> None:
        self.errors.set_notification_sink(sink)
        self.mutations.set_notification_sink(sink)
        self.bridge.set_notification_sink(sink)

    def start_push_stream(self):
        """Consume the backend's push stream in the background, if it has one."""
        stream_factory = getattr(self.backend, "push_events", None)
        if stream_factory is None:
            LOGGER.info("Backend offers no push stream")
            return None
        return self.tasks.spawn(self.push.consume(stream_factory()))

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.bridge.dispose()
        await self.tasks.cancel_all()
        self.event_bus.clear()
        await self.backend.aclose()
        LOGGER.debug("Catalog context closed")

    async def __aenter__(self) -> "CatalogContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
