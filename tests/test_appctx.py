"""Tests for CatalogContext wiring."""

import asyncio

import pytest

from eclat.appctx import CatalogContext
from eclat.domain.models import Mode
from eclat.events.catalog_events import ScanState, ScanStatusEvent
from eclat.settings import EngineSettings

from fakes import FakeCatalogBackend, RecordingSink, make_asset


def _context(sink=None):
    backend = FakeCatalogBackend(make_asset(i) for i in range(1, 4))
    return CatalogContext.create(backend, EngineSettings.defaults(), notifications=sink), backend


def test_components_are_wired():
    async def scenario():
        context, backend = _context()
        await context.query.load_next_page()
        context.selection.select_single(1)
        context.selection.select_range(3)
        assert context.selection.selected == frozenset({1, 2, 3})

        context.filters.set_mode(Mode.trash())

        assert context.selection.selected == frozenset()
        await context.close()

    asyncio.run(scenario())


def test_close_is_idempotent():
    async def scenario():
        context, backend = _context()
        async with context:
            pass
        await context.close()

        assert context.closed
        assert backend.closed
        assert context.bridge.disposed
        assert context.event_bus.subscriber_count(ScanStatusEvent) == 0

    asyncio.run(scenario())


def test_push_stream_requires_backend_support():
    async def scenario():
        context, _ = _context()
        assert context.start_push_stream() is None
        await context.close()

    asyncio.run(scenario())


def test_push_messages_reach_the_bridge():
    async def scenario():
        context, backend = _context()

        async def push_events():
            yield "scan_status", "scanning"

        backend.push_events = push_events
        task = context.start_push_stream()
        assert await task == 1
        assert context.bridge.scanning.value is True
        assert context.event_bus.subscriber_count(ScanStatusEvent) == 1
        await context.close()

    asyncio.run(scenario())


def test_notification_sink_can_be_swapped():
    async def scenario():
        sink = RecordingSink()
        context, backend = _context()
        context.set_notification_sink(sink)
        await context.query.load_next_page()

        await context.mutations.set_hidden(1, True)

        assert [n.title for n in sink.notifications] == ["Hidden"]
        await context.close()

    asyncio.run(scenario())


def test_settings_shape_the_first_snapshot():
    settings = EngineSettings.defaults()
    context, _ = _context()
    assert context.filters.snapshot == settings.initial_snapshot()
    assert context.shell is None
    assert ScanState.IDLE.value == "idle"


def test_desktop_shell_is_built_on_request():
    pytest.importorskip("PySide6.QtGui")
    from eclat.infrastructure.desktop_shell import QtDesktopShell

    backend = FakeCatalogBackend([make_asset(1)])
    context = CatalogContext.create(backend, EngineSettings.defaults(), desktop_shell=True)

    assert isinstance(context.shell._shell, QtDesktopShell)
