"""Tests for EventBridge."""

import asyncio

from eclat.application.interfaces import Notification, NotificationLevel
from eclat.application.services import EventBridge
from eclat.config import AGGREGATE_COLORS, AGGREGATE_STATS
from eclat.domain.models import ScanProgress
from eclat.events.catalog_events import (
    BackendToastEvent,
    CatalogChangedEvent,
    ScanProgressEvent,
    ScanState,
    ScanStatusEvent,
)
from eclat.utils.aio import TaskTracker

from fakes import Engine, FakeCatalogBackend, RecordingSink, make_asset


def _bridge(engine, sink=None):
    tasks = TaskTracker()
    bridge = EventBridge(engine.bus, engine.cache, engine.query, tasks, progress=sink, notifications=sink)
    return bridge, tasks


class TestScanLifecycle:
    def test_scan_finishing_refreshes_stats_and_list(self):
        async def scenario():
            engine = Engine(FakeCatalogBackend(make_asset(i) for i in range(1, 4)))
            await engine.query.load_next_page()
            await engine.query.get_stats()
            bridge, tasks = _bridge(engine)

            engine.bus.publish(ScanStatusEvent(state=ScanState.SCANNING))
            assert bridge.scanning.value is True
            engine.backend.assets[4] = make_asset(4)
            engine.bus.publish(ScanStatusEvent(state=ScanState.IDLE))
            await tasks.drain()

            assert bridge.scanning.value is False
            assert engine.query.loaded_ids() == [1, 2, 3, 4]
            assert engine.cache.stats.total_assets == 4
            assert engine.backend.call_count("fetch_aggregate_stats") == 2
            assert engine.cache.is_aggregate_stale(AGGREGATE_COLORS)

        asyncio.run(scenario())

    def test_repeated_idle_does_not_refetch(self):
        async def scenario():
            engine = Engine(FakeCatalogBackend([make_asset(1)]))
            await engine.query.load_next_page()
            _, tasks = _bridge(engine)

            engine.bus.publish(ScanStatusEvent(state=ScanState.IDLE))
            await tasks.drain()
            engine.bus.publish(ScanStatusEvent(state=ScanState.IDLE))
            await tasks.drain()

            assert engine.backend.call_count("fetch_aggregate_stats") == 1
            assert engine.backend.call_count("fetch_assets") == 2

        asyncio.run(scenario())

    def test_idle_at_startup_then_paging_continues(self):
        async def scenario():
            engine = Engine(FakeCatalogBackend(make_asset(i) for i in range(1, 46)))
            _, tasks = _bridge(engine)

            engine.bus.publish(ScanStatusEvent(state=ScanState.IDLE))
            await tasks.drain()
            result = await engine.query.load_next_page()

            assert result.page == 2
            assert engine.query.loaded_ids() == list(range(1, 41))
            pages = [args[1] for name, args in engine.backend.calls if name == "fetch_assets"]
            assert pages == [1, 2]

        asyncio.run(scenario())

    def test_idle_without_running_loop_only_invalidates(self):
        engine = Engine(FakeCatalogBackend())
        _bridge(engine)
        entry = engine.query.active_entry()

        engine.bus.publish(ScanStatusEvent(state=ScanState.IDLE))

        assert entry.stale
        assert engine.cache.needs_stats()
        assert engine.backend.calls == []


class TestPushHandlers:
    def test_catalog_changed_invalidates(self):
        async def scenario():
            engine = Engine(FakeCatalogBackend([make_asset(1)]))
            await engine.query.load_next_page()
            await engine.query.get_stats()
            _bridge(engine)

            engine.bus.publish(CatalogChangedEvent(reason="import"))

            assert engine.query.active_entry().stale
            assert engine.cache.is_aggregate_stale(AGGREGATE_STATS)

        asyncio.run(scenario())

    def test_progress_goes_to_sink(self):
        engine = Engine(FakeCatalogBackend())
        sink = RecordingSink()
        _bridge(engine, sink)

        engine.bus.publish(ScanStatusEvent(state=ScanState.SCANNING))
        engine.bus.publish(ScanProgressEvent(current=3, total=12, last_item="rock.png"))

        assert sink.progress == [ScanProgress(current=3, total=12, last_item="rock.png", scanning=True)]
        assert sink.progress[0].percent == 25.0

    def test_toast_levels_are_mapped(self):
        engine = Engine(FakeCatalogBackend())
        sink = RecordingSink()
        _bridge(engine, sink)

        engine.bus.publish(BackendToastEvent(level="danger", title="Scan", message="Disk full"))
        engine.bus.publish(BackendToastEvent(level="mystery", title="Note", message="hi"))

        assert sink.notifications == [
            Notification(NotificationLevel.ERROR, "Scan", "Disk full"),
            Notification(NotificationLevel.INFO, "Note", "hi"),
        ]

    def test_toast_without_sink_is_logged(self, caplog):
        engine = Engine(FakeCatalogBackend())
        _bridge(engine)

        with caplog.at_level("INFO"):
            engine.bus.publish(BackendToastEvent(title="Scan", message="done"))

        assert "done" in caplog.text


class TestDispose:
    def test_dispose_is_idempotent_and_detaches(self):
        engine = Engine(FakeCatalogBackend())
        sink = RecordingSink()
        bridge, _ = _bridge(engine, sink)

        bridge.dispose()
        bridge.dispose()
        engine.bus.publish(BackendToastEvent(title="late", message="ignored"))

        assert bridge.disposed
        assert sink.notifications == []
        assert engine.bus.subscriber_count(ScanStatusEvent) == 0
