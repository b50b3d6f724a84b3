"""Tests for QueryEngine paging, invalidation and aggregates."""

import asyncio

from eclat.application.dtos import EmptyState
from eclat.config import AGGREGATE_STATS
from eclat.domain.models import Mode
from eclat.errors import BackendError, NotFoundError, RequestTimeoutError

from fakes import Engine, FakeCatalogBackend, make_asset, settle


def _backend(count):
    return FakeCatalogBackend(make_asset(i) for i in range(1, count + 1))


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------

class TestPaging:
    def test_pages_accumulate_until_total(self):
        async def scenario():
            engine = Engine(_backend(45))
            query = engine.query

            assert query.has_more
            first = await query.load_next_page()
            assert len(first.items) == 20
            assert query.total_count == 45
            assert query.has_more

            await query.load_next_page()
            await query.load_next_page()

            assert query.loaded_ids() == list(range(1, 46))
            assert not query.has_more
            assert await query.load_next_page() is None
            assert engine.backend.call_count("fetch_assets") == 3

        asyncio.run(scenario())

    def test_second_load_while_in_flight_is_noop(self):
        async def scenario():
            engine = Engine(_backend(45))
            gate = engine.backend.gate("fetch_assets")
            task = asyncio.create_task(engine.query.load_next_page())
            await settle()

            assert engine.query.is_loading
            assert await engine.query.load_next_page() is None
            assert engine.backend.call_count("fetch_assets") == 1

            gate.set()
            result = await task
            assert result.page == 1
            assert not engine.query.is_loading

        asyncio.run(scenario())

    def test_ensure_loaded_only_loads_once(self):
        async def scenario():
            engine = Engine(_backend(5))
            await engine.query.ensure_loaded()
            assert await engine.query.ensure_loaded() is None
            assert engine.backend.call_count("fetch_assets") == 1

        asyncio.run(scenario())

    def test_refresh_before_first_load_keeps_paging(self):
        async def scenario():
            engine = Engine(_backend(45))

            first = await engine.query.refresh()
            second = await engine.query.load_next_page()

            assert (first.page, second.page) == (1, 2)
            assert not engine.query.active_entry().stale
            assert engine.query.loaded_ids() == list(range(1, 41))
            assert await engine.query.ensure_loaded() is None
            pages = [args[1] for name, args in engine.backend.calls if name == "fetch_assets"]
            assert pages == [1, 2]

        asyncio.run(scenario())

    def test_invalidation_before_first_load_keeps_paging(self):
        async def scenario():
            engine = Engine(_backend(45))
            engine.query.active_entry()
            engine.cache.invalidate_lists()

            await engine.query.load_next_page()
            result = await engine.query.load_next_page()

            assert result.page == 2
            assert len(engine.query.items()) == 40

        asyncio.run(scenario())

    def test_page_signal_carries_key(self):
        async def scenario():
            engine = Engine(_backend(3))
            loaded = []
            engine.query.page_loaded.connect(lambda key, result: loaded.append((key, len(result.items))))

            await engine.query.load_next_page()

            assert loaded == [(engine.query.active_key, 3)]

        asyncio.run(scenario())


# ---------------------------------------------------------------------------
# Stale responses
# ---------------------------------------------------------------------------

class TestStaleResponses:
    def test_response_for_superseded_snapshot_is_dropped(self):
        async def scenario():
            engine = Engine(_backend(30))
            old_key = engine.query.active_key
            gate = engine.backend.gate("fetch_assets")
            task = asyncio.create_task(engine.query.load_next_page())
            await settle()

            engine.filters.set_mode(Mode.favorites())
            gate.set()

            assert await task is None
            assert engine.cache.peek(old_key).ids == []
            assert engine.query.items() == []

        asyncio.run(scenario())

    def test_returning_to_a_snapshot_reuses_its_pages(self):
        async def scenario():
            engine = Engine(_backend(30))
            await engine.query.load_next_page()
            engine.filters.set_mode("trash")
            await engine.query.load_next_page()

            engine.filters.set_mode("default")

            assert len(engine.query.items()) == 20
            assert await engine.query.ensure_loaded() is None

        asyncio.run(scenario())

    def test_invalidation_during_fetch_restarts_at_page_one(self):
        async def scenario():
            engine = Engine(_backend(30))
            await engine.query.load_next_page()
            gate = engine.backend.gate("fetch_assets")
            task = asyncio.create_task(engine.query.load_next_page())
            await settle()

            assert await engine.query.refresh() is None
            engine.backend.assets.pop(1)
            gate.set()
            result = await task

            assert result.page == 1
            assert engine.query.loaded_ids() == list(range(2, 22))
            assert engine.backend.calls[-1] == ("fetch_assets", (engine.query.active_key, 1))

        asyncio.run(scenario())

    def test_refresh_replaces_accumulation_and_prunes_selection(self):
        async def scenario():
            engine = Engine(_backend(45))
            await engine.query.load_next_page()
            await engine.query.load_next_page()
            engine.selection.set_selection([5, 35])
            replaced = []
            engine.query.accumulation_replaced.connect(lambda key, ids: replaced.append(ids))

            await engine.query.refresh()

            assert replaced == [tuple(range(1, 21))]
            assert engine.query.active_entry().page_index == 1
            assert engine.selection.selected == frozenset({5})

        asyncio.run(scenario())

    def test_stale_list_keeps_items_visible_until_refetched(self):
        async def scenario():
            engine = Engine(_backend(10))
            await engine.query.load_next_page()

            engine.cache.invalidate_lists()

            assert len(engine.query.items()) == 10
            result = await engine.query.ensure_loaded()
            assert result.page == 1
            assert not engine.query.active_entry().stale

        asyncio.run(scenario())


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    def test_not_found_yields_empty_page(self):
        async def scenario():
            engine = Engine(_backend(3))
            engine.filters.set_mode(Mode.collection(99))
            engine.backend.fail_next("fetch_assets", NotFoundError("no such set", status_code=404))

            result = await engine.query.load_next_page()

            assert result.items == []
            assert engine.query.active_entry().loaded
            assert not engine.query.has_more
            assert engine.sink.notifications == []

        asyncio.run(scenario())

    def test_backend_error_is_reported_once_and_retryable(self):
        async def scenario():
            engine = Engine(_backend(3))
            failures = []
            engine.query.page_failed.connect(lambda key, exc: failures.append(exc))
            engine.backend.fail_next("fetch_assets", BackendError("Server error", status_code=500))

            assert await engine.query.load_next_page() is None
            assert isinstance(engine.query.last_error, BackendError)
            assert len(failures) == 1
            assert [n.title for n in engine.error_notifications] == ["Failed to load assets"]

            result = await engine.query.load_next_page()
            assert result.page == 1
            assert engine.query.last_error is None

        asyncio.run(scenario())

    def test_timeout_becomes_request_timeout_error(self):
        async def scenario():
            engine = Engine(_backend(3), timeout=0.01)
            engine.backend.gate("fetch_assets")

            assert await engine.query.load_next_page() is None
            assert isinstance(engine.query.last_error, RequestTimeoutError)
            assert not engine.query.is_loading

        asyncio.run(scenario())


# ---------------------------------------------------------------------------
# Aggregates and entities
# ---------------------------------------------------------------------------

class TestAggregates:
    def test_stats_are_cached_until_invalidated(self):
        async def scenario():
            engine = Engine(_backend(4))
            stats = await engine.query.get_stats()
            assert stats.total_assets == 4

            await engine.query.get_stats()
            assert engine.backend.call_count("fetch_aggregate_stats") == 1

            engine.cache.invalidate_aggregates([AGGREGATE_STATS])
            await engine.query.get_stats()
            assert engine.backend.call_count("fetch_aggregate_stats") == 2

        asyncio.run(scenario())

    def test_stats_invalidated_mid_fetch_stay_stale(self):
        async def scenario():
            engine = Engine(_backend(4))
            gate = engine.backend.gate("fetch_aggregate_stats")
            task = asyncio.create_task(engine.query.get_stats())
            await settle()

            engine.cache.invalidate_aggregates([AGGREGATE_STATS])
            gate.set()
            await task

            assert engine.cache.stats is not None
            assert engine.cache.needs_stats()

        asyncio.run(scenario())

    def test_stats_failure_is_reported_once(self):
        async def scenario():
            engine = Engine(_backend(1))
            engine.backend.fail_next("fetch_aggregate_stats", BackendError("down"))

            assert await engine.query.get_stats() is None
            assert [n.title for n in engine.error_notifications] == ["Failed to load statistics"]
            assert len(engine.sink.notifications) == 1

        asyncio.run(scenario())

    def test_colors_failure_is_reported_once(self):
        async def scenario():
            engine = Engine(_backend(1))
            engine.backend.fail_next("fetch_available_colors", BackendError("down"))

            assert await engine.query.get_colors(force=True) == []
            assert [n.title for n in engine.error_notifications] == ["Failed to load colors"]
            assert len(engine.sink.notifications) == 1

        asyncio.run(scenario())

    def test_colors(self):
        async def scenario():
            engine = Engine(_backend(1))
            assert await engine.query.get_colors() == ["#ff0000", "#00ff00"]
            await engine.query.get_colors()
            assert engine.backend.call_count("fetch_available_colors") == 1

        asyncio.run(scenario())

    def test_vanished_asset_is_evicted(self):
        async def scenario():
            engine = Engine(_backend(5))
            await engine.query.load_next_page()
            engine.backend.assets.pop(3)

            assert await engine.query.fetch_asset(3) is None

            assert 3 not in engine.query.loaded_ids()
            assert engine.query.total_count == 4

        asyncio.run(scenario())

    def test_fetch_asset_updates_cache(self):
        async def scenario():
            engine = Engine(_backend(2))
            await engine.query.load_next_page()
            engine.backend.assets[2] = engine.backend.assets[2].with_fields(rating=5)

            record = await engine.query.fetch_asset(2)

            assert record.rating == 5
            assert engine.query.items()[1].rating == 5

        asyncio.run(scenario())


# ---------------------------------------------------------------------------
# Empty states
# ---------------------------------------------------------------------------

class TestEmptyState:
    def test_nothing_loaded_yet(self):
        engine = Engine(_backend(0))
        assert engine.query.empty_state() is EmptyState.NONE

    def test_empty_library(self):
        async def scenario():
            engine = Engine(_backend(0))
            await engine.query.load_next_page()
            assert engine.query.empty_state() is EmptyState.EMPTY_LIBRARY

        asyncio.run(scenario())

    def test_filter_without_matches(self):
        async def scenario():
            engine = Engine(_backend(3))
            engine.filters.set_mode(Mode.favorites())
            await engine.query.load_next_page()
            assert engine.query.empty_state() is EmptyState.NO_MATCHES

            await engine.query.get_stats()
            assert engine.query.empty_state() is EmptyState.NO_MATCHES

        asyncio.run(scenario())
