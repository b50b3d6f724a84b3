"""Tests for FilterStore."""

import logging

from eclat.application.services import FilterStore
from eclat.domain.models import Mode, QuerySnapshot, SortField


def _store():
    store = FilterStore(QuerySnapshot(page_size=20))
    changes = []
    store.snapshot_changed.connect(changes.append)
    return store, changes


class TestFilterStore:
    def test_set_filters_emits_new_snapshot(self):
        store, changes = _store()

        snapshot = store.set_filters(search="  rock ", tags=["wood"])

        assert snapshot.criteria.search == "rock"
        assert snapshot.criteria.tags == frozenset({"wood"})
        assert changes == [snapshot]

    def test_same_value_is_silent(self):
        store, changes = _store()
        store.set_filters(search="rock")

        store.set_filters(search="rock ")
        store.set_mode(Mode.all())

        assert len(changes) == 1

    def test_unknown_filter_is_logged_and_ignored(self, caplog):
        store, changes = _store()

        with caplog.at_level(logging.WARNING):
            snapshot = store.set_filters(colour="red")

        assert snapshot == QuerySnapshot(page_size=20)
        assert changes == []
        assert "colour" in caplog.text

    def test_invalid_value_is_ignored_but_valid_ones_apply(self):
        store, _ = _store()

        snapshot = store.set_filters(rating_range=("x", 2), search="tile")

        assert snapshot.criteria.rating_range == (0, 5)
        assert snapshot.criteria.search == "tile"

    def test_reset_filters_keeps_mode_and_sort(self):
        store, _ = _store()
        store.set_mode("favorites")
        store.set_sort("filename")
        store.set_filters(search="x")

        snapshot = store.reset_filters()

        assert snapshot.criteria.search == ""
        assert snapshot.mode == Mode.favorites()
        assert snapshot.sort_field is SortField.FILE_NAME

    def test_set_sort_keeps_direction_unless_given(self):
        store, _ = _store()

        assert store.set_sort("filesize").sort_desc is True
        assert store.set_sort("filesize", desc=False).sort_desc is False
        assert store.toggle_sort_direction().sort_desc is True

    def test_page_size_is_at_least_one(self):
        store, _ = _store()
        assert store.set_page_size(0).page_size == 1

    def test_invalid_page_size_is_ignored(self, caplog):
        store, changes = _store()

        with caplog.at_level(logging.WARNING):
            snapshot = store.set_page_size("twenty")

        assert snapshot.page_size == 20
        assert changes == []
        assert "twenty" in caplog.text

    def test_unknown_mode_is_ignored(self, caplog):
        store, changes = _store()
        store.set_mode("favorites")

        with caplog.at_level(logging.WARNING):
            snapshot = store.set_mode("bogus")

        assert snapshot.mode == Mode.favorites()
        assert len(changes) == 1
        assert "bogus" in caplog.text

    def test_set_mode_accepts_strings_and_modes(self):
        store, changes = _store()

        store.set_mode("trash")
        store.set_mode(Mode.collection(9))

        assert store.mode == Mode.collection(9)
        assert [snapshot.mode for snapshot in changes] == [Mode.trash(), Mode.collection(9)]
