"""Tests for SelectionController."""

from eclat.application.services import SelectionController
from eclat.domain.models import QuerySnapshot

ORDER = list(range(1, 11))


def _controller(order=ORDER):
    controller = SelectionController(lambda: order)
    emitted = []
    controller.selection_changed.connect(emitted.append)
    return controller, emitted


class TestSelectionController:
    def test_select_single_sets_anchor(self):
        controller, emitted = _controller()

        controller.select_single(4)

        assert controller.selected == frozenset({4})
        assert controller.anchor == 4
        assert emitted == [frozenset({4})]

    def test_range_selection_in_both_directions(self):
        controller, _ = _controller()
        controller.select_single(3)

        controller.select_range(7)
        assert controller.selected == frozenset({3, 4, 5, 6, 7})
        assert controller.anchor == 3

        controller.select_range(1)
        assert controller.selected == frozenset({1, 2, 3})
        assert controller.anchor == 3

    def test_range_without_anchor_is_noop(self):
        controller, emitted = _controller()

        controller.select_range(5)

        assert controller.selected == frozenset()
        assert emitted == []

    def test_range_to_unloaded_item_is_noop(self):
        controller, _ = _controller()
        controller.select_single(2)

        controller.select_range(42)

        assert controller.selected == frozenset({2})

    def test_explicit_order_overrides_provider(self):
        controller, _ = _controller()
        controller.select_single(10)

        controller.select_range(1, order=[10, 5, 1])

        assert controller.selected == frozenset({10, 5, 1})

    def test_toggle_multi_moves_anchor(self):
        controller, _ = _controller()
        controller.select_single(2)

        controller.toggle_multi(5)
        assert controller.selected == frozenset({2, 5})
        assert controller.anchor == 5

        controller.toggle_multi(2)
        assert controller.selected == frozenset({5})
        assert controller.anchor == 2

    def test_unloaded_ids_cannot_be_selected(self):
        controller, emitted = _controller()
        controller.select_single(2)

        controller.select_single(42)
        controller.toggle_multi(43)

        assert controller.selected == frozenset({2})
        assert controller.anchor == 2
        assert emitted == [frozenset({2})]

    def test_without_order_provider_any_id_is_accepted(self):
        controller = SelectionController()

        controller.select_single(42)
        controller.toggle_multi(43)

        assert controller.selected == frozenset({42, 43})

    def test_set_selection_and_clear(self):
        controller, emitted = _controller()

        controller.set_selection([6, 7])
        assert controller.anchor == 6
        controller.clear_selection()
        controller.clear_selection()

        assert controller.selected == frozenset()
        assert controller.anchor is None
        assert len(emitted) == 2

    def test_discard_drops_anchor(self):
        controller, _ = _controller()
        controller.select_single(3)
        controller.select_range(5)

        controller.discard([3])

        assert controller.selected == frozenset({4, 5})
        assert controller.anchor is None

    def test_snapshot_change_clears(self):
        controller, _ = _controller()
        controller.set_selection([1, 2])

        controller.on_snapshot_changed(QuerySnapshot())

        assert len(controller) == 0

    def test_replaced_accumulation_prunes_missing_ids(self):
        controller, _ = _controller()
        controller.set_selection([1, 2, 9])

        controller.on_accumulation_replaced("key", (1, 2, 3))

        assert controller.selected == frozenset({1, 2})
        assert controller.is_selected(1)
