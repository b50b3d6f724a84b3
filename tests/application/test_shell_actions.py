"""Tests for ShellActions."""

import logging
from unittest.mock import Mock

from eclat.application.services import AssetCache, ShellActions
from eclat.errors.handler import ErrorHandler
from eclat.events.bus import EventBus

from fakes import RecordingSink, make_asset


def _actions():
    cache = AssetCache()
    cache.put_records([make_asset(1)])
    shell = Mock()
    sink = RecordingSink()
    actions = ShellActions(shell, cache, ErrorHandler(logging.getLogger("tests"), EventBus(), sink))
    return actions, shell, sink


def test_reveal_passes_file_path():
    actions, shell, sink = _actions()

    assert actions.reveal(1) is True

    shell.reveal.assert_called_once_with("/library/textures/asset_1.png")
    assert sink.notifications == []


def test_open_failure_is_reported():
    actions, shell, sink = _actions()
    shell.open_default.side_effect = FileNotFoundError("missing")

    assert actions.open_default(1) is False

    assert len(sink.notifications) == 1
    assert sink.notifications[0].title == "System Error"
    assert sink.notifications[0].message.startswith("Could not open file.")


def test_unknown_asset_is_ignored():
    actions, shell, _ = _actions()

    assert actions.reveal(42) is False
    shell.reveal.assert_not_called()
