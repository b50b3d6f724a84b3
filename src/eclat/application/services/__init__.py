"""Application services of the catalog engine."""

from .asset_cache import AssetCache, ListEntry
from .event_bridge import EventBridge
from .filter_store import FilterStore
from .mutation_coordinator import MutationCoordinator
from .query_engine import QueryEngine
from .selection_controller import SelectionController, SelectionState
from .shell_actions import ShellActions

__all__ = [
    "AssetCache",
    "EventBridge",
    "FilterStore",
    "ListEntry",
    "MutationCoordinator",
    "QueryEngine",
    "SelectionController",
    "SelectionState",
    "ShellActions",
]
