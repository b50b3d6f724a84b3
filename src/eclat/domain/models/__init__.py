from .core import (
    ASSET_FIELDS,
    AggregateStats,
    AssetRecord,
    AssetType,
    CollectionRef,
    ScanProgress,
)
from .mutation import MutationStatus, PendingMutation
from .query import DEFAULT_FILTERS, DisplayMode, FilterCriteria, Mode, QuerySnapshot, SortField

__all__ = [
    "ASSET_FIELDS",
    "AggregateStats",
    "AssetRecord",
    "AssetType",
    "CollectionRef",
    "DEFAULT_FILTERS",
    "DisplayMode",
    "FilterCriteria",
    "Mode",
    "MutationStatus",
    "PendingMutation",
    "QuerySnapshot",
    "ScanProgress",
    "SortField",
]
