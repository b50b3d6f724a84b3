from dataclasses import dataclass, field
from enum import Enum
from typing import List

from eclat.config import DEFAULT_PAGE_SIZE
from eclat.domain.models import AssetRecord


@dataclass
class PageResult:
    """One page of assets as returned by the catalog service."""

    items: List[AssetRecord] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total_count

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0 or self.total_count <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size


class EmptyState(str, Enum):
    NONE = "none"
    EMPTY_LIBRARY = "empty-library"
    NO_MATCHES = "no-matches"
