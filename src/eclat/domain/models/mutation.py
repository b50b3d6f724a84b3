from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class MutationStatus(str, Enum):
    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (MutationStatus.COMMITTED, MutationStatus.ROLLED_BACK)


@dataclass
class PendingMutation:
    """Lifecycle record of one optimistic edit on one asset.

    ``previous`` holds the pre-mutation values of exactly the fields in
    ``patch``.  ``sequence`` is monotonically increasing per ``entity_id``.
    """

    entity_id: int
    sequence: int
    kind: str
    patch: dict[str, Any]
    previous: dict[str, Any] = field(default_factory=dict)
    status: MutationStatus = MutationStatus.IDLE
    error: Optional[BaseException] = None

    def mark_optimistic(self, previous: dict[str, Any]) -> None:
        if self.status is not MutationStatus.IDLE:
            raise RuntimeError(f"mutation {self.kind}#{self.sequence} already started")
        self.previous = dict(previous)
        self.status = MutationStatus.OPTIMISTIC

    def mark_committed(self) -> None:
        self._finish(MutationStatus.COMMITTED)

    def mark_rolled_back(self, error: BaseException) -> None:
        self.error = error
        self._finish(MutationStatus.ROLLED_BACK)

    def _finish(self, status: MutationStatus) -> None:
        if self.status is not MutationStatus.OPTIMISTIC:
            raise RuntimeError(
                f"mutation {self.kind}#{self.sequence} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
