"""Cycle detection over single-parent trees.

Works for any record type with an integer `id` and a way to fetch its parent
(partners, partner categories).
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, TypeVar

from logging_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CycleDetected(ValueError):
    """Raised when a parent assignment would make a record its own ancestor."""

    def __init__(self, record_id, message: str | None = None) -> None:
        self.record_id = record_id
        super().__init__(
            message or f"Recursive hierarchy detected at record {record_id}"
        )


def check_no_cycle(node: T, get_parent: Callable[[T], Optional[T]]) -> bool:
    """Return False if following parent links from `node` ever loops.

    Each node is visited at most once, so this is linear in the chain depth.
    """

    seen = {node.id}
    current = get_parent(node)
    while current is not None:
        if current.id in seen:
            return False
        seen.add(current.id)
        current = get_parent(current)
    return True


def check_parent(
    records: Iterable[T],
    get_parent: Callable[[T], Optional[T]],
    *,
    message: str = "You cannot create recursive hierarchies.",
) -> None:
    """Raise `CycleDetected` for the first record whose parent chain loops."""

    for record in records:
        if not check_no_cycle(record, get_parent):
            logger.warning("Cycle detected on parent assignment id=%s", record.id)
            raise CycleDetected(record.id, message)
