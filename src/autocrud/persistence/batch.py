"""Atomic application of multi-record writes.

A batch applies every item inside one transaction: either all items commit
or none do. The first failing item aborts the batch and rolls back the
transaction; its error then reaches the caller.
"""

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, TypeVar

from autocrud.persistence.adapter import PersistenceAdapter, Transaction

logger = logging.getLogger(__name__)

T = TypeVar("T")

ApplyOne = Callable[[Transaction, T], int]


class BatchState(str, Enum):
    IDLE = "idle"
    OPEN = "open"
    APPLYING = "applying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class BatchTransaction:
    """One batch over one transaction.

    Attributes:
        state: Current lifecycle state
        applied: Affected-row total of the items applied so far
    """

    def __init__(self, adapter: PersistenceAdapter):
        self.adapter = adapter
        self.state = BatchState.IDLE
        self.applied = 0

    def run(self, items: Iterable[Any], apply_one: ApplyOne[Any]) -> int:
        """Apply every item in input order; returns the summed affected count.

        An empty input is a no-op: it returns 0 without opening a transaction.
        """
        if self.state is not BatchState.IDLE:
            raise RuntimeError(f"Batch already {self.state.value}")

        items = list(items)
        if not items:
            return 0

        try:
            with self.adapter.transaction() as tx:
                self._enter(BatchState.OPEN)
                for index, item in enumerate(items):
                    self._enter(BatchState.APPLYING)
                    self.applied += apply_one(tx, item)
                    logger.debug("Applied batch item %d/%d", index + 1, len(items))
        except BaseException:
            self._enter(BatchState.ROLLED_BACK)
            raise

        self._enter(BatchState.COMMITTED)
        return self.applied

    def _enter(self, state: BatchState) -> None:
        if state is not self.state:
            logger.debug("Batch %s -> %s", self.state.value, state.value)
        self.state = state


def run_batch(adapter: PersistenceAdapter, items: Iterable[T], apply_one: ApplyOne[T]) -> int:
    """Apply ``apply_one(tx, item)`` for each item atomically.

    Args:
        adapter: Adapter providing the transaction
        items: Items to apply, in order
        apply_one: Applies one item and returns its affected-row count

    Returns:
        Total affected rows

    Raises:
        PersistenceError: On storage failure (after rollback)
        Exception: Whatever ``apply_one`` raised (after rollback)
    """
    return BatchTransaction(adapter).run(items, apply_one)
