"""PersistenceAdapter Protocol: the interface storage backends implement."""

from collections.abc import Iterable, Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from autocrud.query.types import FilterPredicate
from autocrud.schema import Schema


@runtime_checkable
class Transaction(Protocol):
    """Operations available inside one transactional scope.

    Every predicate list is ANDed. ``sort`` is the raw request token; the
    implementation must validate it before it reaches the store.
    """

    def insert(self, record: Any) -> Any: ...

    def update(
        self,
        schema: Schema,
        predicates: Sequence[FilterPredicate],
        values: dict[str, Any],
    ) -> int: ...

    def delete(self, schema: Schema, predicates: Sequence[FilterPredicate]) -> int: ...

    def first(self, schema: Schema, predicates: Sequence[FilterPredicate]) -> Any | None: ...

    def find(
        self,
        schema: Schema,
        predicates: Sequence[FilterPredicate],
        projection: tuple[str, ...] = (),
        sort: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Any]: ...

    def count(self, schema: Schema, predicates: Sequence[FilterPredicate]) -> int: ...


@runtime_checkable
class PersistenceAdapter(Protocol):
    """Interface all persistence adapters must implement.

    ``transaction()`` opens a scope that commits when the block exits
    normally and rolls back when it raises. Storage failures surface as
    PersistenceError.
    """

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def initialize(self, record_types: Iterable[type]) -> None: ...

    def transaction(self) -> AbstractContextManager[Transaction]: ...
