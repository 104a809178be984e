"""Query parameters and filter predicates."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from autocrud.schema import FieldDescriptor, Schema


class Operator(str, Enum):
    """How a predicate compares a field against its values."""

    EQUALS = "eq"
    LIKE = "like"  # substring match
    IN = "in"


@dataclass(frozen=True)
class FilterPredicate:
    """A single filter condition derived from one request parameter."""

    field: FieldDescriptor
    operator: Operator
    values: tuple[Any, ...]

    @property
    def value(self) -> Any:
        return self.values[0] if self.values else None

    def to_dict(self) -> dict[str, Any]:
        value = list(self.values) if self.operator is Operator.IN else self.value
        return {"field": self.field.name, "operator": self.operator.value, "value": value}


class Query(BaseModel):
    """Structural query parameters of a list request.

    ``select`` and ``omit`` refine each other: with only ``omit`` given, the
    projection is every field minus the omitted ones. With neither given,
    no projection is applied.
    """

    sort: str | None = None
    omit: list[str] = Field(default_factory=list)
    select: list[str] = Field(default_factory=list)
    page: int | None = None
    size: int | None = None

    @property
    def limit(self) -> int | None:
        """Row limit, or None when ``size`` is absent or not positive."""
        if self.size is None or self.size <= 0:
            return None
        return self.size

    @property
    def offset(self) -> int:
        """Row offset; only meaningful with a limit. Pages count from 1."""
        limit = self.limit
        if limit is None:
            return 0
        page = self.page if self.page and self.page > 0 else 1
        return (page - 1) * limit

    def projection(self, schema: Schema) -> tuple[str, ...]:
        """Logical names of the fields to return, in schema order.

        An empty tuple means "no projection" (all fields). Names that do not
        resolve are dropped.
        """
        selected: set[str] = set()
        for name in self.select:
            field = schema.resolve(name)
            if field is not None:
                selected.add(field.name)

        if self.omit:
            if not selected:
                selected = set(schema.field_names)
            for name in self.omit:
                field = schema.resolve(name)
                if field is not None:
                    selected.discard(field.name)

        return tuple(name for name in schema.field_names if name in selected)


# Result envelope keys; see autocrud.result.Result
ENVELOPE_FIELDS = ("count", "total", "result")

RESERVED_PARAMS = frozenset(Query.model_fields) | frozenset(ENVELOPE_FIELDS)
