"""Result envelope for list reads."""

from collections.abc import Sequence
from typing import Any

from autocrud.query.types import Query


class Result(Query):
    """Echoed query parameters plus the page of records.

    Attributes:
        count: Number of records in ``result``
        total: Records matching the active filters, ignoring pagination
        result: The records themselves
    """

    count: int = 0
    total: int = 0
    result: list[Any] = []

    def to_dict(self) -> dict[str, Any]:
        """Wire shape; empty query echo fields are left out."""
        body: dict[str, Any] = {}
        for name in Query.model_fields:
            value = getattr(self, name)
            if value:
                body[name] = value
        body["count"] = self.count
        body["total"] = self.total
        body["result"] = self.result
        return body


def build(query: Query, items: Sequence[Any], total: int) -> Result:
    """Assemble the envelope; ``count`` is the number of items returned."""
    return Result(
        **query.model_dump(),
        count=len(items),
        total=total,
        result=list(items),
    )
