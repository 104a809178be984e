"""Translate untyped request parameters into a Query and filter predicates."""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from autocrud.codec import coerce
from autocrud.errors import BindError
from autocrud.query.types import RESERVED_PARAMS, FilterPredicate, Operator, Query
from autocrud.schema import FieldDescriptor, Schema

ParamMap = Mapping[str, Sequence[str]]

_LIST_PARAMS = frozenset({"omit", "select"})


def to_multimap(pairs: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """Fold (name, value) pairs into a name -> values multimap."""
    params: dict[str, list[str]] = {}
    for name, value in pairs:
        params.setdefault(name, []).append(value)
    return params


def bind_query(params: ParamMap) -> Query:
    """Bind the reserved structural parameters onto a Query.

    Raises:
        BindError: If a parameter has the wrong shape (e.g. page=abc)
    """
    data: dict[str, Any] = {}
    for name in Query.model_fields:
        values = _values(params.get(name))
        if not values:
            continue
        data[name] = list(values) if name in _LIST_PARAMS else values[0]

    try:
        return Query.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise BindError(f"Invalid query parameter '{location}': {first['msg']}") from e


def build_predicate(
    field: FieldDescriptor, values: Sequence[Any], exact: bool = False
) -> FilterPredicate:
    """Build the predicate for one parameter.

    Several values match by membership. A single value matches by substring,
    or by equality when ``exact`` (field-addressed endpoints).
    """
    if len(values) > 1:
        return FilterPredicate(
            field=field,
            operator=Operator.IN,
            values=tuple(coerce(field, v) for v in values),
        )
    if exact:
        return FilterPredicate(
            field=field, operator=Operator.EQUALS, values=(coerce(field, values[0]),)
        )
    return FilterPredicate(field=field, operator=Operator.LIKE, values=(str(values[0]),))


def translate(
    params: ParamMap, schema: Schema, exact: bool = False
) -> tuple[Query, list[FilterPredicate]]:
    """Split request parameters into a Query and filter predicates.

    Reserved names never become predicates, even when a field shares the
    name. Unknown names are ignored.
    """
    query = bind_query(params)

    predicates: list[FilterPredicate] = []
    for name, raw_values in params.items():
        if name in RESERVED_PARAMS:
            continue
        field = schema.resolve(name)
        values = _values(raw_values)
        if field is None or not values:
            continue
        predicates.append(build_predicate(field, values, exact=exact))

    return query, predicates


def _values(raw: Sequence[str] | str | None) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    return list(raw)
