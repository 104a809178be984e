"""Derive a Schema from a record type.

Record types describe themselves either through the ``FieldDescribable``
capability or by being SQLAlchemy mapped classes. Schemas are derived once
per type and cached for the life of the process.
"""

import logging
import threading
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from sqlalchemy import Column
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

from autocrud.errors import SchemaError
from autocrud.schema.types import FieldDescriptor, Schema

logger = logging.getLogger(__name__)


@runtime_checkable
class FieldDescribable(Protocol):
    """Capability for record types that enumerate their own fields."""

    @classmethod
    def __crud_fields__(cls) -> Iterable[FieldDescriptor]: ...


_schemas: dict[type, Schema] = {}
_lock = threading.Lock()


def describe(record_type: type) -> Schema:
    """Return the (cached) schema for a record type.

    Raises:
        SchemaError: If the type is neither FieldDescribable nor mapped
    """
    schema = _schemas.get(record_type)
    if schema is not None:
        return schema

    with _lock:
        schema = _schemas.get(record_type)
        if schema is None:
            schema = _derive(record_type)
            _schemas[record_type] = schema
            logger.debug(
                "Described %s: %s", record_type.__name__, ", ".join(schema.field_names)
            )
    return schema


def resolve(schema: Schema, name: str) -> FieldDescriptor | None:
    """Resolve a field by logical or storage name."""
    return schema.resolve(name)


def clear_cache() -> None:
    """Forget every derived schema. Primarily for testing."""
    with _lock:
        _schemas.clear()


def _derive(record_type: type) -> Schema:
    if callable(getattr(record_type, "__crud_fields__", None)):
        fields = tuple(record_type.__crud_fields__())  # type: ignore[attr-defined]
    else:
        fields = _mapped_fields(record_type)

    if not fields:
        raise SchemaError(f"{record_type.__name__} has no addressable fields")

    identifier = next((f for f in fields if f.is_identifier), None)
    return Schema(record_type=record_type, fields=fields, identifier=identifier)


def _mapped_fields(record_type: type) -> tuple[FieldDescriptor, ...]:
    mapper = sa_inspect(record_type, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise SchemaError(
            f"{getattr(record_type, '__name__', record_type)!r} is not a mapped "
            "record type and does not implement __crud_fields__"
        )

    fields: list[FieldDescriptor] = []
    identifier_taken = False
    for attr in mapper.column_attrs:
        column = attr.columns[0]
        if not isinstance(column, Column):
            # column_property() expressions are not addressable
            continue

        is_identifier = bool(column.primary_key) and not identifier_taken
        identifier_taken = identifier_taken or is_identifier
        fields.append(
            FieldDescriptor(
                name=attr.key,
                storage_name=column.name,
                python_type=_python_type(column),
                is_identifier=is_identifier,
            )
        )
    return tuple(fields)


def _python_type(column: Column) -> type:
    try:
        return column.type.python_type
    except NotImplementedError:
        return object
