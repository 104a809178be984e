"""Schema introspection for record types."""

from autocrud.schema.introspect import FieldDescribable, clear_cache, describe, resolve
from autocrud.schema.types import FieldDescriptor, Schema

__all__ = [
    "FieldDescribable",
    "FieldDescriptor",
    "Schema",
    "clear_cache",
    "describe",
    "resolve",
]
