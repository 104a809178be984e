"""Schema types: field descriptors and the per-record-type schema."""

from dataclasses import dataclass, field
from typing import Any

from autocrud.errors import SchemaError


@dataclass(frozen=True)
class FieldDescriptor:
    """One addressable field of a record type.

    Attributes:
        name: Logical (attribute) name, e.g. "createdAt"
        storage_name: Column name in the store, e.g. "created_at"
        python_type: Python type values of this field are coerced to
        is_identifier: Whether this is the record's identifier field
    """

    name: str
    storage_name: str
    python_type: Any = object
    is_identifier: bool = False

    @property
    def names(self) -> tuple[str, ...]:
        """Logical and storage name, deduplicated."""
        if self.name == self.storage_name:
            return (self.name,)
        return (self.name, self.storage_name)


@dataclass(frozen=True)
class Schema:
    """Ordered field set of a record type.

    Storage names are unique within a schema. Lookup by either the logical
    or the storage name goes through ``resolve``.
    """

    record_type: type
    fields: tuple[FieldDescriptor, ...]
    identifier: FieldDescriptor | None = None
    _index: dict[str, FieldDescriptor] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        seen: dict[str, str] = {}
        for f in self.fields:
            if f.storage_name in seen:
                raise SchemaError(
                    f"Duplicate storage name '{f.storage_name}' used by both "
                    f"'{seen[f.storage_name]}' and '{f.name}' "
                    f"on {self.record_type.__name__}"
                )
            seen[f.storage_name] = f.name

        # Logical names win over storage names when the two collide
        for f in self.fields:
            self._index.setdefault(f.storage_name, f)
        for f in self.fields:
            self._index[f.name] = f

    @property
    def name(self) -> str:
        return self.record_type.__name__

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def resolve(self, name: str) -> FieldDescriptor | None:
        """Resolve a logical or storage name to its field, or None."""
        return self._index.get(name)

    def path_segments(self) -> list[tuple[str, FieldDescriptor]]:
        """Every name a field can be addressed by in a URL path.

        Each segment maps to the field ``resolve`` returns for it.
        """
        segments: list[tuple[str, FieldDescriptor]] = []
        taken: set[str] = set()
        for f in self.fields:
            for segment in f.names:
                if segment in taken:
                    continue
                taken.add(segment)
                segments.append((segment, self._index[segment]))
        return segments
