"""Payload (de)serialization between wire JSON and record values.

Decoding and type coercion go through pydantic ``TypeAdapter``s, cached
per target type.
"""

import dataclasses
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import InstanceState

from autocrud.errors import BindError
from autocrud.schema import FieldDescriptor, Schema

JSONObject = dict[str, Any]


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def check_decodable(target: Any) -> None:
    """Fail early (PydanticUserError) if ``target`` cannot be decoded into."""
    _adapter(target)


def peek_array(raw: bytes) -> bool:
    """Whether the first JSON token of ``raw`` opens an array."""
    return raw.lstrip()[:1] == b"["


def decode(raw: bytes, target: Any = JSONObject, many: bool = False) -> Any:
    """Decode a JSON payload into ``target`` (or ``list[target]``).

    Raises:
        BindError: If the payload is empty, not JSON, or does not fit
    """
    if not raw or not raw.strip():
        raise BindError("Request body is empty")

    shape = list[target] if many else target  # type: ignore[valid-type]
    try:
        return _adapter(shape).validate_json(raw)
    except ValidationError as e:
        raise BindError(f"Malformed payload: {_summarize(e)}") from e


def coerce(field: FieldDescriptor, value: Any) -> Any:
    """Coerce a single value to the field's python type.

    None passes through untouched; fields typed ``object`` accept anything.
    """
    if value is None or field.python_type is object:
        return value
    try:
        return _adapter(field.python_type).validate_python(value)
    except ValidationError as e:
        raise BindError(
            f"Invalid value {value!r} for field '{field.name}': {_summarize(e)}"
        ) from e


def bind_values(schema: Schema, data: Mapping[str, Any]) -> dict[str, Any]:
    """Map payload keys (logical or storage names) to coerced field values.

    Keys that do not resolve to a field are ignored.
    """
    values: dict[str, Any] = {}
    for key, value in data.items():
        field = schema.resolve(key)
        if field is None:
            continue
        values[field.name] = coerce(field, value)
    return values


def bind_record(schema: Schema, data: Mapping[str, Any]) -> Any:
    """Build a new record instance from a payload mapping."""
    return schema.record_type(**bind_values(schema, data))


def as_mapping(obj: Any, partial: bool = False) -> Mapping[str, Any] | None:
    """View a mapping-like value (dict, pydantic model, dataclass) as a dict.

    With ``partial``, a pydantic model contributes only the fields that were
    explicitly set; otherwise defaults are included.
    """
    if isinstance(obj, Mapping):
        return obj
    if isinstance(obj, BaseModel):
        return obj.model_dump(exclude_unset=partial)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    return None


def to_record(schema: Schema, obj: Any) -> Any:
    """Turn a hook output or decoded payload into a record instance."""
    if isinstance(obj, schema.record_type):
        return obj
    mapping = as_mapping(obj)
    if mapping is None:
        raise BindError(
            f"Cannot build a {schema.name} from a value of type {type(obj).__name__}"
        )
    return bind_record(schema, mapping)


def to_values(schema: Schema, obj: Any) -> dict[str, Any]:
    """Turn a hook output or decoded payload into field values to write.

    For a record instance only the attributes that were actually set are
    returned, so a mutated zero-valued record updates just what the hook
    touched. Pydantic models likewise contribute only the fields that
    were explicitly set.
    """
    if isinstance(obj, schema.record_type):
        state = _instance_dict(obj)
        return {f.name: state[f.name] for f in schema.fields if f.name in state}
    mapping = as_mapping(obj, partial=True)
    if mapping is None:
        raise BindError(
            f"Cannot derive {schema.name} values from a value of type "
            f"{type(obj).__name__}"
        )
    return bind_values(schema, mapping)


def dump_record(
    schema: Schema, record: Any, projection: tuple[str, ...] = ()
) -> dict[str, Any]:
    """Render a record as a dict keyed by logical field name."""
    names = projection or schema.field_names
    return {name: getattr(record, name, None) for name in names}


def _instance_dict(obj: Any) -> dict[str, Any]:
    state = sa_inspect(obj, raiseerr=False)
    if isinstance(state, InstanceState):
        return dict(state.dict)
    return dict(vars(obj))


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message
