"""CRUD operations for one record type.

``CrudService`` ties the pieces together: the query translator builds
predicates, the hook dispatcher turns payloads into records or field
values, and every write runs through the batch runner so multi-record
requests commit atomically.
"""

from __future__ import annotations

import logging
from typing import Any

from autocrud import codec
from autocrud.context import RequestContext
from autocrud.errors import BindError, ResolutionError
from autocrud.hooks import HookBinding, HookDispatcher, Operation
from autocrud.persistence import PersistenceAdapter, Transaction, run_batch
from autocrud.query import FilterPredicate, ParamMap, build_predicate, translate
from autocrud.result import Result, build
from autocrud.schema import FieldDescriptor, describe

logger = logging.getLogger(__name__)


class CrudService:
    """Generic read/list/create/update/delete over a record type.

    Args:
        record_type: A mapped (or FieldDescribable) record class
        adapter: Connected persistence adapter
        dispatcher: Hook dispatcher; defaults to one over the global registry
    """

    def __init__(
        self,
        record_type: type,
        adapter: PersistenceAdapter,
        dispatcher: HookDispatcher | None = None,
    ):
        self.record_type = record_type
        self.schema = describe(record_type)
        self.adapter = adapter
        self.dispatcher = dispatcher or HookDispatcher()

    def field(self, name: str) -> FieldDescriptor:
        """Resolve a path field name.

        Raises:
            ResolutionError: If the schema has no such field
        """
        field = self.schema.resolve(name)
        if field is None:
            raise ResolutionError(f"{self.schema.name} has no field '{name}'")
        return field

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, field_name: str, value: str) -> dict[str, Any] | None:
        """Return the first record whose field equals ``value``, or None."""
        predicate = build_predicate(self.field(field_name), [value], exact=True)
        with self.adapter.transaction() as tx:
            record = tx.first(self.schema, [predicate])
            if record is None:
                return None
            return codec.dump_record(self.schema, record)

    def list(self, params: ParamMap) -> Result:
        """Filter, project, sort and paginate records.

        Single-valued filters match by substring, multi-valued ones by
        membership. ``total`` counts every match, ignoring pagination.
        """
        query, predicates = translate(params, self.schema)
        projection = query.projection(self.schema)

        with self.adapter.transaction() as tx:
            records = tx.find(
                self.schema,
                predicates,
                projection=projection,
                sort=query.sort,
                limit=query.limit,
                offset=query.offset,
            )
            items = [codec.dump_record(self.schema, r, projection) for r in records]
            total = tx.count(self.schema, predicates)

        return build(query, items, total)

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, raw: bytes, context: RequestContext | None = None) -> dict[str, Any]:
        """Create one record from a JSON object payload."""
        return self._create(raw, context, batch=False)[0]

    def create_many(
        self, raw: bytes, context: RequestContext | None = None
    ) -> list[dict[str, Any]]:
        """Create records from a JSON array payload, all or nothing."""
        return self._create(raw, context, batch=True)

    def update(
        self,
        field_name: str,
        value: str,
        raw: bytes,
        context: RequestContext | None = None,
    ) -> dict[str, Any] | None:
        """Update every record whose field equals ``value``.

        The addressing field itself is never written. Returns the first
        matching record after the update, or None when nothing matched.
        """
        field = self.field(field_name)
        predicate = build_predicate(field, [value], exact=True)
        binding = self.dispatcher.bind(self.record_type, Operation.UPDATE)
        elements = self.dispatcher.decode(binding, self.schema, raw, batch=False)

        def apply_one(tx: Transaction, element: Any) -> int:
            values = self._update_values(binding, field, context, element)
            return tx.update(self.schema, [predicate], values)

        affected = run_batch(self.adapter, elements, apply_one)
        logger.debug("Updated %d %s row(s) where %s=%r", affected, self.schema.name, field.name, value)
        return self.get(field.name, value)

    def update_many(
        self, field_name: str, raw: bytes, context: RequestContext | None = None
    ) -> int:
        """Apply a JSON array of updates, each addressed by its own ``field`` value.

        Returns the total number of rows affected.

        Raises:
            BindError: If an element is not an object carrying the field
        """
        field = self.field(field_name)
        binding = self.dispatcher.bind(self.record_type, Operation.UPDATE)
        elements = self.dispatcher.decode(binding, self.schema, raw, batch=True)
        objects = codec.decode(raw, codec.JSONObject, many=True)
        addresses = [self._address(field, obj) for obj in objects]

        def apply_one(tx: Transaction, item: tuple[Any, Any]) -> int:
            address, element = item
            values = self._update_values(binding, field, context, element)
            predicate = build_predicate(field, [address], exact=True)
            return tx.update(self.schema, [predicate], values)

        return run_batch(self.adapter, zip(addresses, elements), apply_one)

    def delete(self, field_name: str, value: str) -> int:
        """Delete every record whose field equals ``value``; returns the count."""
        predicate = build_predicate(self.field(field_name), [value], exact=True)
        return run_batch(self.adapter, [predicate], self._delete_one)

    def delete_many(self, field_name: str, raw: bytes) -> int:
        """Delete by a JSON array of field values, all or nothing."""
        field = self.field(field_name)
        values = codec.decode(raw, Any, many=True)
        predicates = [build_predicate(field, [v], exact=True) for v in values]
        return run_batch(self.adapter, predicates, self._delete_one)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _create(
        self, raw: bytes, context: RequestContext | None, batch: bool
    ) -> list[dict[str, Any]]:
        binding = self.dispatcher.bind(self.record_type, Operation.CREATE)
        elements = self.dispatcher.decode(binding, self.schema, raw, batch=batch)
        created: list[dict[str, Any]] = []

        def apply_one(tx: Transaction, element: Any) -> int:
            output = self._dispatch(binding, context, element)
            record = tx.insert(codec.to_record(self.schema, output))
            created.append(codec.dump_record(self.schema, record))
            return 1

        run_batch(self.adapter, elements, apply_one)
        return created

    def _dispatch(
        self, binding: HookBinding | None, context: RequestContext | None, element: Any
    ) -> Any:
        if binding is None:
            return element
        return self.dispatcher.apply(binding, self.schema, context, element)

    def _update_values(
        self,
        binding: HookBinding | None,
        field: FieldDescriptor,
        context: RequestContext | None,
        element: Any,
    ) -> dict[str, Any]:
        values = codec.to_values(self.schema, self._dispatch(binding, context, element))
        values.pop(field.name, None)
        return values

    def _address(self, field: FieldDescriptor, obj: dict[str, Any]) -> Any:
        for key in field.names:
            if obj.get(key) is not None:
                return obj[key]
        raise BindError(f"Every batch update item must carry '{field.name}'")

    def _delete_one(self, tx: Transaction, predicate: FilterPredicate) -> int:
        return tx.delete(self.schema, [predicate])
