"""SQLAlchemy persistence adapter.

Works against any SQLAlchemy dialect; SQLite and PostgreSQL (psycopg v3)
are the ones exercised. Record types must be SQLAlchemy mapped classes.

The raw ``sort`` token from the request is the one piece of untrusted text
that reaches this layer: ``parse_sort`` accepts only ``field [asc|desc]`` or
``-field`` items whose field resolves in the schema.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import String, cast, create_engine, delete, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, load_only, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import ColumnElement

from autocrud.errors import BindError, PersistenceError
from autocrud.query.types import FilterPredicate, Operator
from autocrud.schema import FieldDescriptor, Schema

logger = logging.getLogger(__name__)


def parse_sort(schema: Schema, token: str | None) -> list[tuple[FieldDescriptor, bool]]:
    """Parse a sort token into (field, descending) pairs.

    Accepts comma-separated items of the form ``name``, ``name asc``,
    ``name desc`` or ``-name``.

    Raises:
        BindError: For unknown fields or anything else in the token
    """
    if not token:
        return []

    order: list[tuple[FieldDescriptor, bool]] = []
    for item in token.split(","):
        parts = item.split()
        if not parts:
            continue
        if len(parts) > 2:
            raise BindError(f"Invalid sort item '{item.strip()}'")

        name = parts[0]
        descending = False
        if name.startswith("-"):
            name = name[1:]
            descending = True
        if len(parts) == 2:
            direction = parts[1].lower()
            if direction not in ("asc", "desc") or descending:
                raise BindError(f"Invalid sort direction in '{item.strip()}'")
            descending = direction == "desc"

        field = schema.resolve(name)
        if field is None:
            logger.warning("Rejected sort on unknown field %r of %s", name, schema.name)
            raise BindError(f"Cannot sort by unknown field '{name}'")
        order.append((field, descending))
    return order


class SQLAlchemyTransaction:
    """Transaction operations over one SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def insert(self, record: Any) -> Any:
        """Add a record and flush so generated identifiers are loaded."""
        self.session.add(record)
        self.session.flush()
        self.session.refresh(record)
        return record

    def update(
        self,
        schema: Schema,
        predicates: Sequence[FilterPredicate],
        values: dict[str, Any],
    ) -> int:
        """Write ``values`` to every matching row; returns rows affected."""
        if not values:
            return 0
        model = schema.record_type
        stmt = (
            update(model)
            .where(*self._clauses(schema, predicates))
            .values({getattr(model, name): value for name, value in values.items()})
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount

    def delete(self, schema: Schema, predicates: Sequence[FilterPredicate]) -> int:
        """Delete every matching row; returns rows affected."""
        if not predicates:
            raise ValueError("Refusing to delete without a filter")
        stmt = (
            delete(schema.record_type)
            .where(*self._clauses(schema, predicates))
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount

    def first(self, schema: Schema, predicates: Sequence[FilterPredicate]) -> Any | None:
        """Fetch the first matching record, or None."""
        stmt = select(schema.record_type).where(*self._clauses(schema, predicates)).limit(1)
        return self.session.scalars(stmt).first()

    def find(
        self,
        schema: Schema,
        predicates: Sequence[FilterPredicate],
        projection: tuple[str, ...] = (),
        sort: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Any]:
        """Query records with filtering, projection, sorting and pagination."""
        model = schema.record_type
        stmt = select(model).where(*self._clauses(schema, predicates))

        if projection:
            stmt = stmt.options(load_only(*(getattr(model, name) for name in projection)))

        for field, descending in parse_sort(schema, sort):
            column = getattr(model, field.name)
            stmt = stmt.order_by(column.desc() if descending else column.asc())

        if limit:
            stmt = stmt.limit(limit).offset(offset)

        return list(self.session.scalars(stmt))

    def count(self, schema: Schema, predicates: Sequence[FilterPredicate]) -> int:
        """Count matching rows."""
        stmt = (
            select(func.count())
            .select_from(schema.record_type)
            .where(*self._clauses(schema, predicates))
        )
        return self.session.scalar(stmt) or 0

    def _clauses(
        self, schema: Schema, predicates: Sequence[FilterPredicate]
    ) -> list[ColumnElement[bool]]:
        return [self._build_condition(schema, p) for p in predicates]

    def _build_condition(self, schema: Schema, predicate: FilterPredicate) -> ColumnElement[bool]:
        """Build a SQL condition from a filter predicate."""
        column = getattr(schema.record_type, predicate.field.name)
        op = predicate.operator

        if op is Operator.EQUALS:
            return column == predicate.value
        elif op is Operator.IN:
            return column.in_(predicate.values)
        elif op is Operator.LIKE:
            return cast(column, String).contains(str(predicate.value), autoescape=True)

        raise ValueError(f"Unsupported operator {op!r}")


class SQLAlchemyAdapter:
    """Persistence adapter backed by a SQLAlchemy engine."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: Engine | None = None
        self._sessions: sessionmaker[Session] | None = None

    def connect(self) -> None:
        """Create the engine and session factory. No-op when already connected."""
        if self.engine:
            return
        kwargs: dict[str, Any] = {"echo": self.echo}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if self.is_memory:
                # One shared connection, otherwise every session sees its own empty DB
                kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.url, **kwargs)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)
        logger.debug("Connected to %s", self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        """Dispose of the engine."""
        if self.engine:
            self.engine.dispose()
            self.engine = None
            self._sessions = None

    @property
    def is_memory(self) -> bool:
        return self.url in ("sqlite://", "sqlite:///") or ":memory:" in self.url

    def initialize(self, record_types: Iterable[type]) -> None:
        """Create the tables for the given record types if they don't exist."""
        if not self.engine:
            raise RuntimeError("Database not connected")
        for record_type in record_types:
            try:
                table = record_type.__table__  # type: ignore[attr-defined]
            except AttributeError:
                raise ValueError(f"{record_type.__name__} is not a mapped table class") from None
            table.create(self.engine, checkfirst=True)
            logger.debug("Initialized table %s for %s", table.name, record_type.__name__)

    @contextmanager
    def transaction(self) -> Iterator[SQLAlchemyTransaction]:
        """Open a transactional scope: commit on success, roll back on error."""
        if not self._sessions:
            raise RuntimeError("Database not connected")

        session = self._sessions()
        try:
            with session.begin():
                yield SQLAlchemyTransaction(session)
        except SQLAlchemyError as e:
            raise PersistenceError(f"{type(e).__name__}: {e.args[0] if e.args else e}") from e
        finally:
            session.close()
