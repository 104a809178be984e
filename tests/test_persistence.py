"""Tests for the SQLAlchemy adapter and database configuration."""

import pytest

from autocrud import BindError, PersistenceError, describe
from autocrud.persistence import (
    DatabaseConfig,
    PersistenceAdapter,
    SQLAlchemyAdapter,
    Transaction,
    create_adapter,
    parse_sort,
)
from autocrud.query import build_predicate

from sample_models import ALL_TABLES, Person


@pytest.fixture
def schema():
    return describe(Person)


@pytest.fixture
def seeded(adapter):
    with adapter.transaction() as tx:
        for name, age in [("carol", 30), ("alice", 25), ("bob", 35), ("alina", 25)]:
            tx.insert(Person(name=name, age=age))
    return adapter


# =============================================================================
# Sort parsing
# =============================================================================


class TestParseSort:
    def test_empty(self, schema):
        assert parse_sort(schema, None) == []
        assert parse_sort(schema, "") == []

    def test_directions(self, schema):
        order = parse_sort(schema, "name, age desc, -id, email ASC")
        assert [(f.name, desc) for f, desc in order] == [
            ("name", False),
            ("age", True),
            ("id", True),
            ("email", False),
        ]

    def test_storage_name(self, schema):
        [(field, _)] = parse_sort(schema, "years")
        assert field.name == "age"

    def test_unknown_field(self, schema, caplog):
        with pytest.raises(BindError, match="unknown field 'nickname'"):
            parse_sort(schema, "nickname")
        assert "Rejected sort" in caplog.text

    @pytest.mark.parametrize(
        "token",
        ["name sideways", "name asc extra", "-name desc", "name; drop table persons"],
    )
    def test_rejects_anything_else(self, schema, token):
        with pytest.raises(BindError):
            parse_sort(schema, token)


# =============================================================================
# Adapter
# =============================================================================


class TestSQLAlchemyAdapter:
    def test_satisfies_protocols(self, adapter):
        assert isinstance(adapter, PersistenceAdapter)
        with adapter.transaction() as tx:
            assert isinstance(tx, Transaction)

    def test_insert_assigns_identifier(self, adapter):
        with adapter.transaction() as tx:
            person = tx.insert(Person(name="dora"))
        assert person.id is not None

    def test_find_filter_sort_page(self, seeded, schema):
        age = build_predicate(schema.resolve("age"), ["25"], exact=True)
        with seeded.transaction() as tx:
            names = [p.name for p in tx.find(schema, [age], sort="-name")]
            assert names == ["alina", "alice"]
            page = tx.find(schema, [], sort="name", limit=2, offset=2)
            assert [p.name for p in page] == ["bob", "carol"]

    def test_like_matches_substring(self, seeded, schema):
        like = build_predicate(schema.resolve("name"), ["li"])
        with seeded.transaction() as tx:
            assert sorted(p.name for p in tx.find(schema, [like])) == ["alice", "alina"]
            assert tx.count(schema, [like]) == 2

    def test_like_treats_wildcards_literally(self, adapter, schema):
        with adapter.transaction() as tx:
            for name in ["a_b", "axb", "100%", "1000"]:
                tx.insert(Person(name=name))
        with adapter.transaction() as tx:
            for value in ["a_b", "100%"]:
                like = build_predicate(schema.resolve("name"), [value])
                assert [p.name for p in tx.find(schema, [like])] == [value]

    def test_in_matches_membership(self, seeded, schema):
        members = build_predicate(schema.resolve("years"), ["30", "35"])
        with seeded.transaction() as tx:
            assert sorted(p.name for p in tx.find(schema, [members])) == ["bob", "carol"]

    def test_projection_loads_selected_columns(self, seeded, schema):
        with seeded.transaction() as tx:
            people = tx.find(schema, [], projection=("name",), sort="id")
            assert people[0].name == "carol"

    def test_update_and_first(self, seeded, schema):
        carol = build_predicate(schema.resolve("name"), ["carol"], exact=True)
        with seeded.transaction() as tx:
            assert tx.update(schema, [carol], {"age": 31}) == 1
        with seeded.transaction() as tx:
            assert tx.first(schema, [carol]).age == 31

    def test_update_without_values(self, seeded, schema):
        carol = build_predicate(schema.resolve("name"), ["carol"], exact=True)
        with seeded.transaction() as tx:
            assert tx.update(schema, [carol], {}) == 0

    def test_unfiltered_delete_refused(self, seeded, schema):
        with pytest.raises(ValueError, match="without a filter"):
            with seeded.transaction() as tx:
                tx.delete(schema, [])

    def test_rollback_on_error(self, adapter, schema):
        with pytest.raises(RuntimeError):
            with adapter.transaction() as tx:
                tx.insert(Person(name="ghost"))
                raise RuntimeError("abort")
        with adapter.transaction() as tx:
            assert tx.count(schema, []) == 0

    def test_integrity_error_wrapped(self, adapter):
        with pytest.raises(PersistenceError, match="IntegrityError"):
            with adapter.transaction() as tx:
                tx.insert(Person(name=None))

    def test_not_connected(self):
        adapter = SQLAlchemyAdapter("sqlite://")
        with pytest.raises(RuntimeError, match="not connected"):
            with adapter.transaction():
                pass

    def test_in_memory_database_shared_across_sessions(self, schema):
        adapter = SQLAlchemyAdapter("sqlite://")
        adapter.connect()
        adapter.initialize(ALL_TABLES)
        try:
            with adapter.transaction() as tx:
                tx.insert(Person(name="mem"))
            with adapter.transaction() as tx:
                assert tx.count(schema, []) == 1
        finally:
            adapter.close()


# =============================================================================
# Configuration
# =============================================================================


class TestDatabaseConfig:
    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/app")
        monkeypatch.setenv("AUTOCRUD_DB_PATH", "/tmp/ignored.db")
        config = DatabaseConfig.from_env()
        assert config.url == "postgresql://u:p@db/app"
        assert config.is_postgresql
        assert config.sqlalchemy_url == "postgresql+psycopg://u:p@db/app"

    def test_db_path(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("AUTOCRUD_DB_PATH", "/tmp/x.db")
        config = DatabaseConfig.from_env()
        assert config.url == "sqlite:////tmp/x.db"
        assert config.is_sqlite

    def test_base_path(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("AUTOCRUD_DB_PATH", raising=False)
        config = DatabaseConfig.from_env(tmp_path)
        assert config.url == f"sqlite:///{tmp_path / 'data' / 'autocrud.db'}"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("AUTOCRUD_DB_PATH", raising=False)
        assert DatabaseConfig.from_env().url == "sqlite:///autocrud.db"

    def test_create_adapter_makes_data_dir(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'data' / 'app.db'}"
        adapter = create_adapter(DatabaseConfig(url=url))
        assert isinstance(adapter, SQLAlchemyAdapter)
        assert (tmp_path / "data").is_dir()

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="Unsupported database URL scheme"):
            create_adapter(DatabaseConfig(url="mongodb://localhost"))
