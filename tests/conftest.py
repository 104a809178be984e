"""Shared fixtures: a file-backed SQLite adapter and clean caches."""

import pytest

from autocrud import HookRegistry, SQLAlchemyAdapter
from autocrud.schema import clear_cache

from sample_models import ALL_TABLES


@pytest.fixture(autouse=True)
def clean_caches():
    """Reset hook registrations and schema cache around each test."""
    HookRegistry.clear()
    clear_cache()
    yield
    HookRegistry.clear()
    clear_cache()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def adapter(db_url):
    """Connected adapter with every sample table created."""
    db = SQLAlchemyAdapter(db_url)
    db.connect()
    db.initialize(ALL_TABLES)
    yield db
    db.close()
