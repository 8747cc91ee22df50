# ABOUTME: Shared pytest fixtures for shelfmatch tests.
# ABOUTME: Provides settings isolated from the environment, a temporary result store, and fakes.

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from shelfmatch.config import Settings
from shelfmatch.db.connection import open_store
from shelfmatch.db.results import SqliteResultStore
from tests.fixtures.fakes import FakeImages


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with fast timeouts and a temporary database, ignoring any .env file."""
    return Settings(
        _env_file=None,
        db_path=tmp_path / "results.db",
        search_timeout=2.0,
        vision_timeout=2.0,
    )


@pytest.fixture
def db_conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    """An open result store database in a temporary directory."""
    conn = open_store(tmp_path / "results.db")
    yield conn
    conn.close()


@pytest.fixture
def store(db_conn: sqlite3.Connection) -> SqliteResultStore:
    """A SqliteResultStore backed by the temporary database."""
    return SqliteResultStore(db_conn)


@pytest.fixture
def images() -> FakeImages:
    """An image provider that always returns the same fake crop."""
    return FakeImages()
