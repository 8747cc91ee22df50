# ABOUTME: SQLite connection management for the shelfmatch result store.
# ABOUTME: Opens or creates the database, applies schema and migrations.

import sqlite3
from pathlib import Path

from shelfmatch.config import DEFAULT_DB_PATH
from shelfmatch.db.schema import MIGRATIONS, SCHEMA_V1


def _schema_exists(conn: sqlite3.Connection) -> bool:
    """Check if the schema has already been applied."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the current schema version from the database."""
    cursor = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = cursor.fetchone()
    return row[0] if row else 0


def _apply_migrations(conn: sqlite3.Connection) -> None:
    """Apply pending migrations in order; no-op when already current."""
    current = get_schema_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)


def open_store(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the result store database.

    Creates the database file and parent directories if they don't exist,
    applies the schema on first creation, then any pending migrations. The
    connection may be used from worker threads (the store serializes access).

    Args:
        path: Path to the database file. Defaults to ~/.shelfmatch/results.db.

    Returns:
        A configured sqlite3.Connection.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")

    if not _schema_exists(conn):
        conn.executescript(SCHEMA_V1)

    _apply_migrations(conn)

    return conn
