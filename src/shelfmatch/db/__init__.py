# ABOUTME: Result store package: SQLite connection, schema, and the ResultStore contract.
# ABOUTME: Exports open_store and the store classes used by the pipeline and CLI.

from shelfmatch.db.connection import open_store
from shelfmatch.db.results import DuplicateResultError, ResultStore, SqliteResultStore

__all__ = [
    "DuplicateResultError",
    "ResultStore",
    "SqliteResultStore",
    "open_store",
]
