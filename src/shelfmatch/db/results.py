# ABOUTME: ResultStore protocol and its SQLite implementation.
# ABOUTME: Records per-stage candidate rows and the single selected match per item.

import logging
import sqlite3
import threading
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from shelfmatch.db.mapping import match_to_row, record_to_row, row_to_match, row_to_stored
from shelfmatch.errors import PersistenceFailure
from shelfmatch.matching.records import SelectedMatch, Stage, StageRecord, StoredResult

logger = logging.getLogger(__name__)

_STAGE_COLUMNS = (
    "item_id",
    "stage",
    "candidate_key",
    "rank",
    "title",
    "brand",
    "size",
    "image_url",
    "query",
    "similarity_score",
    "match_tier",
    "confidence",
    "visual_similarity",
    "reason",
    "match_reasons",
)
_CONFLICT_KEY = ("item_id", "candidate_key", "stage")


class DuplicateResultError(PersistenceFailure):
    """Raised when a write collides with an existing (item, candidate, stage) row."""


@runtime_checkable
class ResultStore(Protocol):
    """Protocol for the persistence contract every pipeline stage writes through."""

    def record_stage(
        self, item_id: str, stage: Stage, records: Sequence[StageRecord]
    ) -> int: ...

    def set_selected_match(self, match: SelectedMatch) -> None: ...

    def clear_selected_match(self, item_id: str) -> None: ...

    def get_stage_rows(self, item_id: str, stage: Stage | None = None) -> list[StoredResult]: ...

    def get_selected_match(self, item_id: str) -> SelectedMatch | None: ...


def _upsert_sql() -> str:
    columns = ", ".join(_STAGE_COLUMNS)
    placeholders = ", ".join(f":{c}" for c in _STAGE_COLUMNS)
    updates = ", ".join(f"{c} = excluded.{c}" for c in _STAGE_COLUMNS if c not in _CONFLICT_KEY)
    return (
        f"INSERT INTO stage_results ({columns}) VALUES ({placeholders}) "
        f"ON CONFLICT(item_id, candidate_key, stage) DO UPDATE SET {updates}, "
        "updated_at = strftime('%Y-%m-%dT%H:%M:%S', 'now')"
    )


_UPSERT_STAGE_ROW = _upsert_sql()


class SqliteResultStore:
    """Wraps a sqlite3 connection and provides the ResultStore contract.

    Calls are serialized with a lock so the store can be driven from worker
    threads (the pipeline runs writes via ``asyncio.to_thread``).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def record_stage(
        self, item_id: str, stage: Stage, records: Sequence[StageRecord]
    ) -> int:
        """Replace an item's rows for one stage with ``records``.

        A catalog key repeated within ``records`` is written once (first
        occurrence wins). Rows from an earlier run whose key is no longer
        present are removed, so a re-run leaves exactly the current result.

        Returns:
            The number of rows written.

        Raises:
            ValueError: If a record belongs to a different stage.
            DuplicateResultError: If the uniqueness constraint still rejects a row.
            PersistenceFailure: On any other database error.
        """
        seen: set[tuple[str, str, Stage]] = set()
        rows = []
        for record in records:
            if record.stage is not stage:
                raise ValueError(f"Record for stage {record.stage.value} passed as {stage.value}")
            key = (item_id, record.candidate.key, stage)
            if key in seen:
                logger.debug("Skipping duplicate %s row for %s: %s", stage.value, item_id, key[1])
                continue
            seen.add(key)
            rows.append(record_to_row(item_id, record))

        keys = [row["candidate_key"] for row in rows]
        with self._lock:
            try:
                with self._conn:
                    self._delete_stale(item_id, stage, keys)
                    self._conn.executemany(_UPSERT_STAGE_ROW, rows)
            except sqlite3.IntegrityError as exc:
                raise DuplicateResultError(
                    f"Duplicate {stage.value} row for item {item_id}: {exc}"
                ) from exc
            except sqlite3.Error as exc:
                raise PersistenceFailure(
                    f"Could not record {stage.value} rows for item {item_id}: {exc}"
                ) from exc
        return len(rows)

    def _delete_stale(self, item_id: str, stage: Stage, keep: list[str]) -> None:
        if keep:
            placeholders = ", ".join("?" for _ in keep)
            self._conn.execute(
                "DELETE FROM stage_results WHERE item_id = ? AND stage = ? "
                f"AND candidate_key NOT IN ({placeholders})",
                (item_id, stage.value, *keep),
            )
        else:
            self._conn.execute(
                "DELETE FROM stage_results WHERE item_id = ? AND stage = ?",
                (item_id, stage.value),
            )

    def set_selected_match(self, match: SelectedMatch) -> None:
        """Store the item's authoritative match, replacing any previous one."""
        row = match_to_row(match)
        columns = ", ".join(row.keys())
        placeholders = ", ".join(f":{c}" for c in row)
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        f"INSERT OR REPLACE INTO selected_matches ({columns}) "
                        f"VALUES ({placeholders})",
                        row,
                    )
            except sqlite3.Error as exc:
                raise PersistenceFailure(
                    f"Could not set selected match for item {match.item_id}: {exc}"
                ) from exc

    def clear_selected_match(self, item_id: str) -> None:
        """Remove the item's selected match, if any."""
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        "DELETE FROM selected_matches WHERE item_id = ?", (item_id,)
                    )
            except sqlite3.Error as exc:
                raise PersistenceFailure(
                    f"Could not clear selected match for item {item_id}: {exc}"
                ) from exc

    def get_stage_rows(self, item_id: str, stage: Stage | None = None) -> list[StoredResult]:
        """Return an item's rows, optionally for one stage, ordered by stage then rank."""
        sql = "SELECT * FROM stage_results WHERE item_id = ?"
        params: tuple[str, ...] = (item_id,)
        if stage is not None:
            sql += " AND stage = ?"
            params = (item_id, stage.value)
        sql += " ORDER BY id"
        with self._lock:
            cursor = self._conn.execute(sql, params)
            rows = [row_to_stored(row) for row in cursor.fetchall()]
        order = {s: i for i, s in enumerate(Stage)}
        rows.sort(key=lambda r: (order[r.stage], r.rank))
        return rows

    def get_selected_match(self, item_id: str) -> SelectedMatch | None:
        """Retrieve the item's selected match."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT * FROM selected_matches WHERE item_id = ?", (item_id,)
            )
            row = cursor.fetchone()
        return row_to_match(row) if row else None

    def list_selected_matches(self) -> list[SelectedMatch]:
        """Return every stored selected match, ordered by item id."""
        with self._lock:
            cursor = self._conn.execute("SELECT * FROM selected_matches ORDER BY item_id")
            rows = cursor.fetchall()
        return [row_to_match(row) for row in rows]
