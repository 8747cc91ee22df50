# ABOUTME: Unit tests for SqliteResultStore.
# ABOUTME: Covers per-stage writes, duplicate collapsing, stale-row replacement, and selected matches.

import sqlite3

import pytest

from shelfmatch.db.results import ResultStore, SqliteResultStore
from shelfmatch.errors import PersistenceFailure
from shelfmatch.matching.records import (
    MatchTier,
    PreFiltered,
    ScoredCandidate,
    SearchResult,
    SelectedMatch,
    SelectionMethod,
    Stage,
)
from tests.fixtures.fakes import make_candidate


def _search(*keys: str) -> list[SearchResult]:
    return [
        SearchResult(make_candidate(key), rank=rank, query="q")
        for rank, key in enumerate(keys, start=1)
    ]


def _match(item_id: str = "item-1", key: str = "k1") -> SelectedMatch:
    return SelectedMatch(
        item_id=item_id,
        candidate_key=key,
        tier=MatchTier.IDENTICAL,
        confidence=0.9,
        method=SelectionMethod.AUTO_SELECT,
    )


class TestProtocol:
    """Tests for ResultStore protocol compliance."""

    def test_satisfies_protocol(self, store: SqliteResultStore) -> None:
        """SqliteResultStore implements ResultStore."""
        assert isinstance(store, ResultStore)


class TestRecordStage:
    """Tests for record_stage()."""

    def test_writes_rows_in_rank_order(self, store: SqliteResultStore) -> None:
        """Rows are stored and read back by rank."""
        assert store.record_stage("item-1", Stage.SEARCH, _search("a", "b", "c")) == 3
        rows = store.get_stage_rows("item-1", Stage.SEARCH)
        assert [(r.candidate_key, r.rank) for r in rows] == [("a", 1), ("b", 2), ("c", 3)]
        assert rows[0].query == "q"

    def test_duplicate_keys_collapse_to_first(self, store: SqliteResultStore) -> None:
        """A key repeated in one call is written once."""
        records = _search("a", "b", "a")
        assert store.record_stage("item-1", Stage.SEARCH, records) == 2
        rows = store.get_stage_rows("item-1")
        assert [(r.candidate_key, r.rank) for r in rows] == [("a", 1), ("b", 2)]

    def test_rerun_replaces_rows(self, store: SqliteResultStore) -> None:
        """A second write for the same stage leaves exactly the new rows."""
        store.record_stage("item-1", Stage.SEARCH, _search("a", "b"))
        store.record_stage("item-1", Stage.SEARCH, _search("b", "c"))
        rows = store.get_stage_rows("item-1", Stage.SEARCH)
        assert [(r.candidate_key, r.rank) for r in rows] == [("b", 1), ("c", 2)]

    def test_empty_write_clears_stage(self, store: SqliteResultStore) -> None:
        """Writing no records removes earlier rows for that stage."""
        store.record_stage("item-1", Stage.SEARCH, _search("a"))
        assert store.record_stage("item-1", Stage.SEARCH, []) == 0
        assert store.get_stage_rows("item-1") == []

    def test_stages_and_items_are_independent(self, store: SqliteResultStore) -> None:
        """The same key may appear in different stages and items."""
        candidate = make_candidate("a")
        store.record_stage("item-1", Stage.SEARCH, _search("a"))
        store.record_stage(
            "item-1", Stage.PRE_FILTER, [PreFiltered(ScoredCandidate(candidate, 1.0), rank=1)]
        )
        store.record_stage("item-2", Stage.SEARCH, _search("a"))

        rows = store.get_stage_rows("item-1")
        assert [r.stage for r in rows] == [Stage.SEARCH, Stage.PRE_FILTER]
        assert len(store.get_stage_rows("item-2")) == 1

    def test_wrong_stage_rejected(self, store: SqliteResultStore) -> None:
        """A record is only accepted for its own stage."""
        with pytest.raises(ValueError, match="passed as pre_filter"):
            store.record_stage("item-1", Stage.PRE_FILTER, _search("a"))

    def test_database_error_becomes_persistence_failure(
        self, db_conn: sqlite3.Connection
    ) -> None:
        """A broken table surfaces as PersistenceFailure."""
        db_conn.execute("DROP TABLE stage_results")
        store = SqliteResultStore(db_conn)
        with pytest.raises(PersistenceFailure):
            store.record_stage("item-1", Stage.SEARCH, _search("a"))


class TestSelectedMatch:
    """Tests for the selected match operations."""

    def test_set_and_get(self, store: SqliteResultStore) -> None:
        """A stored match reads back unchanged."""
        store.set_selected_match(_match())
        assert store.get_selected_match("item-1") == _match()

    def test_at_most_one_per_item(self, store: SqliteResultStore) -> None:
        """Setting again replaces the previous match."""
        store.set_selected_match(_match(key="k1"))
        store.set_selected_match(_match(key="k2"))
        assert store.get_selected_match("item-1").candidate_key == "k2"
        assert len(store.list_selected_matches()) == 1

    def test_clear(self, store: SqliteResultStore) -> None:
        """Clearing removes the match; clearing again is harmless."""
        store.set_selected_match(_match())
        store.clear_selected_match("item-1")
        store.clear_selected_match("item-1")
        assert store.get_selected_match("item-1") is None

    def test_missing(self, store: SqliteResultStore) -> None:
        """An item never matched has no selection."""
        assert store.get_selected_match("nope") is None

    def test_list_ordered_by_item(self, store: SqliteResultStore) -> None:
        """All selections are listed by item id."""
        store.set_selected_match(_match("item-b"))
        store.set_selected_match(_match("item-a"))
        assert [m.item_id for m in store.list_selected_matches()] == ["item-a", "item-b"]
