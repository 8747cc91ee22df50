# ABOUTME: Unit tests for stage record / row conversion.
# ABOUTME: Checks per-stage columns, NULL handling, and JSON match reasons.

import json

import pytest

from shelfmatch.db.mapping import match_to_row, record_to_row, row_to_match, row_to_stored
from shelfmatch.matching.records import (
    Classified,
    ClassifiedCandidate,
    MatchTier,
    PreFiltered,
    ScoredCandidate,
    SearchResult,
    Selected,
    SelectedMatch,
    SelectionMethod,
    Stage,
)
from tests.fixtures.fakes import make_candidate

CANDIDATE = make_candidate("k1", title="Tru Fru Strawberries")


class TestRecordToRow:
    """Tests for record_to_row()."""

    def test_search_result(self) -> None:
        """Search rows carry the query and candidate columns only."""
        row = record_to_row("item-1", SearchResult(CANDIDATE, rank=3, query="tru fru"))
        assert row["stage"] == "search"
        assert row["rank"] == 3
        assert row["query"] == "tru fru"
        assert row["candidate_key"] == "k1"
        assert row["image_url"] == "https://img.example.com/k1.jpg"
        assert row["similarity_score"] is None
        assert row["match_tier"] is None

    def test_prefiltered(self) -> None:
        """Pre-filter rows carry the score and JSON reasons."""
        scored = ScoredCandidate(CANDIDATE, 0.9, ("Brand match: 100%",))
        row = record_to_row("item-1", PreFiltered(scored, rank=1))
        assert row["stage"] == "pre_filter"
        assert row["similarity_score"] == 0.9
        assert json.loads(row["match_reasons"]) == ["Brand match: 100%"]

    def test_classified(self) -> None:
        """Classification rows carry tier, scores, and reasoning."""
        classified = ClassifiedCandidate(CANDIDATE, MatchTier.ALMOST_SAME, 0.8, 0.75, "size")
        row = record_to_row("item-1", Classified(classified, rank=2))
        assert row["stage"] == "ai_filter"
        assert row["match_tier"] == "almost_same"
        assert row["confidence"] == 0.8
        assert row["visual_similarity"] == 0.75
        assert row["reason"] == "size"

    def test_selected(self) -> None:
        """Visual match rows carry tier and visual similarity."""
        record = Selected(CANDIDATE, rank=1, tier=MatchTier.IDENTICAL, visual_similarity=0.9)
        row = record_to_row("item-1", record)
        assert row["stage"] == "visual_match"
        assert row["match_tier"] == "identical"
        assert row["confidence"] is None

    def test_unsupported_record(self) -> None:
        """Anything else is rejected."""
        with pytest.raises(TypeError):
            record_to_row("item-1", object())  # type: ignore[arg-type]


class TestRowToStored:
    """Tests for row_to_stored()."""

    def test_round_trip_prefiltered(self) -> None:
        """A pre-filter row reads back with its reasons as a tuple."""
        scored = ScoredCandidate(CANDIDATE, 0.9, ("Brand match: 100%", "Retailer match: target"))
        stored = row_to_stored(record_to_row("item-1", PreFiltered(scored, rank=1)))
        assert stored.stage is Stage.PRE_FILTER
        assert stored.match_reasons == ("Brand match: 100%", "Retailer match: target")
        assert stored.match_tier is None

    def test_round_trip_classified(self) -> None:
        """The tier is restored as an enum."""
        classified = ClassifiedCandidate(CANDIDATE, MatchTier.IDENTICAL, 0.9, 0.9)
        stored = row_to_stored(record_to_row("item-1", Classified(classified, rank=1)))
        assert stored.match_tier is MatchTier.IDENTICAL
        assert stored.match_reasons == ()


class TestMatchRows:
    """Tests for selected match conversion."""

    def test_round_trip(self) -> None:
        """A selected match survives conversion both ways."""
        match = SelectedMatch(
            item_id="item-1",
            candidate_key="k1",
            tier=MatchTier.ALMOST_SAME,
            confidence=0.8,
            method=SelectionMethod.CONSOLIDATION,
            reasoning="only close variant",
            visual_similarity=0.82,
        )
        assert row_to_match(match_to_row(match)) == match

    def test_null_reasoning_reads_as_empty(self) -> None:
        """A NULL reasoning column becomes an empty string."""
        row = {
            "item_id": "i",
            "candidate_key": "k",
            "tier": "identical",
            "confidence": 0.95,
            "method": "auto_select",
            "reasoning": None,
            "visual_similarity": None,
        }
        assert row_to_match(row).reasoning == ""
