# ABOUTME: Unit tests for the text-similarity pre-filter.
# ABOUTME: Validates brand/retailer weighting, normalization, exclusion, threshold, and ordering.

import pytest

from shelfmatch.catalog.types import ExtractedField, ExtractedMetadata
from shelfmatch.matching.prefilter import prefilter_candidates, score_candidate
from tests.fixtures.fakes import make_candidate


def _metadata(brand: str | None = "Tru Fru") -> ExtractedMetadata:
    return ExtractedMetadata(
        brand=ExtractedField(brand) if brand is not None else None,
        size=ExtractedField("8 oz"),
        flavor=ExtractedField("Strawberry"),
    )


class TestScoreCandidate:
    """Tests for score_candidate()."""

    def test_exact_brand_without_retailer_scores_one(self) -> None:
        """With only the brand signal usable, an exact brand normalizes to 1.0."""
        scored = score_candidate(_metadata(), make_candidate("a"))
        assert scored.similarity_score == pytest.approx(1.0)
        assert scored.match_reasons == ("Brand match: 100%",)

    def test_brand_and_retailer_match(self) -> None:
        """Brand and listed retailer both count, with a reason for each."""
        candidate = make_candidate("a", retailers={"target"})
        scored = score_candidate(_metadata(), candidate, retailer="Target")
        assert scored.similarity_score == pytest.approx(1.0)
        assert "Retailer match: target" in scored.match_reasons

    def test_disjoint_retailers_force_zero(self) -> None:
        """Listed retailers that exclude the item's retailer score 0 even on exact brand."""
        candidate = make_candidate("a", retailers={"walmart", "kroger"})
        scored = score_candidate(_metadata(), candidate, retailer="target")
        assert scored.similarity_score == 0.0

    def test_candidate_without_retailers_ignores_retailer_signal(self) -> None:
        """A candidate listing no retailers is scored on brand alone."""
        scored = score_candidate(_metadata(), make_candidate("a"), retailer="target")
        assert scored.similarity_score == pytest.approx(1.0)

    def test_partial_brand_needs_retailer_to_pass(self) -> None:
        """A substring brand (0.8) passes 0.85 only when the retailer also matches."""
        brand_only = make_candidate("a", brand="Tru Fru Foods", title="Frozen Fruit")
        with_retailer = make_candidate(
            "b", brand="Tru Fru Foods", title="Frozen Fruit", retailers={"target"}
        )
        assert score_candidate(_metadata(), brand_only).similarity_score == pytest.approx(0.8)
        assert score_candidate(
            _metadata(), with_retailer, retailer="target"
        ).similarity_score == pytest.approx(0.86)

    def test_brand_found_in_title(self) -> None:
        """The brand may be matched against the title when the brand field differs."""
        candidate = make_candidate("a", brand="Frozen Co", title="Tru Fru")
        assert score_candidate(_metadata(), candidate).similarity_score == pytest.approx(1.0)

    def test_brand_found_in_manufacturer(self) -> None:
        """The manufacturer field also counts as a brand source."""
        candidate = make_candidate("a", brand=None, title="Frozen Bites", manufacturer="Tru Fru")
        assert score_candidate(_metadata(), candidate).similarity_score == pytest.approx(1.0)

    def test_unknown_brand_with_retailer_match(self) -> None:
        """With no brand, a retailer match alone normalizes to 1.0."""
        candidate = make_candidate("a", retailers={"target"})
        scored = score_candidate(_metadata("Unknown"), candidate, retailer="target")
        assert scored.similarity_score == pytest.approx(1.0)

    def test_no_usable_signals_scores_zero(self) -> None:
        """No brand and no retailer scores 0.0."""
        scored = score_candidate(_metadata(None), make_candidate("a"))
        assert scored.similarity_score == 0.0

    def test_size_and_flavor_do_not_affect_score(self) -> None:
        """A different size does not reduce the score."""
        same = score_candidate(_metadata(), make_candidate("a", size="8 oz"))
        different = score_candidate(_metadata(), make_candidate("b", size="32 oz"))
        assert same.similarity_score == different.similarity_score

    @pytest.mark.parametrize("retailer", [None, "target", "walmart"])
    @pytest.mark.parametrize("brand", ["Tru Fru", "Tru", "Other Brand", None])
    def test_score_is_always_in_unit_interval(self, brand: str | None, retailer: str | None) -> None:
        """Normalized scores stay within [0, 1]."""
        candidate = make_candidate("a", retailers={"target"})
        score = score_candidate(_metadata(brand), candidate, retailer=retailer).similarity_score
        assert 0.0 <= score <= 1.0


class TestPrefilterCandidates:
    """Tests for prefilter_candidates()."""

    def test_empty_input_returns_empty(self) -> None:
        """No candidates in, none out."""
        assert prefilter_candidates(_metadata(), []) == []

    def test_drops_candidates_below_threshold(self) -> None:
        """Only candidates at or above 0.85 survive."""
        keep = make_candidate("keep")
        drop = make_candidate("drop", brand="Other Brand", title="Something Else")
        result = prefilter_candidates(_metadata(), [drop, keep])
        assert [s.candidate.key for s in result] == ["keep"]

    def test_excludes_wrong_retailer_even_with_exact_brand(self) -> None:
        """A retailer mismatch removes an otherwise perfect candidate."""
        wrong = make_candidate("wrong", retailers={"walmart"})
        right = make_candidate("right", retailers={"target"})
        result = prefilter_candidates(_metadata(), [wrong, right], retailer="target")
        assert [s.candidate.key for s in result] == ["right"]

    def test_sorted_by_score_descending_and_stable(self) -> None:
        """Higher scores come first; equal scores keep search order."""
        partial = make_candidate(
            "partial", brand="Tru Fru Foods", title="Frozen Fruit", retailers={"target"}
        )
        first = make_candidate("first", retailers={"target"})
        second = make_candidate("second")
        result = prefilter_candidates(_metadata(), [partial, first, second], retailer="target")
        assert [s.candidate.key for s in result] == ["first", "second", "partial"]

    def test_custom_threshold(self) -> None:
        """A lower threshold lets partial matches through."""
        partial = make_candidate("partial", brand="Tru Fru Foods", title="Frozen Fruit")
        assert prefilter_candidates(_metadata(), [partial], threshold=0.8)
