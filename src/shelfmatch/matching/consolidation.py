# ABOUTME: Decides the final match for one item from its per-candidate tier classifications.
# ABOUTME: Identical wins outright; a lone almost_same is promoted; anything else is deferred.

import logging
from dataclasses import dataclass

from shelfmatch.matching.records import (
    ClassifiedCandidate,
    MatchTier,
    SelectedMatch,
    SelectionMethod,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsolidationDecision:
    """The outcome of consolidation plus a short explanation for the audit trail."""

    match: SelectedMatch | None
    reason: str
    identical_count: int
    almost_same_count: int


def _best_identical(identical: list[ClassifiedCandidate]) -> ClassifiedCandidate:
    """Highest confidence, then highest visual similarity, then first seen."""
    best = identical[0]
    for classified in identical[1:]:
        if (classified.confidence, classified.visual_similarity) > (
            best.confidence,
            best.visual_similarity,
        ):
            best = classified
    return best


def decide(item_id: str, classified: list[ClassifiedCandidate]) -> ConsolidationDecision:
    """Apply the consolidation table to one item's classified candidates.

    | identical | almost_same | outcome                                  |
    |-----------|-------------|------------------------------------------|
    | >= 1      | any         | best identical, method ``auto_select``   |
    | 0         | 1           | promote it, method ``consolidation``     |
    | 0         | >= 2        | no selection (ambiguous)                 |
    | 0         | 0           | no selection                             |
    """
    identical = [c for c in classified if c.tier is MatchTier.IDENTICAL]
    almost_same = [c for c in classified if c.tier is MatchTier.ALMOST_SAME]
    counts = {"identical_count": len(identical), "almost_same_count": len(almost_same)}

    if identical:
        best = _best_identical(identical)
        match = SelectedMatch(
            item_id=item_id,
            candidate_key=best.candidate.key,
            tier=MatchTier.IDENTICAL,
            confidence=best.confidence,
            method=SelectionMethod.AUTO_SELECT,
            reasoning=best.reasoning,
            visual_similarity=best.visual_similarity,
        )
        reason = f"Selected identical match {best.candidate.key}"
        if len(identical) > 1:
            reason += f" (best of {len(identical)} identical)"
        return ConsolidationDecision(match=match, reason=reason, **counts)

    if len(almost_same) == 1:
        promoted = almost_same[0]
        match = SelectedMatch(
            item_id=item_id,
            candidate_key=promoted.candidate.key,
            tier=MatchTier.ALMOST_SAME,
            confidence=promoted.confidence,
            method=SelectionMethod.CONSOLIDATION,
            reasoning=promoted.reasoning,
            visual_similarity=promoted.visual_similarity,
        )
        return ConsolidationDecision(
            match=match,
            reason=f"Promoted single almost-same match {promoted.candidate.key}",
            **counts,
        )

    if almost_same:
        logger.info(
            "Item %s has %d almost-same candidates; deferring to manual review",
            item_id,
            len(almost_same),
        )
        return ConsolidationDecision(
            match=None,
            reason=f"{len(almost_same)} almost-same matches; manual review needed",
            **counts,
        )

    return ConsolidationDecision(match=None, reason="No identical or almost-same matches", **counts)


def resolve(item_id: str, classified: list[ClassifiedCandidate]) -> SelectedMatch | None:
    """Return the selected match for an item, or None when none can be chosen."""
    return decide(item_id, classified).match
