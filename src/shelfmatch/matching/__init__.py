# ABOUTME: Matching package: pre-filter, tier classification, consolidation, and selection.
# ABOUTME: Exports the stage records and the pure decision functions.

from shelfmatch.matching.consolidation import ConsolidationDecision, decide, resolve
from shelfmatch.matching.prefilter import prefilter_candidates, score_candidate
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
    StageRecord,
    StoredResult,
)

__all__ = [
    "Classified",
    "ClassifiedCandidate",
    "ConsolidationDecision",
    "MatchTier",
    "PreFiltered",
    "ScoredCandidate",
    "SearchResult",
    "Selected",
    "SelectedMatch",
    "SelectionMethod",
    "Stage",
    "StageRecord",
    "StoredResult",
    "decide",
    "prefilter_candidates",
    "resolve",
    "score_candidate",
]
