# ABOUTME: Typed records produced by each matching stage, plus the selected-match outcome.
# ABOUTME: StageRecord is a tagged union so each stage's required fields are always present.

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from shelfmatch.catalog.types import CandidateProduct


class Stage(str, Enum):
    """Pipeline stage names, as stored in the result store."""

    SEARCH = "search"
    PRE_FILTER = "pre_filter"
    AI_FILTER = "ai_filter"
    VISUAL_MATCH = "visual_match"


class MatchTier(str, Enum):
    """Three-way visual/metadata classification of one candidate."""

    IDENTICAL = "identical"
    ALMOST_SAME = "almost_same"
    NOT_MATCH = "not_match"


class SelectionMethod(str, Enum):
    """How a final match was chosen."""

    AUTO_SELECT = "auto_select"
    CONSOLIDATION = "consolidation"
    DIRECT_SELECTION = "direct_selection"


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate annotated with its text pre-filter score."""

    candidate: CandidateProduct
    similarity_score: float
    match_reasons: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.similarity_score <= 1.0:
            msg = f"similarity_score must be between 0.0 and 1.0, got {self.similarity_score}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ClassifiedCandidate:
    """A candidate annotated with its visual tier classification."""

    candidate: CandidateProduct
    tier: MatchTier
    confidence: float
    visual_similarity: float
    reasoning: str = ""


@dataclass(frozen=True)
class SelectedMatch:
    """The authoritative outcome for one item: which catalog key it matched and why."""

    item_id: str
    candidate_key: str
    tier: MatchTier
    confidence: float
    method: SelectionMethod
    reasoning: str = ""
    visual_similarity: float | None = None


@dataclass(frozen=True)
class SearchResult:
    """A raw catalog hit, ranked as the source returned it."""

    candidate: CandidateProduct
    rank: int
    query: str
    stage: Literal[Stage.SEARCH] = Stage.SEARCH


@dataclass(frozen=True)
class PreFiltered:
    """A candidate that survived the text pre-filter."""

    scored: ScoredCandidate
    rank: int
    stage: Literal[Stage.PRE_FILTER] = Stage.PRE_FILTER

    @property
    def candidate(self) -> CandidateProduct:
        return self.scored.candidate


@dataclass(frozen=True)
class Classified:
    """A per-candidate tier classification from the visual classifier."""

    classified: ClassifiedCandidate
    rank: int
    stage: Literal[Stage.AI_FILTER] = Stage.AI_FILTER

    @property
    def candidate(self) -> CandidateProduct:
        return self.classified.candidate


@dataclass(frozen=True)
class Selected:
    """A candidate scored by the joint multi-candidate selection call.

    ``tier`` is IDENTICAL for the chosen candidate and ALMOST_SAME for the
    others that cleared the visual threshold.
    """

    candidate: CandidateProduct
    rank: int
    tier: MatchTier
    visual_similarity: float | None
    reasoning: str = ""
    confidence: float | None = None
    stage: Literal[Stage.VISUAL_MATCH] = Stage.VISUAL_MATCH


StageRecord = SearchResult | PreFiltered | Classified | Selected


@dataclass(frozen=True)
class StoredResult:
    """A stage row as read back from the result store."""

    item_id: str
    stage: Stage
    candidate_key: str
    rank: int
    title: str
    brand: str | None
    size: str | None
    image_url: str | None
    query: str | None = None
    similarity_score: float | None = None
    match_tier: MatchTier | None = None
    confidence: float | None = None
    visual_similarity: float | None = None
    reason: str | None = None
    match_reasons: tuple[str, ...] = ()
