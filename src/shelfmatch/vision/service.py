# ABOUTME: VisionService protocol and the response types of its two comparison calls.
# ABOUTME: compare() classifies one candidate; select() picks the best of many in one call.

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from shelfmatch.catalog.types import CandidateProduct, ExtractedMetadata
from shelfmatch.matching.records import MatchTier


@dataclass(frozen=True)
class TierComparison:
    """Response of a one-candidate comparison."""

    match_tier: MatchTier
    confidence: float
    visual_similarity: float
    reasoning: str = ""


@dataclass(frozen=True)
class CandidateScore:
    """Per-candidate visual similarity reported by a joint selection.

    ``index`` is zero-based into the candidate list that was submitted.
    """

    index: int
    visual_similarity: float
    passed_threshold: bool = False


@dataclass(frozen=True)
class JointSelection:
    """Response of a joint multi-candidate selection.

    ``selected_index`` is zero-based, or None when the service declined to pick.
    """

    selected_index: int | None
    confidence: float
    visual_similarity: float
    brand_match: bool = False
    size_match: bool = False
    flavor_match: bool = False
    reasoning: str = ""
    candidate_scores: tuple[CandidateScore, ...] = ()


@runtime_checkable
class VisionService(Protocol):
    """Protocol for a vision-capable product comparison service.

    Implementations raise ClassificationFailure for unparsable responses and
    RateLimitFailure when throttled.
    """

    async def compare(
        self,
        crop: bytes,
        candidate: CandidateProduct,
        metadata: ExtractedMetadata,
    ) -> TierComparison: ...

    async def select(
        self,
        crop: bytes,
        metadata: ExtractedMetadata,
        candidates: list[CandidateProduct],
    ) -> JointSelection: ...
