# ABOUTME: Text-similarity pre-filter that narrows raw catalog hits before any vision call.
# ABOUTME: Scores brand and retailer agreement, normalizes by usable signals, keeps >= threshold.

import logging

from shelfmatch.catalog.types import CandidateProduct, ExtractedMetadata
from shelfmatch.matching.fuzzy import string_similarity
from shelfmatch.matching.records import ScoredCandidate

logger = logging.getLogger(__name__)

# Signal weights. Size and flavor are not scored at this stage.
_WEIGHT_BRAND = 0.70
_WEIGHT_RETAILER = 0.30

DEFAULT_THRESHOLD = 0.85

# Brand similarity above this is reported as a match reason.
_BRAND_REASON_FLOOR = 0.5


def _brand_similarity(brand: str, candidate: CandidateProduct) -> float:
    """Best similarity between the extracted brand and any brand-bearing candidate field."""
    fields = (candidate.brand, candidate.manufacturer, candidate.title)
    return max(string_similarity(brand, value) for value in fields)


def score_candidate(
    metadata: ExtractedMetadata,
    candidate: CandidateProduct,
    retailer: str | None = None,
) -> ScoredCandidate:
    """Score one candidate against extracted metadata.

    The raw score is the weighted sum of the brand and retailer signals,
    divided by the total weight of the signals that were usable for this
    candidate. A candidate that lists retailers, none of which is the item's
    retailer, scores 0.0 outright. Returns a ScoredCandidate in [0.0, 1.0].
    """
    raw = 0.0
    usable_weight = 0.0
    reasons: list[str] = []

    brand = metadata.known("brand")
    if brand:
        usable_weight += _WEIGHT_BRAND
        similarity = _brand_similarity(brand, candidate)
        raw += _WEIGHT_BRAND * similarity
        if similarity > _BRAND_REASON_FLOOR:
            reasons.append(f"Brand match: {similarity * 100:.0f}%")

    tag = retailer.strip().lower() if retailer else ""
    if tag and candidate.retailers:
        if tag not in candidate.retailers:
            return ScoredCandidate(candidate=candidate, similarity_score=0.0)
        usable_weight += _WEIGHT_RETAILER
        raw += _WEIGHT_RETAILER
        reasons.append(f"Retailer match: {tag}")

    if usable_weight == 0.0:
        return ScoredCandidate(candidate=candidate, similarity_score=0.0)

    score = min(1.0, raw / usable_weight)
    return ScoredCandidate(
        candidate=candidate, similarity_score=score, match_reasons=tuple(reasons)
    )


def prefilter_candidates(
    metadata: ExtractedMetadata,
    candidates: list[CandidateProduct],
    retailer: str | None = None,
    threshold: float = DEFAULT_THRESHOLD,
) -> list[ScoredCandidate]:
    """Keep the candidates whose normalized score reaches ``threshold``.

    Survivors are sorted by score, highest first; equal scores keep their
    search order. An empty input yields an empty list.
    """
    scored = [score_candidate(metadata, c, retailer) for c in candidates]
    kept = [s for s in scored if s.similarity_score >= threshold]
    kept.sort(key=lambda s: s.similarity_score, reverse=True)
    logger.debug(
        "Pre-filter kept %d of %d candidates (threshold %.2f)",
        len(kept),
        len(candidates),
        threshold,
    )
    return kept
