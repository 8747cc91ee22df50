# ABOUTME: Converts between stage records / selected matches and SQLite row dictionaries.
# ABOUTME: Handles JSON serialization of match reasons and enum round-trips.

import json
from typing import Any

from shelfmatch.catalog.types import CandidateProduct
from shelfmatch.matching.records import (
    Classified,
    MatchTier,
    PreFiltered,
    SearchResult,
    Selected,
    SelectedMatch,
    SelectionMethod,
    Stage,
    StageRecord,
    StoredResult,
)


def _candidate_columns(candidate: CandidateProduct) -> dict[str, Any]:
    return {
        "candidate_key": candidate.key,
        "title": candidate.title,
        "brand": candidate.brand,
        "size": candidate.size,
        "image_url": candidate.image_url,
    }


def record_to_row(item_id: str, record: StageRecord) -> dict[str, Any]:
    """Convert a stage record to a dict suitable for INSERT.

    Columns a stage does not produce are left NULL.
    """
    row: dict[str, Any] = {
        "item_id": item_id,
        "stage": record.stage.value,
        "rank": record.rank,
        **_candidate_columns(record.candidate),
        "query": None,
        "similarity_score": None,
        "match_tier": None,
        "confidence": None,
        "visual_similarity": None,
        "reason": None,
        "match_reasons": None,
    }

    if isinstance(record, SearchResult):
        row["query"] = record.query
    elif isinstance(record, PreFiltered):
        row["similarity_score"] = record.scored.similarity_score
        row["match_reasons"] = json.dumps(list(record.scored.match_reasons))
    elif isinstance(record, Classified):
        classified = record.classified
        row["match_tier"] = classified.tier.value
        row["confidence"] = classified.confidence
        row["visual_similarity"] = classified.visual_similarity
        row["reason"] = classified.reasoning
    elif isinstance(record, Selected):
        row["match_tier"] = record.tier.value
        row["confidence"] = record.confidence
        row["visual_similarity"] = record.visual_similarity
        row["reason"] = record.reasoning
    else:
        raise TypeError(f"Unsupported stage record: {type(record).__name__}")
    return row


def row_to_stored(row: Any) -> StoredResult:
    """Convert a stage_results row (dict-like) to a StoredResult."""
    reasons = row["match_reasons"]
    tier = row["match_tier"]
    return StoredResult(
        item_id=row["item_id"],
        stage=Stage(row["stage"]),
        candidate_key=row["candidate_key"],
        rank=row["rank"],
        title=row["title"],
        brand=row["brand"],
        size=row["size"],
        image_url=row["image_url"],
        query=row["query"],
        similarity_score=row["similarity_score"],
        match_tier=MatchTier(tier) if tier else None,
        confidence=row["confidence"],
        visual_similarity=row["visual_similarity"],
        reason=row["reason"],
        match_reasons=tuple(json.loads(reasons)) if reasons else (),
    )


def match_to_row(match: SelectedMatch) -> dict[str, Any]:
    """Convert a SelectedMatch to a dict suitable for INSERT."""
    return {
        "item_id": match.item_id,
        "candidate_key": match.candidate_key,
        "tier": match.tier.value,
        "confidence": match.confidence,
        "method": match.method.value,
        "reasoning": match.reasoning,
        "visual_similarity": match.visual_similarity,
    }


def row_to_match(row: Any) -> SelectedMatch:
    """Convert a selected_matches row (dict-like) back to a SelectedMatch."""
    return SelectedMatch(
        item_id=row["item_id"],
        candidate_key=row["candidate_key"],
        tier=MatchTier(row["tier"]),
        confidence=row["confidence"],
        method=SelectionMethod(row["method"]),
        reasoning=row["reasoning"] or "",
        visual_similarity=row["visual_similarity"],
    )
