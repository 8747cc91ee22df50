# ABOUTME: Parsing functions for vision service JSON responses.
# ABOUTME: Strips markdown fences and validates fields, raising ClassificationFailure on bad data.

import json
from typing import Any

from shelfmatch.errors import ClassificationFailure
from shelfmatch.matching.records import MatchTier
from shelfmatch.vision.service import CandidateScore, JointSelection, TierComparison


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) fence, if present."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    if cleaned.endswith("```"):
        cleaned = cleaned[: -len("```")]
    return cleaned.strip()


def load_json_object(text: str) -> dict[str, Any]:
    """Decode a model reply into a JSON object."""
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise ClassificationFailure(f"Vision response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ClassificationFailure("Vision response is not a JSON object")
    return data


def _unit_float(data: dict[str, Any], key: str, *, required: bool = True) -> float:
    """Read a number in [0, 1]; out-of-range values are clamped."""
    value = data.get(key)
    if value is None and not required:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ClassificationFailure(f"Vision response field {key!r} is missing or not a number")
    return max(0.0, min(1.0, float(value)))


def parse_tier_comparison(text: str) -> TierComparison:
    """Parse a one-candidate comparison reply.

    Requires ``matchStatus`` (one of the three tiers) and ``confidence``;
    ``visualSimilarity`` defaults to 0.0 when omitted.
    """
    data = load_json_object(text)

    raw_tier = data.get("matchStatus")
    try:
        tier = MatchTier(str(raw_tier).strip().lower())
    except ValueError as exc:
        raise ClassificationFailure(f"Unknown matchStatus {raw_tier!r}") from exc

    return TierComparison(
        match_tier=tier,
        confidence=_unit_float(data, "confidence"),
        visual_similarity=_unit_float(data, "visualSimilarity", required=False),
        reasoning=str(data.get("reason") or data.get("reasoning") or ""),
    )


def _parse_candidate_scores(raw: Any, candidate_count: int) -> tuple[CandidateScore, ...]:
    if not isinstance(raw, list):
        return ()
    scores: dict[int, CandidateScore] = {}
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        number = entry.get("candidateIndex")
        if not isinstance(number, int) or not 1 <= number <= candidate_count:
            continue
        index = number - 1
        if index in scores:
            continue
        scores[index] = CandidateScore(
            index=index,
            visual_similarity=_unit_float(entry, "visualSimilarity", required=False),
            passed_threshold=bool(entry.get("passedThreshold", False)),
        )
    return tuple(scores[i] for i in sorted(scores))


def parse_joint_selection(text: str, candidate_count: int) -> JointSelection:
    """Parse a joint selection reply over ``candidate_count`` candidates.

    The reply numbers candidates from 1; the result is zero-based. An index
    outside the submitted range is treated as no selection.
    """
    data = load_json_object(text)

    raw_index = data.get("selectedCandidateIndex")
    selected: int | None = None
    if raw_index is not None:
        if isinstance(raw_index, bool) or not isinstance(raw_index, int):
            raise ClassificationFailure(
                f"selectedCandidateIndex must be an integer or null, got {raw_index!r}"
            )
        if 1 <= raw_index <= candidate_count:
            selected = raw_index - 1

    return JointSelection(
        selected_index=selected,
        confidence=_unit_float(data, "confidence"),
        visual_similarity=_unit_float(data, "visualSimilarityScore", required=False),
        brand_match=bool(data.get("brandMatch", False)),
        size_match=bool(data.get("sizeMatch", False)),
        flavor_match=bool(data.get("flavorMatch", False)),
        reasoning=str(data.get("reasoning") or ""),
        candidate_scores=_parse_candidate_scores(data.get("candidateScores"), candidate_count),
    )
