# ABOUTME: Direct multi-candidate selection: one joint vision call picks the best candidate.
# ABOUTME: Visual similarity gates eligibility locally; fuzzy brand/size/flavor breaks ties.

import asyncio
import logging
from dataclasses import dataclass

from shelfmatch.catalog.types import CandidateProduct, ExtractedMetadata
from shelfmatch.errors import ClassificationFailure
from shelfmatch.matching.fuzzy import brands_compatible, flavors_compatible, sizes_compatible
from shelfmatch.matching.records import (
    MatchTier,
    ScoredCandidate,
    Selected,
    SelectedMatch,
    SelectionMethod,
)
from shelfmatch.vision.service import JointSelection, VisionService

logger = logging.getLogger(__name__)

DEFAULT_VISUAL_THRESHOLD = 0.70
DEFAULT_MIN_CONFIDENCE = 0.6
_SINGLE_CANDIDATE_CONFIDENCE = 0.95
_DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class SelectionOutcome:
    """Result of a direct selection for one item.

    ``records`` are the visual_match rows to persist: the chosen candidate as
    IDENTICAL and every other eligible candidate as ALMOST_SAME.
    """

    match: SelectedMatch | None
    records: tuple[Selected, ...]
    reason: str


def _signal(value: bool | None) -> int:
    """Rank a fuzzy comparison: agreement > unknown > disagreement."""
    if value is None:
        return 1
    return 2 if value else 0


def _brand_agreement(brand: str | None, product: CandidateProduct) -> bool | None:
    names = [n for n in (product.brand, product.manufacturer) if n]
    if not brand or not names:
        return None
    return any(brands_compatible(brand, name) for name in names)


class MultiCandidateSelector:
    """Pick one candidate with a single joint vision call.

    The service's answer is re-checked locally: only candidates whose visual
    similarity reaches ``visual_threshold`` may be selected, and a final pick
    below ``min_confidence`` is reported as no match.
    """

    def __init__(
        self,
        vision: VisionService,
        *,
        visual_threshold: float = DEFAULT_VISUAL_THRESHOLD,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        size_tolerance: float = 0.2,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._vision = vision
        self._visual_threshold = visual_threshold
        self._min_confidence = min_confidence
        self._size_tolerance = size_tolerance
        self._timeout = timeout

    async def select(
        self,
        item_id: str,
        crop: bytes,
        metadata: ExtractedMetadata,
        candidates: list[ScoredCandidate],
    ) -> SelectionOutcome:
        """Select the best candidate for an item.

        Zero candidates (or none with an image) returns no selection without
        calling the service; a single candidate is accepted without a call.

        Raises:
            ClassificationFailure: If the call times out or the reply is malformed.
            RateLimitFailure: If the vision service is throttling.
        """
        products = [s.candidate for s in candidates if s.candidate.image_url]
        if not products:
            return SelectionOutcome(match=None, records=(), reason="No candidates with images")

        if len(products) == 1:
            only = products[0]
            match = SelectedMatch(
                item_id=item_id,
                candidate_key=only.key,
                tier=MatchTier.IDENTICAL,
                confidence=_SINGLE_CANDIDATE_CONFIDENCE,
                method=SelectionMethod.AUTO_SELECT,
                reasoning="Only one candidate available - auto-selected",
                visual_similarity=None,
            )
            record = Selected(
                candidate=only,
                rank=1,
                tier=MatchTier.IDENTICAL,
                visual_similarity=None,
                reasoning=match.reasoning,
                confidence=_SINGLE_CANDIDATE_CONFIDENCE,
            )
            return SelectionOutcome(match=match, records=(record,), reason=match.reasoning)

        try:
            selection = await asyncio.wait_for(
                self._vision.select(crop, metadata, products), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            raise ClassificationFailure(
                f"Joint selection timed out after {self._timeout:.0f}s"
            ) from exc

        return self.apply_policy(item_id, metadata, products, selection)

    def apply_policy(
        self,
        item_id: str,
        metadata: ExtractedMetadata,
        products: list[CandidateProduct],
        selection: JointSelection,
    ) -> SelectionOutcome:
        """Enforce the visual-threshold policy on a joint selection reply."""
        visual = self._visual_scores(selection)
        eligible = [i for i, score in visual.items() if score >= self._visual_threshold]

        if not eligible:
            return SelectionOutcome(
                match=None,
                records=(),
                reason=f"No candidate reached visual similarity {self._visual_threshold:.2f}",
            )

        if len(eligible) == 1:
            chosen = eligible[0]
        elif selection.selected_index in eligible:
            chosen = selection.selected_index
        else:
            chosen = self._tie_break(metadata, products, eligible, visual)
            logger.info(
                "Item %s: service pick %s not eligible; tie-break chose candidate %d",
                item_id,
                selection.selected_index,
                chosen + 1,
            )

        if chosen == selection.selected_index:
            confidence = selection.confidence
            reasoning = selection.reasoning
        else:
            confidence = visual[chosen]
            reasoning = f"Chosen by visual similarity ({visual[chosen]:.0%}). {selection.reasoning}"

        if confidence < self._min_confidence:
            records = tuple(
                Selected(
                    candidate=products[i],
                    rank=i + 1,
                    tier=MatchTier.ALMOST_SAME,
                    visual_similarity=visual[i],
                    reasoning=f"Passed visual similarity threshold ({visual[i]:.0%})",
                )
                for i in eligible
            )
            return SelectionOutcome(
                match=None,
                records=records,
                reason=f"Low confidence ({confidence:.0%}); manual review needed",
            )

        records = []
        for i in eligible:
            if i == chosen:
                records.append(
                    Selected(
                        candidate=products[i],
                        rank=i + 1,
                        tier=MatchTier.IDENTICAL,
                        visual_similarity=visual[i],
                        reasoning=f"Selected as best match. {reasoning}".strip(),
                        confidence=confidence,
                    )
                )
            else:
                records.append(
                    Selected(
                        candidate=products[i],
                        rank=i + 1,
                        tier=MatchTier.ALMOST_SAME,
                        visual_similarity=visual[i],
                        reasoning=f"Passed visual similarity threshold ({visual[i]:.0%})",
                    )
                )

        match = SelectedMatch(
            item_id=item_id,
            candidate_key=products[chosen].key,
            tier=MatchTier.IDENTICAL,
            confidence=confidence,
            method=SelectionMethod.DIRECT_SELECTION,
            reasoning=reasoning,
            visual_similarity=visual[chosen],
        )
        return SelectionOutcome(
            match=match,
            records=tuple(records),
            reason=f"Selected candidate {chosen + 1} of {len(products)}",
        )

    @staticmethod
    def _visual_scores(selection: JointSelection) -> dict[int, float]:
        """Visual similarity by candidate index, in index order.

        When the service omits per-candidate scores, only the selected
        candidate's score is known.
        """
        visual = {s.index: s.visual_similarity for s in selection.candidate_scores}
        if selection.selected_index is not None and selection.selected_index not in visual:
            visual[selection.selected_index] = selection.visual_similarity
        return dict(sorted(visual.items()))

    def _tie_break(
        self,
        metadata: ExtractedMetadata,
        products: list[CandidateProduct],
        eligible: list[int],
        visual: dict[int, float],
    ) -> int:
        """Pick among eligible candidates by brand, then size, then flavor, then visual.

        Unknown metadata ranks between agreement and disagreement, so missing
        extraction never rules a candidate out. Ties keep the earliest candidate.
        """
        brand = metadata.known("brand")
        size = metadata.known("size")
        flavor = metadata.known("flavor")

        def _key(index: int) -> tuple[int, int, int, float]:
            product = products[index]
            brand_ok = _brand_agreement(brand, product)
            size_ok = sizes_compatible(size, product.size, self._size_tolerance)
            flavor_ok = flavors_compatible(flavor, product.title)
            return (_signal(brand_ok), _signal(size_ok), _signal(flavor_ok), visual[index])

        return max(eligible, key=_key)
