# ABOUTME: Tiered visual classifier: one vision comparison per pre-filtered candidate.
# ABOUTME: Runs comparisons with bounded concurrency; per-candidate failures are logged and skipped.

import asyncio
import logging

from shelfmatch.catalog.types import ExtractedMetadata
from shelfmatch.errors import ClassificationFailure
from shelfmatch.matching.records import ClassifiedCandidate, ScoredCandidate
from shelfmatch.vision.service import VisionService

logger = logging.getLogger(__name__)

_DEFAULT_CONCURRENCY = 5
_DEFAULT_TIMEOUT = 60.0


class VisualTierClassifier:
    """Classify candidates against a shelf crop as identical / almost_same / not_match.

    Each candidate gets an independent vision call bounded by ``timeout``
    seconds. At most ``concurrency`` calls for one item are in flight at once.
    """

    def __init__(
        self,
        vision: VisionService,
        *,
        concurrency: int = _DEFAULT_CONCURRENCY,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._vision = vision
        self._concurrency = max(1, concurrency)
        self._timeout = timeout

    async def classify(
        self,
        crop: bytes,
        scored: ScoredCandidate,
        metadata: ExtractedMetadata,
    ) -> ClassifiedCandidate:
        """Classify a single candidate.

        Raises:
            ClassificationFailure: If the candidate has no image, the call
                times out, or the response is malformed.
            RateLimitFailure: If the vision service is throttling.
        """
        candidate = scored.candidate
        if not candidate.image_url:
            raise ClassificationFailure(f"Candidate {candidate.key} has no reference image")

        try:
            comparison = await asyncio.wait_for(
                self._vision.compare(crop, candidate, metadata), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            raise ClassificationFailure(
                f"Comparison of {candidate.key} timed out after {self._timeout:.0f}s"
            ) from exc

        return ClassifiedCandidate(
            candidate=candidate,
            tier=comparison.match_tier,
            confidence=comparison.confidence,
            visual_similarity=comparison.visual_similarity,
            reasoning=comparison.reasoning,
        )

    async def classify_all(
        self,
        crop: bytes,
        candidates: list[ScoredCandidate],
        metadata: ExtractedMetadata,
    ) -> list[ClassifiedCandidate]:
        """Classify every candidate, keeping input order.

        Candidates whose classification fails are dropped from the result; an
        empty result means nothing could be classified. RateLimitFailure and
        unexpected errors propagate and fail the whole item; comparisons still
        pending at that point are cancelled.
        """
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _one(scored: ScoredCandidate) -> ClassifiedCandidate | None:
            async with semaphore:
                try:
                    return await self.classify(crop, scored, metadata)
                except ClassificationFailure as exc:
                    logger.warning("Skipping candidate %s: %s", scored.candidate.key, exc)
                    return None

        tasks = [asyncio.create_task(_one(s)) for s in candidates]
        try:
            results = await asyncio.gather(*tasks)
        finally:
            # A propagating failure leaves siblings queued on the semaphore.
            for task in tasks:
                if not task.done():
                    task.cancel()
        classified = [r for r in results if r is not None]
        logger.info("Classified %d of %d candidates", len(classified), len(candidates))
        return classified
