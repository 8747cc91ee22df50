# ABOUTME: Per-item matching pipeline: search, pre-filter, classify or select, then persist.
# ABOUTME: Two strategies share one interface: tiered classification or direct joint selection.

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from shelfmatch.catalog.foodgraph import build_search_query
from shelfmatch.catalog.retailers import retailer_from_store_name
from shelfmatch.catalog.source import CandidateSource
from shelfmatch.catalog.types import CandidateProduct, DetectedItem
from shelfmatch.config import Settings
from shelfmatch.core.events import ItemOutcome, OutcomeStatus
from shelfmatch.db.results import ResultStore
from shelfmatch.errors import SearchFailure
from shelfmatch.images import ImageProvider
from shelfmatch.matching.classifier import VisualTierClassifier
from shelfmatch.matching.consolidation import decide
from shelfmatch.matching.prefilter import prefilter_candidates
from shelfmatch.matching.records import (
    Classified,
    PreFiltered,
    ScoredCandidate,
    SearchResult,
    SelectedMatch,
    Stage,
    StageRecord,
)
from shelfmatch.matching.selector import MultiCandidateSelector
from shelfmatch.vision.service import VisionService

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    """How the final match is chosen from pre-filtered candidates.

    TIERED classifies each candidate independently and consolidates the
    tiers (one vision call per candidate). DIRECT asks for the best match in
    a single joint call.
    """

    TIERED = "tiered"
    DIRECT = "direct"


class ItemPipeline:
    """Runs the full matching pipeline for one DetectedItem at a time.

    Holds no per-item state, so one instance can serve many concurrent items.
    Every external call (search, vision, store write) is a suspension point.
    Failures propagate to the caller; the batch orchestrator turns them into
    error outcomes.
    """

    def __init__(
        self,
        source: CandidateSource,
        vision: VisionService,
        store: ResultStore,
        images: ImageProvider,
        *,
        strategy: Strategy = Strategy.TIERED,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self._source = source
        self._store = store
        self._images = images
        self._strategy = strategy
        self._search_limit = settings.search_limit
        self._search_timeout = settings.search_timeout
        self._prefilter_threshold = settings.prefilter_threshold
        self._classifier = VisualTierClassifier(
            vision,
            concurrency=settings.classify_concurrency,
            timeout=settings.vision_timeout,
        )
        self._selector = MultiCandidateSelector(
            vision,
            visual_threshold=settings.visual_threshold,
            min_confidence=settings.selection_min_confidence,
            timeout=settings.vision_timeout,
        )

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    async def run(self, item: DetectedItem, position: int = 0) -> ItemOutcome:
        """Match one item and persist every stage's output.

        Returns a SUCCESS outcome carrying the SelectedMatch, or NO_MATCH with
        the reason. Re-running on unchanged inputs overwrites the same rows and
        reproduces the same selection.

        Raises:
            PipelineFailure: Search, classification, persistence, rate-limit or
                image-loading failures that end this item's run.
        """
        metadata = item.metadata

        query = build_search_query(metadata)
        if not query:
            await self._write(self._store.record_stage, item.id, Stage.SEARCH, [])
            return await self._finish(item, position, None, "No usable metadata to search")

        candidates = await self._search(query)
        search_records = [
            SearchResult(candidate=c, rank=rank, query=query)
            for rank, c in enumerate(candidates, start=1)
        ]
        await self._write(self._store.record_stage, item.id, Stage.SEARCH, search_records)

        retailer = retailer_from_store_name(item.store_name)
        scored = prefilter_candidates(
            metadata, candidates, retailer=retailer, threshold=self._prefilter_threshold
        )
        prefiltered = [PreFiltered(scored=s, rank=rank) for rank, s in enumerate(scored, start=1)]
        await self._write(self._store.record_stage, item.id, Stage.PRE_FILTER, prefiltered)

        counts = {"candidates_found": len(candidates), "candidates_kept": len(scored)}
        if not scored:
            await self._write(self._store.record_stage, item.id, self._final_stage, [])
            reason = "No search results" if not candidates else "No matches after pre-filtering"
            return await self._finish(item, position, None, reason, **counts)

        crop = await self._images.load(item.crop_ref)

        if self._strategy is Strategy.DIRECT:
            match, reason = await self._select_direct(item, crop, scored)
        else:
            match, reason = await self._classify_tiered(item, crop, scored)

        return await self._finish(item, position, match, reason, **counts)

    @property
    def _final_stage(self) -> Stage:
        return Stage.VISUAL_MATCH if self._strategy is Strategy.DIRECT else Stage.AI_FILTER

    async def _search(self, query: str) -> list[CandidateProduct]:
        """Search the catalog, keeping the first result for each catalog key."""
        try:
            results = await asyncio.wait_for(
                self._source.search(query, self._search_limit),
                timeout=self._search_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SearchFailure(
                f"Search for {query!r} timed out after {self._search_timeout:.0f}s"
            ) from exc

        seen: set[str] = set()
        unique = []
        for candidate in results:
            if candidate.key in seen:
                continue
            seen.add(candidate.key)
            unique.append(candidate)
        if len(unique) < len(results):
            logger.debug("Dropped %d duplicate catalog keys", len(results) - len(unique))
        return unique

    async def _classify_tiered(
        self, item: DetectedItem, crop: bytes, scored: list[ScoredCandidate]
    ) -> tuple[SelectedMatch | None, str]:
        classified = await self._classifier.classify_all(crop, scored, item.metadata)
        ranks = {s.candidate.key: rank for rank, s in enumerate(scored, start=1)}
        records: list[StageRecord] = [
            Classified(classified=c, rank=ranks[c.candidate.key]) for c in classified
        ]
        await self._write(self._store.record_stage, item.id, Stage.AI_FILTER, records)

        if not classified:
            return None, "No candidates could be classified"
        decision = decide(item.id, classified)
        return decision.match, decision.reason

    async def _select_direct(
        self, item: DetectedItem, crop: bytes, scored: list[ScoredCandidate]
    ) -> tuple[SelectedMatch | None, str]:
        outcome = await self._selector.select(item.id, crop, item.metadata, scored)
        await self._write(
            self._store.record_stage, item.id, Stage.VISUAL_MATCH, list(outcome.records)
        )
        return outcome.match, outcome.reason

    async def _finish(
        self,
        item: DetectedItem,
        position: int,
        match: SelectedMatch | None,
        reason: str,
        candidates_found: int = 0,
        candidates_kept: int = 0,
    ) -> ItemOutcome:
        """Persist the selection (or clear a stale one) and build the outcome."""
        if match is not None:
            await self._write(self._store.set_selected_match, match)
            status = OutcomeStatus.SUCCESS
            logger.info(
                "Item %s matched %s (%s, confidence %.2f)",
                item.id,
                match.candidate_key,
                match.method.value,
                match.confidence,
            )
        else:
            await self._write(self._store.clear_selected_match, item.id)
            status = OutcomeStatus.NO_MATCH
            logger.info("Item %s: no match (%s)", item.id, reason)

        return ItemOutcome(
            item_id=item.id,
            position=position,
            status=status,
            label=item.label,
            match=match,
            message=reason,
            candidates_found=candidates_found,
            candidates_kept=candidates_kept,
        )

    @staticmethod
    async def _write(method: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking store call in a worker thread."""
        return await asyncio.to_thread(method, *args)
