# ABOUTME: Batch orchestrator: runs the item pipeline over many items with bounded concurrency.
# ABOUTME: Streams ordered progress events through a queue and isolates per-item failures.

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Protocol

from shelfmatch.catalog.types import DetectedItem
from shelfmatch.core.events import (
    BatchCounters,
    BatchEvent,
    BatchSummary,
    CompleteEvent,
    ErrorEvent,
    ItemOutcome,
    OutcomeStatus,
    ProgressEvent,
    StartEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3
MAX_CONCURRENCY = 20

# Events buffered ahead of a slow consumer before the producer waits.
_QUEUE_SIZE = 32
_DONE = object()


class BatchError(Exception):
    """Raised by ``run()`` when the batch itself fails (not an individual item)."""


class ItemRunner(Protocol):
    """Anything that can process one item into an outcome (normally ItemPipeline)."""

    async def run(self, item: DetectedItem, position: int = 0) -> ItemOutcome: ...


@dataclass(frozen=True)
class BatchJob:
    """An ordered batch of items plus the concurrency requested for it.

    The requested value is clamped when the orchestrator is built from the job.
    """

    items: tuple[DetectedItem, ...]
    concurrency: int | None = None

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]


def clamp_concurrency(
    requested: int | None,
    default: int = DEFAULT_CONCURRENCY,
    maximum: int = MAX_CONCURRENCY,
) -> int:
    """Clamp a requested concurrency into [1, maximum]; None means ``default``."""
    value = default if requested is None else requested
    return max(1, min(value, maximum))


class BatchOrchestrator:
    """Run an item pipeline across a batch in fixed-size chunks.

    Items in a chunk start together and are awaited in batch order, so
    progress events arrive in order even though the work completes out of
    order. The next chunk starts only once the current one has drained.
    Exactly one counter increments per item; counters are touched only here.
    """

    def __init__(
        self,
        pipeline: ItemRunner,
        *,
        concurrency: int | None = None,
        max_concurrency: int = MAX_CONCURRENCY,
        chunk_delay: float = 0.0,
    ) -> None:
        self._pipeline = pipeline
        self._concurrency = clamp_concurrency(concurrency, maximum=max_concurrency)
        self._chunk_delay = chunk_delay

    @classmethod
    def for_job(
        cls,
        pipeline: ItemRunner,
        job: BatchJob,
        *,
        default_concurrency: int = DEFAULT_CONCURRENCY,
        max_concurrency: int = MAX_CONCURRENCY,
        chunk_delay: float = 0.0,
    ) -> "BatchOrchestrator":
        """Build an orchestrator for ``job``, falling back to ``default_concurrency``."""
        requested = job.concurrency if job.concurrency is not None else default_concurrency
        return cls(
            pipeline,
            concurrency=requested,
            max_concurrency=max_concurrency,
            chunk_delay=chunk_delay,
        )

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def stream(
        self,
        items: Sequence[DetectedItem],
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[BatchEvent]:
        """Process ``items`` and yield StartEvent, ProgressEvents, then Complete/Error.

        Events are produced by a background task into a bounded queue and
        yielded as the caller consumes them. Setting ``cancel`` stops the
        batch before the next chunk; the summary is then marked cancelled.
        Closing the iterator early cancels any in-flight work.
        """
        queue: asyncio.Queue[object] = asyncio.Queue(maxsize=_QUEUE_SIZE)
        producer = asyncio.create_task(self._produce(list(items), queue, cancel))
        try:
            while True:
                event = await queue.get()
                if event is _DONE:
                    break
                yield event  # type: ignore[misc]
        finally:
            if not producer.done():
                producer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await producer

    async def run(
        self,
        items: Sequence[DetectedItem],
        cancel: asyncio.Event | None = None,
    ) -> BatchSummary:
        """Drain the event stream and return the final summary.

        Raises:
            BatchError: If the batch failed outside any single item.
        """
        summary: BatchSummary | None = None
        async for event in self.stream(items, cancel):
            if isinstance(event, CompleteEvent):
                summary = event.summary
            elif isinstance(event, ErrorEvent):
                raise BatchError(event.message)
        if summary is None:
            raise BatchError("Batch ended without a summary")
        return summary

    async def _produce(
        self,
        items: list[DetectedItem],
        queue: asyncio.Queue[object],
        cancel: asyncio.Event | None,
    ) -> None:
        try:
            summary = await self._process(items, queue, cancel)
        except Exception as exc:
            logger.exception("Batch failed")
            await queue.put(ErrorEvent(message=str(exc) or type(exc).__name__))
        else:
            await queue.put(CompleteEvent(summary=summary))
        await queue.put(_DONE)

    async def _process(
        self,
        items: list[DetectedItem],
        queue: asyncio.Queue[object],
        cancel: asyncio.Event | None,
    ) -> BatchSummary:
        total = len(items)
        counters = BatchCounters()
        outcomes: list[ItemOutcome] = []
        cancelled = False

        await queue.put(StartEvent(total=total, concurrency=self._concurrency))
        logger.info("Starting batch of %d items (concurrency %d)", total, self._concurrency)

        for start in range(0, total, self._concurrency):
            if cancel is not None and cancel.is_set():
                cancelled = True
                logger.info("Batch cancelled with %d items unprocessed", total - start)
                break
            if start and self._chunk_delay > 0:
                await asyncio.sleep(self._chunk_delay)

            chunk = items[start : start + self._concurrency]
            tasks = [
                asyncio.create_task(self._run_item(item, start + offset + 1))
                for offset, item in enumerate(chunk)
            ]
            try:
                for task in tasks:
                    outcome = await task
                    counters.record(outcome)
                    outcomes.append(outcome)
                    await queue.put(
                        ProgressEvent(
                            processed=counters.processed,
                            total=total,
                            outcome=outcome,
                            succeeded=counters.succeeded,
                            no_match=counters.no_match,
                            errors=counters.errors,
                        )
                    )
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()

        summary = BatchSummary(
            total=total,
            succeeded=counters.succeeded,
            no_match=counters.no_match,
            errors=counters.errors,
            outcomes=tuple(outcomes),
            cancelled=cancelled,
            unprocessed=total - counters.processed,
        )
        logger.info(
            "Batch finished: %d matched, %d no match, %d errors",
            summary.succeeded,
            summary.no_match,
            summary.errors,
        )
        return summary

    async def _run_item(self, item: DetectedItem, position: int) -> ItemOutcome:
        """Run one item, converting any exception into an error outcome."""
        try:
            return await self._pipeline.run(item, position)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("Item %s failed: %s", item.id, message)
            return ItemOutcome(
                item_id=item.id,
                position=position,
                status=OutcomeStatus.ERROR,
                label=item.label,
                message=message,
            )
