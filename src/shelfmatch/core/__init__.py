# ABOUTME: Core package: the per-item pipeline, batch orchestrator, and progress events.
# ABOUTME: Exports the entry points used by the CLI.

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
from shelfmatch.core.orchestrator import (
    BatchError,
    BatchJob,
    BatchOrchestrator,
    clamp_concurrency,
)
from shelfmatch.core.pipeline import ItemPipeline, Strategy

__all__ = [
    "BatchCounters",
    "BatchError",
    "BatchEvent",
    "BatchJob",
    "BatchOrchestrator",
    "BatchSummary",
    "CompleteEvent",
    "ErrorEvent",
    "ItemOutcome",
    "ItemPipeline",
    "OutcomeStatus",
    "ProgressEvent",
    "StartEvent",
    "Strategy",
    "clamp_concurrency",
]
