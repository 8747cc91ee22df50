# ABOUTME: Per-item outcomes, batch counters and summary, and the progress event stream types.
# ABOUTME: Events serialize to plain dicts for machine-readable progress output.

from dataclasses import dataclass
from enum import Enum
from typing import Any

from shelfmatch.matching.records import SelectedMatch


class OutcomeStatus(str, Enum):
    """Terminal state of one item's pipeline run."""

    SUCCESS = "success"
    NO_MATCH = "no_match"
    ERROR = "error"


@dataclass(frozen=True)
class ItemOutcome:
    """What happened to one item.

    ``position`` is the item's 1-based place in the batch. ``message`` holds
    the failure message for errors and the no-match reason otherwise.
    """

    item_id: str
    position: int
    status: OutcomeStatus
    label: str = ""
    match: SelectedMatch | None = None
    message: str = ""
    candidates_found: int = 0
    candidates_kept: int = 0

    def to_dict(self) -> dict[str, Any]:
        match = None
        if self.match is not None:
            match = {
                "candidate_key": self.match.candidate_key,
                "tier": self.match.tier.value,
                "confidence": self.match.confidence,
                "method": self.match.method.value,
                "visual_similarity": self.match.visual_similarity,
                "reasoning": self.match.reasoning,
            }
        return {
            "item_id": self.item_id,
            "position": self.position,
            "status": self.status.value,
            "label": self.label,
            "message": self.message,
            "candidates_found": self.candidates_found,
            "candidates_kept": self.candidates_kept,
            "match": match,
        }


@dataclass
class BatchCounters:
    """Cumulative batch counters. Only the orchestrator mutates these."""

    succeeded: int = 0
    no_match: int = 0
    errors: int = 0

    @property
    def processed(self) -> int:
        return self.succeeded + self.no_match + self.errors

    def record(self, outcome: ItemOutcome) -> None:
        """Increment exactly one counter for a completed item."""
        if outcome.status is OutcomeStatus.SUCCESS:
            self.succeeded += 1
        elif outcome.status is OutcomeStatus.NO_MATCH:
            self.no_match += 1
        else:
            self.errors += 1


@dataclass(frozen=True)
class BatchSummary:
    """Final report of a batch run."""

    total: int
    succeeded: int
    no_match: int
    errors: int
    outcomes: tuple[ItemOutcome, ...] = ()
    cancelled: bool = False
    unprocessed: int = 0

    @property
    def failed(self) -> list[ItemOutcome]:
        """Items that ended in an error, with their messages."""
        return [o for o in self.outcomes if o.status is OutcomeStatus.ERROR]

    @property
    def unmatched(self) -> list[ItemOutcome]:
        """Items that completed without finding a match."""
        return [o for o in self.outcomes if o.status is OutcomeStatus.NO_MATCH]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "no_match": self.no_match,
            "errors": self.errors,
            "cancelled": self.cancelled,
            "unprocessed": self.unprocessed,
            "items": [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class StartEvent:
    total: int
    concurrency: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": "start", "total": self.total, "concurrency": self.concurrency}


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted once per completed item, in batch order."""

    processed: int
    total: int
    outcome: ItemOutcome
    succeeded: int
    no_match: int
    errors: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "progress",
            "processed": self.processed,
            "total": self.total,
            "succeeded": self.succeeded,
            "no_match": self.no_match,
            "errors": self.errors,
            "outcome": self.outcome.to_dict(),
        }


@dataclass(frozen=True)
class CompleteEvent:
    summary: BatchSummary

    def to_dict(self) -> dict[str, Any]:
        return {"type": "complete", "summary": self.summary.to_dict()}


@dataclass(frozen=True)
class ErrorEvent:
    """A failure of the batch itself, not of any one item."""

    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "error", "message": self.message}


BatchEvent = StartEvent | ProgressEvent | CompleteEvent | ErrorEvent
