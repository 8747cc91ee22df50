# ABOUTME: Error taxonomy for the matching pipeline.
# ABOUTME: Every failure raised by an external collaborator maps onto one of these classes.


class PipelineFailure(Exception):
    """Base class for failures that terminate a single item's pipeline run.

    The batch orchestrator catches these (and anything else) at the item
    boundary, so a failure here never reaches sibling items.
    """


class SearchFailure(PipelineFailure):
    """Raised when the candidate source is unreachable or returns a malformed response."""


class ClassificationFailure(PipelineFailure):
    """Raised when a vision response is unparsable or missing required fields."""


class PersistenceFailure(PipelineFailure):
    """Raised when the result store rejects a write."""


class RateLimitFailure(PipelineFailure):
    """Raised when an external service keeps signalling throttling after retries."""
