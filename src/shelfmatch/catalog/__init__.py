# ABOUTME: Catalog package: shelf item and candidate types plus candidate sources.
# ABOUTME: Exports the data model shared by every pipeline stage.

from shelfmatch.catalog.source import CandidateSource
from shelfmatch.catalog.types import (
    BoundingBox,
    CandidateProduct,
    DetectedItem,
    ExtractedField,
    ExtractedMetadata,
)

__all__ = [
    "BoundingBox",
    "CandidateProduct",
    "CandidateSource",
    "DetectedItem",
    "ExtractedField",
    "ExtractedMetadata",
]
