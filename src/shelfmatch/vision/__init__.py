# ABOUTME: Vision package: the VisionService protocol, prompts, and the Gemini adapter.
# ABOUTME: Exports the comparison result types consumed by the matching stages.

from shelfmatch.vision.service import (
    CandidateScore,
    JointSelection,
    TierComparison,
    VisionService,
)

__all__ = [
    "CandidateScore",
    "JointSelection",
    "TierComparison",
    "VisionService",
]
