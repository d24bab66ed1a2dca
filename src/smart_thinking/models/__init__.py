"""
Data models for smart-thinking.

All models use Pydantic v2 for validation and serialization.
"""

from __future__ import annotations

from smart_thinking.models.thought import ThoughtNode
from smart_thinking.models.verification import (
    CalculationEvaluation,
    CalculationVerification,
    ClaimCategory,
    ClaimClassification,
    MemoryStats,
    PreliminaryVerificationResult,
    PreviousVerificationResult,
    SimilarityMatch,
    SuggestedTool,
    ToolOutcome,
    ToolResult,
    ToolValidity,
    VerificationEntry,
    VerificationRequirements,
    VerificationResult,
    VerificationSearchResult,
    VerificationStatus,
)

__all__ = [
    "CalculationEvaluation",
    "CalculationVerification",
    "ClaimCategory",
    "ClaimClassification",
    "MemoryStats",
    "PreliminaryVerificationResult",
    "PreviousVerificationResult",
    "SimilarityMatch",
    "SuggestedTool",
    "ThoughtNode",
    "ToolOutcome",
    "ToolResult",
    "ToolValidity",
    "VerificationEntry",
    "VerificationRequirements",
    "VerificationResult",
    "VerificationSearchResult",
    "VerificationStatus",
]
