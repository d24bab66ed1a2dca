"""Verification core for smart-thinking.

This module provides:
- TF-IDF text similarity
- Session-scoped verification memory
- The verification pipeline and its default collaborators
- Verification reporting

Example:
    >>> from smart_thinking.verification import VerificationService
    >>> service = VerificationService(
    ...     tool_integrator=KeywordToolIntegrator(),
    ...     metrics_calculator=HeuristicMetricsCalculator(),
    ...     verification_memory=VerificationMemory(SimilarityEngine()),
    ... )
    >>> result = await service.deep_verify(ThoughtNode(content="2 + 2 = 4"))
"""

from __future__ import annotations

# Calculations
from smart_thinking.verification.calculations import MathEvaluator, safe_evaluate

# Classification
from smart_thinking.verification.classifiers import classify_claim

# Collaborator protocols
from smart_thinking.verification.collaborators import (
    CalculationEvaluator,
    MetricsCalculator,
    ToolIntegrator,
)

# Memory
from smart_thinking.verification.memory import VerificationMemory

# Default collaborators
from smart_thinking.verification.metrics import HeuristicMetricsCalculator

# Reporting
from smart_thinking.verification.reporting import VerificationReporter

# Service
from smart_thinking.verification.service import VerificationService

# Similarity
from smart_thinking.verification.similarity import SimilarityEngine
from smart_thinking.verification.tools import KeywordToolIntegrator, ToolKind, VerificationTool

__all__ = [
    # Similarity
    "SimilarityEngine",
    # Memory
    "VerificationMemory",
    # Service
    "VerificationService",
    # Protocols
    "CalculationEvaluator",
    "MetricsCalculator",
    "ToolIntegrator",
    # Defaults
    "HeuristicMetricsCalculator",
    "KeywordToolIntegrator",
    "MathEvaluator",
    "ToolKind",
    "VerificationTool",
    "classify_claim",
    "safe_evaluate",
    # Reporting
    "VerificationReporter",
]
