"""Interfaces the verification service depends on.

Any object with matching methods can be passed to VerificationService; the
defaults live in ``tools``, ``metrics`` and ``calculations``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable
from typing import Any, Protocol, runtime_checkable

from smart_thinking.models import (
    CalculationEvaluation,
    CalculationVerification,
    SuggestedTool,
    ToolResult,
    VerificationRequirements,
)


@runtime_checkable
class ToolIntegrator(Protocol):
    """Suggests and runs external verification tools.

    Examples:
        >>> class NoTools:
        ...     def suggest_verification_tools(self, content: str) -> list[SuggestedTool]:
        ...         return []
        ...     async def execute_verification_tool(self, name: str, content: str):
        ...         return None
        >>> integrator: ToolIntegrator = NoTools()
    """

    def suggest_verification_tools(
        self, content: str
    ) -> list[SuggestedTool] | Awaitable[list[SuggestedTool]]:
        """Return candidate tools for ``content``, best first.

        May return the list directly or an awaitable resolving to it.
        """
        ...

    async def execute_verification_tool(
        self, name: str, content: str
    ) -> ToolResult | dict[str, Any] | None:
        """Run one tool against ``content``.

        Raises:
            Exception: Any failure; the service treats it as "no result".
        """
        ...


@runtime_checkable
class MetricsCalculator(Protocol):
    """Decides how much verification a claim deserves."""

    def determine_verification_requirements(
        self, content: str, initial_confidence: float = 0.5
    ) -> VerificationRequirements: ...


@runtime_checkable
class CalculationEvaluator(Protocol):
    """Finds and checks arithmetic claims in text."""

    def detect_and_evaluate(self, text: str) -> list[CalculationEvaluation]: ...

    def convert_to_verification_results(
        self, evaluations: Iterable[CalculationEvaluation]
    ) -> list[CalculationVerification]: ...


__all__ = ["CalculationEvaluator", "MetricsCalculator", "ToolIntegrator"]
