"""Explicit wiring of the verification components.

A VerificationContext owns one similarity engine, one verification memory
and one verification service. It replaces process-wide singletons: callers
create a context, start it, and pass it (or its service) around.

``verification_lifespan`` additionally registers the context as the active
one so that ``get_verification_service()`` can reach it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog

from smart_thinking.config import Settings, get_settings
from smart_thinking.errors import VerificationBackendNotConfiguredError
from smart_thinking.verification.calculations import MathEvaluator
from smart_thinking.verification.collaborators import (
    CalculationEvaluator,
    MetricsCalculator,
    ToolIntegrator,
)
from smart_thinking.verification.memory import VerificationMemory
from smart_thinking.verification.service import VerificationService
from smart_thinking.verification.similarity import SimilarityEngine

logger = structlog.get_logger(__name__)

# Context registered by verification_lifespan
_CONTEXT: VerificationContext | None = None


@dataclass
class VerificationContext:
    """Verification components sharing one configuration.

    Attributes:
        settings: Configuration shared by every component
        similarity_engine: TF-IDF engine used by the memory
        verification_memory: Session-scoped verification store
        verification_service: The verification pipeline
    """

    settings: Settings
    similarity_engine: SimilarityEngine
    verification_memory: VerificationMemory
    verification_service: VerificationService

    @classmethod
    def create(
        cls,
        tool_integrator: ToolIntegrator,
        metrics_calculator: MetricsCalculator,
        settings: Settings | None = None,
        calculation_evaluator: CalculationEvaluator | None = None,
        similarity_engine: SimilarityEngine | None = None,
    ) -> VerificationContext:
        """Wire a memory and a service around the given collaborators."""
        settings = settings or get_settings()
        engine = similarity_engine or SimilarityEngine(
            token_cache_ttl=settings.verification.memory.cache_expiration
        )
        memory = VerificationMemory(similarity_engine=engine, settings=settings)
        service = VerificationService(
            tool_integrator=tool_integrator,
            metrics_calculator=metrics_calculator,
            verification_memory=memory,
            calculation_evaluator=calculation_evaluator or MathEvaluator(),
            settings=settings,
        )
        return cls(
            settings=settings,
            similarity_engine=engine,
            verification_memory=memory,
            verification_service=service,
        )

    async def start(self) -> None:
        await self.verification_memory.start()

    async def stop(self) -> None:
        await self.verification_memory.stop()


def get_verification_service() -> VerificationService:
    """Get the service of the active verification context.

    Raises:
        VerificationBackendNotConfiguredError: If no context is active.
    """
    if _CONTEXT is None:
        raise VerificationBackendNotConfiguredError()
    return _CONTEXT.verification_service


@asynccontextmanager
async def verification_lifespan(
    tool_integrator: ToolIntegrator,
    metrics_calculator: MetricsCalculator,
    settings: Settings | None = None,
    calculation_evaluator: CalculationEvaluator | None = None,
) -> AsyncIterator[VerificationContext]:
    """Create, start and register a VerificationContext.

    The memory sweeps are stopped and the context unregistered on exit, even
    when the body raises.

    Example:
        >>> async with verification_lifespan(integrator, metrics) as ctx:
        ...     result = await ctx.verification_service.deep_verify(thought)
    """
    global _CONTEXT

    context = VerificationContext.create(
        tool_integrator,
        metrics_calculator,
        settings=settings,
        calculation_evaluator=calculation_evaluator,
    )
    await context.start()
    previous = _CONTEXT
    _CONTEXT = context
    logger.info("verification_context_started")
    try:
        yield context
    finally:
        _CONTEXT = previous
        await context.stop()
        logger.info("verification_context_stopped")


__all__ = [
    "VerificationContext",
    "get_verification_service",
    "verification_lifespan",
]
