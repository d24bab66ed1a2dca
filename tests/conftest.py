"""
Pytest configuration and shared fixtures for smart-thinking tests.

This module provides fixtures for the verification core:
- Settings and a controllable clock
- Similarity engine and verification memory
- Mocked collaborators for the verification service
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from smart_thinking.config import Settings
from smart_thinking.models import VerificationRequirements
from smart_thinking.verification.calculations import MathEvaluator
from smart_thinking.verification.memory import VerificationMemory
from smart_thinking.verification.service import VerificationService
from smart_thinking.verification.similarity import SimilarityEngine


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    """Provide default settings, isolated from the environment's .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# MEMORY FIXTURES
# ============================================================================


@pytest.fixture
def similarity_engine() -> SimilarityEngine:
    return SimilarityEngine()


@pytest.fixture
def memory(similarity_engine: SimilarityEngine, settings: Settings, clock: FakeClock) -> VerificationMemory:
    """Provide a verification memory backed by the TF-IDF engine and a fake clock."""
    return VerificationMemory(similarity_engine=similarity_engine, settings=settings, clock=clock)


@pytest.fixture
def text_only_memory(settings: Settings, clock: FakeClock) -> VerificationMemory:
    """Provide a verification memory without a similarity engine."""
    return VerificationMemory(similarity_engine=None, settings=settings, clock=clock)


@pytest.fixture
async def running_memory(memory: VerificationMemory) -> AsyncGenerator[VerificationMemory, None]:
    """Provide a started memory that is stopped after the test."""
    await memory.start()
    yield memory
    await memory.stop()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def tool_integrator() -> MagicMock:
    """Provide a mocked tool integrator suggesting no tools by default."""
    integrator = MagicMock()
    integrator.suggest_verification_tools = MagicMock(return_value=[])
    integrator.execute_verification_tool = AsyncMock(return_value=None)
    return integrator


@pytest.fixture
def metrics_calculator() -> MagicMock:
    """Provide a mocked metrics calculator requiring a single verification."""
    calculator = MagicMock()
    calculator.determine_verification_requirements = MagicMock(
        return_value=VerificationRequirements()
    )
    return calculator


@pytest.fixture
def service(
    tool_integrator: MagicMock,
    metrics_calculator: MagicMock,
    memory: VerificationMemory,
    settings: Settings,
) -> VerificationService:
    return VerificationService(
        tool_integrator=tool_integrator,
        metrics_calculator=metrics_calculator,
        verification_memory=memory,
        calculation_evaluator=MathEvaluator(),
        settings=settings,
    )

