"""Verification service: the claim verification pipeline.

VerificationService answers three questions about a claim:

- does it contain arithmetic that can be checked right away
  (``perform_preliminary_verification``)?
- was a similar claim already verified in this session
  (``check_previous_verification``)?
- what do the verification tools say about it (``deep_verify``)?

Deep verification runs in stages: memory lookup, claim classification, tool
sizing, parallel tool fan-out, calculation checks, an optional complementary
tool, and aggregation. Tool and evaluator failures never abort a run; they
are logged and treated as missing results. The outcome is always written
back to the verification memory.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

import structlog

from smart_thinking.config import Settings, get_settings
from smart_thinking.models import (
    CalculationVerification,
    ClaimCategory,
    ClaimClassification,
    PreliminaryVerificationResult,
    PreviousVerificationResult,
    SuggestedTool,
    ThoughtNode,
    ToolOutcome,
    VerificationRequirements,
    VerificationResult,
    VerificationStatus,
)
from smart_thinking.verification import aggregation
from smart_thinking.verification.calculations import MathEvaluator
from smart_thinking.verification.classifiers import classify_claim, has_preliminary_calculations
from smart_thinking.verification.collaborators import (
    CalculationEvaluator,
    MetricsCalculator,
    ToolIntegrator,
)
from smart_thinking.verification.memory import VerificationMemory
from smart_thinking.verification.tools import coerce_tool_result

logger = structlog.get_logger(__name__)

CALCULATION_TOOL_MARKERS = ("calc", "math", "python", "javascript")

VERIFIED_MARKER = " [✓ verified]"
PENDING_MARKER = " [⏳ pending verification]"
INCORRECT_MARKER = " [✗ incorrect: {reason}]"


def _percent(value: float) -> int:
    return round(value * 100)


class VerificationService:
    """Orchestrates claim verification across memory, tools and the evaluator.

    Examples:
        >>> service = VerificationService(
        ...     tool_integrator=KeywordToolIntegrator(),
        ...     metrics_calculator=HeuristicMetricsCalculator(),
        ...     verification_memory=VerificationMemory(SimilarityEngine()),
        ... )
        >>> result = await service.deep_verify(ThoughtNode(content="2 + 2 = 4"))
    """

    def __init__(
        self,
        tool_integrator: ToolIntegrator,
        metrics_calculator: MetricsCalculator,
        verification_memory: VerificationMemory,
        calculation_evaluator: CalculationEvaluator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.tool_integrator = tool_integrator
        self.metrics_calculator = metrics_calculator
        self.verification_memory = verification_memory
        self.calculation_evaluator = calculation_evaluator or MathEvaluator()
        self._settings = settings or get_settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    async def _suggest_tools(self, content: str) -> list[SuggestedTool]:
        try:
            tools = self.tool_integrator.suggest_verification_tools(content)
            if inspect.isawaitable(tools):
                tools = await tools
        except Exception as e:
            logger.warning("tool_suggestion_failed", error=str(e))
            return []
        return list(tools or [])

    async def _run_tool(self, tool: SuggestedTool, content: str) -> ToolOutcome | None:
        raw = await self.tool_integrator.execute_verification_tool(tool.name, content)
        result = coerce_tool_result(raw)
        if result is None or not result.has_signal:
            logger.debug("verification_tool_empty", tool=tool.name)
            return None
        return ToolOutcome(tool_name=tool.name, result=result, confidence=tool.confidence)

    async def _fan_out(self, tools: Sequence[SuggestedTool], content: str) -> list[ToolOutcome]:
        """Run ``tools`` concurrently, keeping only successful results."""
        if not tools:
            return []

        results = await asyncio.gather(
            *(self._run_tool(tool, content) for tool in tools), return_exceptions=True
        )

        outcomes: list[ToolOutcome] = []
        for tool, result in zip(tools, results):
            if isinstance(result, Exception):
                logger.warning("verification_tool_failed", tool=tool.name, error=str(result))
            elif isinstance(result, BaseException):
                raise result
            elif result is not None:
                outcomes.append(result)

        logger.debug("verification_fan_out_complete", succeeded=len(outcomes), launched=len(tools))
        return outcomes

    def _evaluate_calculations(self, content: str) -> list[CalculationVerification]:
        evaluations = self.calculation_evaluator.detect_and_evaluate(content)
        return self.calculation_evaluator.convert_to_verification_results(evaluations)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def perform_preliminary_verification(
        self, content: str, explicitly_requested: bool = False
    ) -> PreliminaryVerificationResult:
        """Check embedded calculations before any deep verification.

        A calculation-capable tool is preferred; the built-in evaluator is
        used when no such tool exists, it fails, or it returns no
        calculations.
        """
        if not (explicitly_requested or has_preliminary_calculations(content)):
            return PreliminaryVerificationResult(preverified_thought=content)

        calculation_tools = [
            tool
            for tool in await self._suggest_tools(content)
            if any(marker in tool.name.lower() for marker in CALCULATION_TOOL_MARKERS)
        ]
        if calculation_tools:
            tool = calculation_tools[0]
            try:
                result = coerce_tool_result(
                    await self.tool_integrator.execute_verification_tool(tool.name, content)
                )
            except Exception as e:
                logger.warning("calculation_tool_failed", tool=tool.name, error=str(e))
            else:
                if result is not None and result.verified_calculations is not None:
                    calculations = result.verified_calculations
                    logger.info(
                        "calculations_verified", source=tool.name, count=len(calculations)
                    )
                    return PreliminaryVerificationResult(
                        verified_calculations=calculations,
                        initial_verification=True,
                        verification_in_progress=True,
                        preverified_thought=self.annotate_thought_with_verifications(
                            content, calculations
                        ),
                    )

        try:
            calculations = self._evaluate_calculations(content)
        except Exception as e:
            logger.warning("calculation_evaluation_failed", error=str(e))
            return PreliminaryVerificationResult(
                initial_verification=False,
                verification_in_progress=True,
                preverified_thought=content,
            )

        logger.info("calculations_verified", source="internal", count=len(calculations))
        return PreliminaryVerificationResult(
            verified_calculations=calculations,
            initial_verification=bool(calculations),
            verification_in_progress=True,
            preverified_thought=self.annotate_thought_with_verifications(content, calculations),
        )

    async def check_previous_verification(
        self, content: str, session_id: str | None = None
    ) -> PreviousVerificationResult:
        """Look ``content`` up in the session's verification memory.

        The reported confidence is the lower of the stored confidence and
        the match similarity.
        """
        session_id = session_id or self._settings.default_session_id
        similarity = self._settings.verification.similarity
        try:
            hit = await self.verification_memory.find_verification(
                content, session_id, similarity.medium_similarity
            )
        except Exception as e:
            logger.warning("verification_memory_lookup_failed", session_id=session_id, error=str(e))
            hit = None

        if hit is None:
            return PreviousVerificationResult(certainty_summary="Information not verified.")

        confidence = min(hit.confidence, hit.similarity)
        match_kind = "an identical" if hit.similarity >= similarity.exact_match else "a similar"
        verification = VerificationResult(
            status=hit.status,
            confidence=confidence,
            sources=list(hit.sources),
            verification_steps=["Verified in an earlier reasoning step"],
            notes=(
                f"This claim matches {match_kind} claim verified earlier "
                f"({_percent(hit.similarity)}% similarity)."
            ),
        )
        logger.debug(
            "previous_verification_found",
            session_id=session_id,
            entry_id=hit.id,
            similarity=round(hit.similarity, 3),
        )
        return PreviousVerificationResult(
            previous_verification=hit,
            verification=verification,
            is_verified=hit.status.is_positive,
            verification_status=hit.status,
            certainty_summary=(
                f"Previously verified with {_percent(hit.similarity)}% similarity. "
                f"Confidence level: {_percent(confidence)}%."
            ),
        )

    @staticmethod
    def _tool_count(
        requirements: VerificationRequirements,
        classification: ClaimClassification,
        available: int,
    ) -> int:
        if available == 0:
            return 0
        wanted = (
            requirements.recommended_verifications_count
            if requirements.requires_multiple_verifications
            else 1
        )
        count = max(1, min(wanted, available))
        if classification.category_count > 2:
            count = min(count + 1, available)
        return count

    async def deep_verify(
        self,
        thought: ThoughtNode,
        contains_calculations: bool = False,
        force_verification: bool = False,
        session_id: str | None = None,
    ) -> VerificationResult:
        """Verify a claim, reusing memory when possible.

        Args:
            thought: The claim. Its metadata is stamped with the outcome.
            contains_calculations: Force a calculation check.
            force_verification: Skip the memory lookup.
            session_id: Session scoping memory reads and writes.

        Returns:
            The aggregated verification result.
        """
        session_id = session_id or self._settings.default_session_id
        content = thought.content
        verification_settings = self._settings.verification
        stages: list[str] = []

        if not force_verification:
            stages.append("memory_lookup")
            previous = await self.check_previous_verification(content, session_id)
            if (
                previous.verification is not None
                and previous.previous_verification is not None
                and previous.verification.confidence
                >= verification_settings.confidence.verification_required
            ):
                reused = previous.verification
                floored = aggregation.enforce_confidence_floor(
                    aggregation.Verdict(reused.status, reused.confidence)
                )
                if floored.confidence != reused.confidence:
                    reused = reused.model_copy(update={"confidence": floored.confidence})
                thought.metadata.update(
                    is_verified=previous.is_verified,
                    verification_source="memory",
                    verification_timestamp=previous.previous_verification.timestamp,
                    verification_session_id=session_id,
                    semantic_similarity=previous.previous_verification.similarity,
                )
                logger.info(
                    "verification_reused",
                    session_id=session_id,
                    status=reused.status.value,
                )
                return reused

        stages.append("classification")
        classification = classify_claim(content)
        if classification.has(ClaimCategory.CALCULATION):
            contains_calculations = True

        requirements = self.metrics_calculator.determine_verification_requirements(
            content, thought.confidence
        )
        thought.metadata.update(
            requires_multiple_verifications=requirements.requires_multiple_verifications,
            verification_reasons=list(requirements.reasons),
            recommended_verifications_count=requirements.recommended_verifications_count,
        )

        stages.append("tool_selection")
        tools = await self._suggest_tools(content)
        primary = tools[: self._tool_count(requirements, classification, len(tools))]

        stages.append("primary_verification")
        outcomes = await self._fan_out(primary, content)

        calculations = next(
            (
                outcome.result.verified_calculations
                for outcome in outcomes
                if outcome.result.verified_calculations is not None
            ),
            None,
        )
        if calculations is None and contains_calculations:
            stages.append("calculation_verification")
            calculations = self.detect_and_verify_calculations(content)

        if len(outcomes) < 2 and requirements.requires_multiple_verifications:
            used = {tool.name for tool in primary}
            unused = [tool for tool in tools if tool.name not in used]
            if unused:
                stages.append("complementary_verification")
                outcomes.extend(await self._fan_out(unused[:1], content))

        stages.append("aggregation")
        verdict = aggregation.resolve_status(outcomes, verification_settings, thought.confidence)
        verdict = aggregation.apply_calculation_evidence(verdict, calculations)
        verdict = aggregation.enforce_confidence_floor(verdict)
        verdict = aggregation.promote_on_intrinsic_confidence(
            verdict, content, thought.confidence, verification_settings
        )
        verdict = aggregation.enforce_confidence_floor(verdict)

        sources = aggregation.format_sources(outcomes)
        steps = [f"Verified with {outcome.tool_name}" for outcome in outcomes]
        if calculations:
            steps.append(f"Checked {len(calculations)} calculation(s)")
        contradictions = self.detect_contradictions(outcomes)

        result = VerificationResult(
            status=verdict.status,
            confidence=verdict.confidence,
            sources=sources,
            verification_steps=steps,
            contradictions=contradictions or None,
            notes=aggregation.verification_notes(outcomes, calculations),
            verified_calculations=calculations,
        )

        await self.store_verification(content, result.status, result.confidence, sources, session_id)

        now = datetime.now(timezone.utc)
        thought.metadata.update(
            is_verified=result.status.is_positive,
            verification_timestamp=now,
            verification_source="tools" if outcomes else "internal",
            verification_session_id=session_id,
            verification_tools_used=[outcome.tool_name for outcome in outcomes],
            verification_stages=stages,
            verification_result={
                "status": result.status.value,
                "confidence": result.confidence,
                "timestamp": now,
                "sources": list(sources),
            },
        )
        logger.info(
            "verification_complete",
            session_id=session_id,
            status=result.status.value,
            confidence=round(result.confidence, 3),
            tools=len(outcomes),
        )
        return result

    async def store_verification(
        self,
        content: str,
        status: VerificationStatus,
        confidence: float,
        sources: Iterable[str] = (),
        session_id: str | None = None,
    ) -> str:
        return await self.verification_memory.add_verification(
            content,
            status,
            confidence,
            list(sources),
            session_id or self._settings.default_session_id,
        )

    def detect_and_verify_calculations(self, content: str) -> list[CalculationVerification]:
        """Detect and check calculations with the evaluator. Errors yield ``[]``."""
        try:
            return self._evaluate_calculations(content)
        except Exception as e:
            logger.warning("calculation_evaluation_failed", error=str(e))
            return []

    def detect_contradictions(self, outcomes: Sequence[ToolOutcome]) -> list[str]:
        return aggregation.detect_contradictions(outcomes)

    def annotate_thought_with_verifications(
        self, content: str, verifications: Sequence[CalculationVerification]
    ) -> str:
        """Insert a verification marker after each checked expression.

        Function notations are left unannotated. Markers are inserted from
        the end of the text backwards so earlier offsets stay valid.
        """
        insertions: list[tuple[int, str]] = []
        taken: set[int] = set()
        for verification in aggregation.counted_calculations(verifications):
            end = self._locate(content, verification.original, taken)
            if end is None:
                continue
            taken.add(end)
            if verification.is_correct is True:
                marker = VERIFIED_MARKER
            elif verification.is_correct is None:
                marker = PENDING_MARKER
            else:
                marker = INCORRECT_MARKER.format(reason=verification.verified)
            insertions.append((end, marker))

        annotated = content
        for end, marker in sorted(insertions, reverse=True):
            annotated = annotated[:end] + marker + annotated[end:]
        return annotated

    @staticmethod
    def _locate(content: str, original: str, taken: set[int]) -> int | None:
        start = content.find(original)
        while start != -1:
            end = start + len(original)
            if end not in taken:
                return end
            start = content.find(original, start + 1)
        return None


__all__ = [
    "CALCULATION_TOOL_MARKERS",
    "INCORRECT_MARKER",
    "PENDING_MARKER",
    "VERIFIED_MARKER",
    "VerificationService",
]
