"""Pure functions turning tool outcomes into one status and confidence.

Status precedence over the collected tool outcomes:

1. every outcome reports absence of information -> ``absence_of_information``
2. at least one valid and no invalid -> ``verified``
3. any partial -> ``partially_verified``
4. valid and invalid together -> ``contradictory`` (fixed confidence)
5. any unknown -> ``uncertain``
6. otherwise -> ``unverified``
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from smart_thinking.config import VerificationSettings
from smart_thinking.models import (
    CalculationVerification,
    ToolOutcome,
    ToolValidity,
    VerificationStatus,
)
from smart_thinking.verification.classifiers import has_math_or_logic_markers

CONTRADICTORY_CONFIDENCE = 0.4
VERIFIED_FLOOR = 0.6
PARTIALLY_VERIFIED_FLOOR = 0.4
CALCULATION_WEIGHT = 0.7
VERY_HIGH_INTRINSIC_CONFIDENCE = 0.95


@dataclass
class ValidityGroups:
    """Tool outcomes split by normalized validity."""

    valid: list[ToolOutcome] = field(default_factory=list)
    invalid: list[ToolOutcome] = field(default_factory=list)
    partial: list[ToolOutcome] = field(default_factory=list)
    absent: list[ToolOutcome] = field(default_factory=list)
    unknown: list[ToolOutcome] = field(default_factory=list)


@dataclass
class Verdict:
    status: VerificationStatus
    confidence: float


def group_by_validity(outcomes: Sequence[ToolOutcome]) -> ValidityGroups:
    groups = ValidityGroups()
    for outcome in outcomes:
        match outcome.validity:
            case ToolValidity.VALID:
                groups.valid.append(outcome)
            case ToolValidity.INVALID:
                groups.invalid.append(outcome)
            case ToolValidity.PARTIAL:
                groups.partial.append(outcome)
            case ToolValidity.ABSENCE_OF_INFORMATION:
                groups.absent.append(outcome)
            case ToolValidity.UNKNOWN:
                groups.unknown.append(outcome)
    return groups


def _mean_confidence(outcomes: Sequence[ToolOutcome]) -> float:
    return sum(outcome.effective_confidence for outcome in outcomes) / len(outcomes)


def branch_confidence(outcomes: Sequence[ToolOutcome], settings: VerificationSettings) -> float:
    """Mean tool confidence plus a bonus per additional corroborating tool, capped."""
    if not outcomes:
        return 0.0
    bonus = settings.corroboration_bonus * (len(outcomes) - 1)
    return min(_mean_confidence(outcomes) + bonus, settings.max_confidence)


def resolve_status(
    outcomes: Sequence[ToolOutcome],
    settings: VerificationSettings,
    intrinsic_confidence: float = 0.5,
) -> Verdict:
    """Apply the status precedence to the collected tool outcomes.

    With no outcomes the claim stays ``unverified`` and keeps its intrinsic
    confidence, capped at the verification-required threshold.
    """
    required = settings.confidence.verification_required
    if not outcomes:
        return Verdict(VerificationStatus.UNVERIFIED, min(intrinsic_confidence, required))

    groups = group_by_validity(outcomes)

    if len(groups.absent) == len(outcomes):
        return Verdict(
            VerificationStatus.ABSENCE_OF_INFORMATION, branch_confidence(groups.absent, settings)
        )
    if groups.valid and not groups.invalid:
        return Verdict(VerificationStatus.VERIFIED, branch_confidence(groups.valid, settings))
    if groups.partial:
        return Verdict(
            VerificationStatus.PARTIALLY_VERIFIED,
            branch_confidence(groups.partial + groups.valid, settings),
        )
    if groups.valid and groups.invalid:
        return Verdict(VerificationStatus.CONTRADICTORY, CONTRADICTORY_CONFIDENCE)
    if groups.unknown:
        return Verdict(
            VerificationStatus.UNCERTAIN, min(branch_confidence(groups.unknown, settings), required)
        )
    if groups.invalid:
        # Confidence in the claim shrinks as refuting tools grow surer
        refuted = 1.0 - _mean_confidence(groups.invalid)
        return Verdict(VerificationStatus.UNVERIFIED, min(max(refuted, 0.0), required))
    return Verdict(VerificationStatus.UNVERIFIED, min(intrinsic_confidence, required))


def counted_calculations(
    calculations: Sequence[CalculationVerification] | None,
) -> list[CalculationVerification]:
    """Calculations that count as evidence; function notations do not."""
    return [calc for calc in calculations or () if calc.context != "function_notation"]


def apply_calculation_evidence(
    verdict: Verdict, calculations: Sequence[CalculationVerification] | None
) -> Verdict:
    """Let checked calculations lift an unverified claim, or refute it.

    Correct calculations promote ``unverified`` to ``partially_verified``
    and raise confidence to the share of correct calculations weighted by
    0.7. When every checked calculation is wrong an ``unverified`` claim
    becomes ``contradicted``. Tool disagreement is left untouched.
    """
    counted = counted_calculations(calculations)
    if not counted or verdict.status is VerificationStatus.CONTRADICTORY:
        return verdict

    correct = [calc for calc in counted if calc.is_correct is True]
    if correct:
        status = verdict.status
        if status is VerificationStatus.UNVERIFIED:
            status = VerificationStatus.PARTIALLY_VERIFIED
        accuracy = len(correct) / len(counted)
        return Verdict(status, max(verdict.confidence, accuracy * CALCULATION_WEIGHT))

    if verdict.status is VerificationStatus.UNVERIFIED and all(
        calc.is_correct is False for calc in counted
    ):
        return Verdict(VerificationStatus.CONTRADICTED, verdict.confidence)
    return verdict


def promote_on_intrinsic_confidence(
    verdict: Verdict,
    content: str,
    intrinsic_confidence: float,
    settings: VerificationSettings,
) -> Verdict:
    """Promote an unverified claim the reasoning process is very sure about.

    Requires a high intrinsic confidence together with math or logic
    markers in the content, or a very high intrinsic confidence alone.
    """
    if verdict.status is not VerificationStatus.UNVERIFIED:
        return verdict

    high = intrinsic_confidence >= settings.confidence.high_confidence
    if (high and has_math_or_logic_markers(content)) or (
        intrinsic_confidence >= VERY_HIGH_INTRINSIC_CONFIDENCE
    ):
        blended = (verdict.confidence + intrinsic_confidence) / 2
        return Verdict(
            VerificationStatus.PARTIALLY_VERIFIED, max(blended, PARTIALLY_VERIFIED_FLOOR)
        )
    return verdict


def enforce_confidence_floor(verdict: Verdict) -> Verdict:
    if verdict.status is VerificationStatus.VERIFIED:
        return Verdict(verdict.status, max(verdict.confidence, VERIFIED_FLOOR))
    if verdict.status is VerificationStatus.PARTIALLY_VERIFIED:
        return Verdict(verdict.status, max(verdict.confidence, PARTIALLY_VERIFIED_FLOOR))
    return verdict


def detect_contradictions(outcomes: Sequence[ToolOutcome]) -> list[str]:
    """Name every pair of tools where one confirms and the other refutes."""
    contradictions = []
    for i, first in enumerate(outcomes):
        for second in outcomes[i + 1 :]:
            pair = {first.validity, second.validity}
            if pair == {ToolValidity.VALID, ToolValidity.INVALID}:
                contradictions.append(
                    f"Contradiction between {first.tool_name} and {second.tool_name}"
                )
    return contradictions


def format_sources(outcomes: Sequence[ToolOutcome]) -> list[str]:
    return [
        f"{outcome.tool_name}: {outcome.result.source or 'unspecified source'}"
        for outcome in outcomes
    ]


def verification_notes(
    outcomes: Sequence[ToolOutcome],
    calculations: Sequence[CalculationVerification] | None,
) -> str:
    counted = counted_calculations(calculations)
    if not outcomes and not counted:
        return "No verification could be performed."

    notes = []
    if outcomes:
        notes.append(
            "Verified with the following tools: "
            + ", ".join(outcome.tool_name for outcome in outcomes)
            + "."
        )
        disagreeing = [
            outcome.tool_name for outcome in outcomes if outcome.validity is ToolValidity.INVALID
        ]
        if disagreeing:
            notes.append("Refuted by: " + ", ".join(disagreeing) + ".")
    if counted:
        correct = sum(1 for calc in counted if calc.is_correct is True)
        notes.append(f"{len(counted)} calculation(s) checked, {correct} correct.")
    return " ".join(notes)


__all__ = [
    "CONTRADICTORY_CONFIDENCE",
    "PARTIALLY_VERIFIED_FLOOR",
    "VERIFIED_FLOOR",
    "ValidityGroups",
    "Verdict",
    "apply_calculation_evidence",
    "branch_confidence",
    "counted_calculations",
    "detect_contradictions",
    "enforce_confidence_floor",
    "format_sources",
    "group_by_validity",
    "promote_on_intrinsic_confidence",
    "resolve_status",
    "verification_notes",
]
