"""Tests for verification outcome aggregation."""

from __future__ import annotations

from typing import Any

import pytest

from smart_thinking.config import VerificationSettings
from smart_thinking.models import (
    CalculationVerification,
    ToolOutcome,
    ToolResult,
    VerificationStatus,
)
from smart_thinking.verification import aggregation
from smart_thinking.verification.aggregation import Verdict


def outcome(name: str, is_valid: Any, confidence: float = 0.8, source: str | None = None) -> ToolOutcome:
    return ToolOutcome(
        tool_name=name, result=ToolResult(is_valid=is_valid, source=source), confidence=confidence
    )


def calc(is_correct: bool | None, context: str = "standard") -> CalculationVerification:
    return CalculationVerification(
        original="2 + 2 = 4", verified="2 + 2 = 4", is_correct=is_correct, context=context
    )


@pytest.fixture
def verification_settings() -> VerificationSettings:
    return VerificationSettings()


class TestResolveStatus:
    """Tests for the status precedence."""

    def test_no_outcomes(self, verification_settings: VerificationSettings) -> None:
        """Test no outcomes leaves the claim unverified at most at the required threshold."""
        verdict = aggregation.resolve_status([], verification_settings, intrinsic_confidence=0.9)

        assert verdict.status is VerificationStatus.UNVERIFIED
        assert verdict.confidence == 0.5

    def test_all_absent(self, verification_settings: VerificationSettings) -> None:
        """Test absence of information everywhere is reported as such."""
        verdict = aggregation.resolve_status(
            [outcome("a", "absence_of_information"), outcome("b", "absence_of_information")],
            verification_settings,
        )

        assert verdict.status is VerificationStatus.ABSENCE_OF_INFORMATION

    def test_verified_with_corroboration_bonus(self, verification_settings: VerificationSettings) -> None:
        """Test two confirming tools average their confidence plus one bonus."""
        verdict = aggregation.resolve_status(
            [outcome("a", True, 0.8), outcome("b", True, 0.9)], verification_settings
        )

        assert verdict.status is VerificationStatus.VERIFIED
        assert verdict.confidence == pytest.approx(0.9)

    def test_branch_confidence_is_capped(self, verification_settings: VerificationSettings) -> None:
        """Test the corroboration bonus never exceeds the maximum confidence."""
        outcomes = [outcome(name, True, 0.95) for name in "abc"]

        assert aggregation.branch_confidence(outcomes, verification_settings) == pytest.approx(0.95)

    def test_tool_reported_confidence_wins(self, verification_settings: VerificationSettings) -> None:
        """Test a confidence in the tool result overrides the suggested one."""
        reported = ToolOutcome(
            tool_name="a", result=ToolResult(is_valid=True, confidence=0.7), confidence=0.2
        )

        verdict = aggregation.resolve_status([reported], verification_settings)

        assert verdict.confidence == pytest.approx(0.7)

    def test_absent_and_valid_is_verified(self, verification_settings: VerificationSettings) -> None:
        """Test one confirming tool beats an absence of information."""
        verdict = aggregation.resolve_status(
            [outcome("a", "absence_of_information"), outcome("b", True)], verification_settings
        )

        assert verdict.status is VerificationStatus.VERIFIED

    def test_partial(self, verification_settings: VerificationSettings) -> None:
        """Test a partial confirmation with a refutation is partially verified."""
        verdict = aggregation.resolve_status(
            [outcome("a", "partial", 0.6), outcome("b", False)], verification_settings
        )

        assert verdict.status is VerificationStatus.PARTIALLY_VERIFIED
        assert verdict.confidence == pytest.approx(0.6)

    def test_contradictory_has_fixed_confidence(self, verification_settings: VerificationSettings) -> None:
        """Test confirming and refuting tools together are contradictory at 0.4."""
        verdict = aggregation.resolve_status(
            [outcome("a", True, 0.9), outcome("b", False, 0.9)], verification_settings
        )

        assert verdict.status is VerificationStatus.CONTRADICTORY
        assert verdict.confidence == 0.4

    def test_unknown_is_uncertain(self, verification_settings: VerificationSettings) -> None:
        """Test tools without a validity signal make the claim uncertain."""
        verdict = aggregation.resolve_status([outcome("a", None, 0.9, source="x")], verification_settings)

        assert verdict.status is VerificationStatus.UNCERTAIN
        assert verdict.confidence <= 0.5

    def test_refuted_only(self, verification_settings: VerificationSettings) -> None:
        """Test refuting tools alone leave the claim unverified with low confidence."""
        verdict = aggregation.resolve_status([outcome("a", False, 0.9)], verification_settings)

        assert verdict.status is VerificationStatus.UNVERIFIED
        assert verdict.confidence == pytest.approx(0.1)


class TestCalculationEvidence:
    """Tests for apply_calculation_evidence and counted_calculations."""

    def test_function_notation_is_not_counted(self) -> None:
        """Test function notations never count as evidence."""
        counted = aggregation.counted_calculations([calc(True, "function_notation"), calc(True)])

        assert len(counted) == 1

    def test_correct_calculations_promote_unverified(self) -> None:
        """Test correct calculations lift an unverified claim."""
        verdict = aggregation.apply_calculation_evidence(
            Verdict(VerificationStatus.UNVERIFIED, 0.3), [calc(True), calc(False)]
        )

        assert verdict.status is VerificationStatus.PARTIALLY_VERIFIED
        assert verdict.confidence == pytest.approx(0.35)

    def test_all_incorrect_contradicts(self) -> None:
        """Test only wrong calculations turn unverified into contradicted."""
        verdict = aggregation.apply_calculation_evidence(
            Verdict(VerificationStatus.UNVERIFIED, 0.5), [calc(False)]
        )

        assert verdict.status is VerificationStatus.CONTRADICTED

    def test_pending_calculations_change_nothing(self) -> None:
        """Test calculations still pending leave the verdict untouched."""
        verdict = Verdict(VerificationStatus.UNVERIFIED, 0.5)

        assert aggregation.apply_calculation_evidence(verdict, [calc(None)]) == verdict

    def test_contradictory_is_kept(self) -> None:
        """Test calculations do not override tool disagreement."""
        verdict = Verdict(VerificationStatus.CONTRADICTORY, 0.4)

        assert aggregation.apply_calculation_evidence(verdict, [calc(True)]) == verdict


class TestFloorsAndPromotion:
    """Tests for enforce_confidence_floor and promote_on_intrinsic_confidence."""

    def test_floors(self) -> None:
        """Test verified and partially verified confidences are floored."""
        assert aggregation.enforce_confidence_floor(Verdict(VerificationStatus.VERIFIED, 0.2)).confidence == 0.6
        assert (
            aggregation.enforce_confidence_floor(Verdict(VerificationStatus.PARTIALLY_VERIFIED, 0.1)).confidence
            == 0.4
        )
        assert aggregation.enforce_confidence_floor(Verdict(VerificationStatus.UNVERIFIED, 0.1)).confidence == 0.1

    def test_promotion_with_logic_markers(self, verification_settings: VerificationSettings) -> None:
        """Test high intrinsic confidence plus a deduction promotes the claim."""
        verdict = aggregation.promote_on_intrinsic_confidence(
            Verdict(VerificationStatus.UNVERIFIED, 0.5),
            "All men are mortal, therefore Socrates is mortal.",
            0.9,
            verification_settings,
        )

        assert verdict.status is VerificationStatus.PARTIALLY_VERIFIED
        assert verdict.confidence == pytest.approx(0.7)

    def test_no_promotion_without_markers(self, verification_settings: VerificationSettings) -> None:
        """Test high intrinsic confidence alone is not enough below 0.95."""
        verdict = Verdict(VerificationStatus.UNVERIFIED, 0.5)

        promoted = aggregation.promote_on_intrinsic_confidence(
            verdict, "Paris is the capital of France.", 0.9, verification_settings
        )

        assert promoted == verdict

    def test_promotion_on_very_high_confidence(self, verification_settings: VerificationSettings) -> None:
        """Test a very high intrinsic confidence promotes on its own."""
        verdict = aggregation.promote_on_intrinsic_confidence(
            Verdict(VerificationStatus.UNVERIFIED, 0.0),
            "Paris is the capital of France.",
            0.96,
            verification_settings,
        )

        assert verdict.status is VerificationStatus.PARTIALLY_VERIFIED
        assert verdict.confidence == pytest.approx(0.48)


class TestReportingHelpers:
    """Tests for contradiction, source and note helpers."""

    @pytest.mark.parametrize(("first", "second"), [(True, False), (False, True)])
    def test_contradictions_in_either_order(self, first: bool, second: bool) -> None:
        """Test a valid/invalid pair is named whatever its order."""
        contradictions = aggregation.detect_contradictions([outcome("a", first), outcome("b", second)])

        assert contradictions == ["Contradiction between a and b"]

    def test_no_contradiction_between_agreeing_tools(self) -> None:
        """Test agreeing tools produce no contradiction."""
        assert aggregation.detect_contradictions([outcome("a", True), outcome("b", True)]) == []

    def test_format_sources(self) -> None:
        """Test sources name the tool and fall back when unspecified."""
        sources = aggregation.format_sources([outcome("a", True, source="wiki"), outcome("b", True)])

        assert sources == ["a: wiki", "b: unspecified source"]

    def test_notes(self) -> None:
        """Test notes summarize tools, refutations and calculations."""
        notes = aggregation.verification_notes([outcome("a", True), outcome("b", False)], [calc(True)])

        assert notes == (
            "Verified with the following tools: a, b. Refuted by: b. "
            "1 calculation(s) checked, 1 correct."
        )

    def test_notes_without_evidence(self) -> None:
        """Test an empty run says nothing could be verified."""
        assert aggregation.verification_notes([], None) == "No verification could be performed."
