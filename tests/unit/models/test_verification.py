"""Tests for verification models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from smart_thinking.models import (
    CalculationVerification,
    ThoughtNode,
    ToolOutcome,
    ToolResult,
    ToolValidity,
    VerificationEntry,
    VerificationResult,
    VerificationSearchResult,
    VerificationStatus,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_entry(**overrides) -> VerificationEntry:
    values = {
        "id": "verification-abc",
        "text": "Paris is the capital of France.",
        "status": VerificationStatus.VERIFIED,
        "confidence": 0.9,
        "sources": ["wiki"],
        "timestamp": NOW,
        "session_id": "s1",
        "expires_at": NOW + timedelta(hours=1),
    }
    values.update(overrides)
    return VerificationEntry(**values)


class TestVerificationStatus:
    """Tests for VerificationStatus."""

    def test_values(self) -> None:
        """Test the closed set of statuses."""
        assert {status.value for status in VerificationStatus} == {
            "unverified",
            "partially_verified",
            "verified",
            "contradicted",
            "inconclusive",
            "absence_of_information",
            "uncertain",
            "contradictory",
        }

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (VerificationStatus.VERIFIED, True),
            (VerificationStatus.PARTIALLY_VERIFIED, True),
            (VerificationStatus.UNCERTAIN, False),
            (VerificationStatus.CONTRADICTORY, False),
        ],
    )
    def test_is_positive(self, status: VerificationStatus, expected: bool) -> None:
        """Test only full or partial verification counts as positive."""
        assert status.is_positive is expected


class TestToolValidity:
    """Tests for ToolValidity.from_raw."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (True, ToolValidity.VALID),
            (False, ToolValidity.INVALID),
            ("partial", ToolValidity.PARTIAL),
            ("Absence_Of_Information", ToolValidity.ABSENCE_OF_INFORMATION),
            (None, ToolValidity.UNKNOWN),
            ("maybe", ToolValidity.UNKNOWN),
            (1, ToolValidity.UNKNOWN),
        ],
    )
    def test_from_raw(self, raw, expected: ToolValidity) -> None:
        """Test raw wire signals map onto the closed validity set."""
        assert ToolValidity.from_raw(raw) is expected


class TestVerificationEntry:
    """Tests for VerificationEntry."""

    def test_confidence_validation(self) -> None:
        """Test confidence outside [0, 1] is rejected."""
        with pytest.raises(ValidationError, match="Confidence must be between 0.0 and 1.0"):
            make_entry(confidence=1.2)

    def test_assignment_is_validated(self) -> None:
        """Test in-place updates are validated too."""
        entry = make_entry()

        with pytest.raises(ValidationError):
            entry.confidence = -0.1

    def test_is_expired(self) -> None:
        """Test expiry compares against the given instant."""
        entry = make_entry()

        assert not entry.is_expired(NOW)
        assert entry.is_expired(NOW + timedelta(hours=2))

    def test_search_result_from_entry(self) -> None:
        """Test a search result copies the entry and clamps similarity."""
        result = VerificationSearchResult.from_entry(make_entry(), 1.0000001)

        assert result.similarity == 1.0
        assert result.id == "verification-abc"
        assert result.sources == ["wiki"]


class TestToolResults:
    """Tests for ToolResult and ToolOutcome."""

    def test_has_signal(self) -> None:
        """Test an empty result carries no signal."""
        assert not ToolResult().has_signal
        assert ToolResult(source="atlas").has_signal
        assert ToolResult(verified_calculations=[]).has_signal

    def test_effective_confidence(self) -> None:
        """Test the tool's own confidence takes precedence over the suggested one."""
        suggested = ToolOutcome(tool_name="a", result=ToolResult(is_valid=True), confidence=0.6)
        reported = ToolOutcome(
            tool_name="a", result=ToolResult(is_valid=True, confidence=0.9), confidence=0.6
        )

        assert suggested.effective_confidence == 0.6
        assert reported.effective_confidence == 0.9
        assert reported.validity is ToolValidity.VALID

    def test_invalid_is_valid_literal(self) -> None:
        """Test unknown validity strings are rejected at construction."""
        with pytest.raises(ValidationError):
            ToolResult(is_valid="sometimes")


class TestResults:
    """Tests for result models."""

    def test_verification_result_confidence(self) -> None:
        """Test result confidence is validated."""
        with pytest.raises(ValidationError):
            VerificationResult(status=VerificationStatus.VERIFIED, confidence=2.0)

    def test_calculation_defaults(self) -> None:
        """Test a calculation verification is pending by default."""
        calc = CalculationVerification(original="2 + 2 = 4", verified="pending")

        assert calc.is_correct is None
        assert calc.confidence == 0.5

    def test_thought_defaults(self) -> None:
        """Test a thought gets an id, neutral confidence and empty metadata."""
        thought = ThoughtNode(content="claim")

        assert thought.id
        assert thought.confidence == 0.5
        assert thought.metadata == {}

    def test_thought_confidence_validation(self) -> None:
        """Test thought confidence outside [0, 1] is rejected."""
        with pytest.raises(ValidationError):
            ThoughtNode(content="claim", confidence=1.5)
