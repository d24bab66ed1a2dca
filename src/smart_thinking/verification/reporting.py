"""Verification reporting utilities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from smart_thinking.config import Settings, get_settings

if TYPE_CHECKING:
    from smart_thinking.models import VerificationResult


class VerificationReporter:
    """Reporter for converting verification results to various formats."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def to_markdown(self, result: VerificationResult) -> str:
        """Convert a verification result to markdown format.

        Args:
            result: The verification result to convert

        Returns:
            Markdown-formatted string representation
        """
        lines = []

        lines.append(f"# Verification: {result.status.value}")
        lines.append("")
        lines.append(f"**Confidence**: {result.confidence:.2%}")
        lines.append("")

        lines.append("## Sources")
        if not result.sources:
            lines.append("_No sources_")
        else:
            for source in result.sources:
                lines.append(f"- {source}")
        lines.append("")

        if result.verification_steps:
            lines.append("## Steps")
            for step in result.verification_steps:
                lines.append(f"- {step}")
            lines.append("")

        if result.verified_calculations:
            lines.append("## Calculations")
            for calc in result.verified_calculations:
                if calc.is_correct is True:
                    mark = "✓"
                elif calc.is_correct is None:
                    mark = "⏳"
                else:
                    mark = "✗"
                lines.append(f"- {mark} `{calc.original}`: {calc.verified}")
            lines.append("")

        if result.contradictions:
            lines.append("## Contradictions")
            for contradiction in result.contradictions:
                lines.append(f"- {contradiction}")
            lines.append("")

        if result.notes:
            lines.append("## Notes")
            lines.append(result.notes)
            lines.append("")

        return "\n".join(lines)

    def to_json(self, result: VerificationResult) -> str:
        """Convert a verification result to JSON format."""
        return result.model_dump_json(indent=2)

    def certainty_summary(self, result: VerificationResult) -> str:
        """One sentence describing how far the result can be trusted."""
        thresholds = self._settings.verification.confidence
        if result.confidence >= thresholds.high_confidence:
            level = "high"
        elif result.confidence >= thresholds.minimum_threshold:
            level = "reliable"
        elif result.confidence >= thresholds.low_confidence:
            level = "moderate"
        else:
            level = "low"

        summary = (
            f"Status: {result.status.value.replace('_', ' ')}. "
            f"Confidence level: {round(result.confidence * 100)}% ({level})."
        )
        if result.contradictions:
            summary += f" {len(result.contradictions)} contradiction(s) detected."
        return summary


__all__ = ["VerificationReporter"]
