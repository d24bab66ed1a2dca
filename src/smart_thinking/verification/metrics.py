"""Heuristics deciding how many independent verifications a claim needs."""

from __future__ import annotations

import re

from smart_thinking.models import VerificationRequirements

MAX_RECOMMENDED_VERIFICATIONS = 4
LOW_INITIAL_CONFIDENCE = 0.6

COMPLEX_CLAIM = re.compile(
    r"\b(?:claims?|states?|asserts?|alleges?|according to|reportedly|"
    r"affirmation|déclare|selon|d'après|prétend|allègue)\b",
    re.IGNORECASE,
)
PROPER_NAME = re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b")
NUMBER = re.compile(r"\d+(?:[.,]\d+)?%?")
DATE = re.compile(
    r"\d{1,2}/\d{1,2}/\d{2,4}|\d{1,2} [a-zé]+ \d{2,4}|[A-Za-z]+ \d{1,2}, \d{4}", re.IGNORECASE
)
QUALIFIER = re.compile(
    r"\b(?:some|sometimes|perhaps|maybe|in some cases|often|certains|parfois|"
    r"peut-être|dans certains cas)\b",
    re.IGNORECASE,
)
CRITICAL_TOPICS: tuple[str, ...] = (
    "health", "medic", "legal", "law", "financ", "security", "scientific",
    "research", "histor", "politic",
    "santé", "médecine", "juridique", "sécurité", "scientifique", "recherche",
    "historique", "politique",
)

_REASONS = {
    "complex": "Contains attributed or complex claims",
    "names": "Mentions proper names together with dates or numbers",
    "critical": "Touches a critical topic that warrants thorough verification",
    "low_confidence": "Low initial confidence",
    "mixed": "Mixes several statements with qualifiers",
}


class HeuristicMetricsCalculator:
    """Default MetricsCalculator.

    The recommended count starts at one and grows by one per triggered
    heuristic, up to four.
    """

    def determine_verification_requirements(
        self, content: str, initial_confidence: float = 0.5
    ) -> VerificationRequirements:
        lowered = content.lower()
        triggered = []

        if COMPLEX_CLAIM.search(content):
            triggered.append("complex")
        if PROPER_NAME.search(content) and (DATE.search(content) or NUMBER.search(content)):
            triggered.append("names")
        if any(topic in lowered for topic in CRITICAL_TOPICS):
            triggered.append("critical")
        if initial_confidence < LOW_INITIAL_CONFIDENCE:
            triggered.append("low_confidence")
        if len(content.split(".")) > 2 and QUALIFIER.search(content):
            triggered.append("mixed")

        count = min(1 + len(triggered), MAX_RECOMMENDED_VERIFICATIONS)
        return VerificationRequirements(
            requires_multiple_verifications=count > 1,
            recommended_verifications_count=count,
            reasons=[_REASONS[key] for key in triggered],
        )


__all__ = ["HeuristicMetricsCalculator"]
