"""Rule tables for classifying claims.

Each table is a list of ``(pattern, category)`` pairs so that new cues can be
added without touching the matching code.
"""

from __future__ import annotations

import re

from smart_thinking.models import ClaimCategory, ClaimClassification

_I = re.IGNORECASE

CLAIM_PATTERNS: list[tuple[re.Pattern[str], ClaimCategory]] = [
    # Factual statements
    (re.compile(r"\b(?:is|are|was|were|has|had|have)\b", _I), ClaimCategory.FACTUAL),
    (re.compile(r"\b(?:capital|located|born|founded|invented|discovered|died)\b", _I), ClaimCategory.FACTUAL),
    (re.compile(r"\b(?:est|sont|était|étaient|fut)\b", _I), ClaimCategory.FACTUAL),
    (re.compile(r"\b(?:in|en)\s+\d{3,4}\b", _I), ClaimCategory.FACTUAL),
    # Calculations
    (re.compile(r"\d+(?:[.,]\d+)?\s*[+\-*/×÷^]\s*\d+"), ClaimCategory.CALCULATION),
    (re.compile(r"=\s*-?\d"), ClaimCategory.CALCULATION),
    (re.compile(r"\d+[³²¹]"), ClaimCategory.CALCULATION),
    (
        re.compile(r"\b(?:plus|minus|times|multiplied by|divided by|squared|cubed|square root)\b", _I),
        ClaimCategory.CALCULATION,
    ),
    # Opinions
    (
        re.compile(
            r"\b(?:i think|i believe|i feel|in my opinion|arguably|seems?|probably|should|"
            r"better|worse|best|worst|beautiful|je pense|selon moi|à mon avis)\b",
            _I,
        ),
        ClaimCategory.OPINION,
    ),
    # Statistics
    (re.compile(r"\d+(?:[.,]\d+)?\s*%"), ClaimCategory.STATISTIC),
    (
        re.compile(
            r"\b(?:percent|per cent|pourcent|average|mean|median|rate|ratio|majority|"
            r"statistic(?:s|al)?|survey(?:ed)?|moyenne|taux)\b",
            _I,
        ),
        ClaimCategory.STATISTIC,
    ),
    # External references
    (
        re.compile(
            r"\b(?:according to|studies|study|research|report(?:ed)?|published|journal|"
            r"source|cited|selon|d'après)\b",
            _I,
        ),
        ClaimCategory.EXTERNAL_REFERENCE,
    ),
    (re.compile(r"https?://\S+", _I), ClaimCategory.EXTERNAL_REFERENCE),
]

# Cheap checks used by the preliminary pass: an arithmetic equality, a
# "calculation:" prefix, unicode exponents, or chained equalities.
PRELIMINARY_CALCULATION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\d+\s*[+\-*/×÷]\s*\d+\s*="),
    re.compile(
        r"calcul(?:ation)?\s*(?:complexe|avancé|complex|advanced)?\s*:?\s*([^=]+)=\s*\d+", _I
    ),
    re.compile(r"\d+[³²¹]"),
    re.compile(r"=\s*[\d\-+]+\s*=\s*[\d\-+]+"),
]

MATH_LOGIC_MARKERS: list[re.Pattern[str]] = [
    re.compile(r"\d+\s*[+\-*/×÷^]\s*\d+"),
    re.compile(r"=\s*-?\d"),
    re.compile(
        r"\b(?:therefore|thus|hence|implies|proof|theorem|lemma|equals|"
        r"if and only if|donc|ainsi|implique)\b",
        _I,
    ),
    re.compile(r"\bif\b.+\bthen\b", _I),
    re.compile(r"[∀∃⇒→∴]"),
]


def classify_claim(content: str) -> ClaimClassification:
    """Detect every category whose patterns match ``content``."""
    categories = {category for pattern, category in CLAIM_PATTERNS if pattern.search(content)}
    return ClaimClassification(categories=categories)


def has_preliminary_calculations(content: str) -> bool:
    return any(pattern.search(content) for pattern in PRELIMINARY_CALCULATION_PATTERNS)


def has_math_or_logic_markers(content: str) -> bool:
    return any(pattern.search(content) for pattern in MATH_LOGIC_MARKERS)


__all__ = [
    "CLAIM_PATTERNS",
    "MATH_LOGIC_MARKERS",
    "PRELIMINARY_CALCULATION_PATTERNS",
    "classify_claim",
    "has_math_or_logic_markers",
    "has_preliminary_calculations",
]
