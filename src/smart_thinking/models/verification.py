"""Verification models for smart-thinking.

This module defines the records exchanged between the verification memory,
the verification service and the pluggable checking tools: statuses, stored
entries, search hits, tool results and the aggregated verification result.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


def _check_unit_interval(v: float, field: str = "Confidence") -> float:
    if not 0.0 <= v <= 1.0:
        raise ValueError(f"{field} must be between 0.0 and 1.0, got {v}")
    return v


class VerificationStatus(str, Enum):
    """Outcome of verifying a claim.

    The set is closed; every statistics report lists all members, including
    those with a zero count.
    """

    UNVERIFIED = "unverified"
    """No tool or calculation could confirm the claim."""

    PARTIALLY_VERIFIED = "partially_verified"
    """Some supporting evidence was found, but not a full confirmation."""

    VERIFIED = "verified"
    """At least one tool confirmed the claim and none refuted it."""

    CONTRADICTED = "contradicted"
    """The claim was refuted, e.g. every embedded calculation is wrong."""

    INCONCLUSIVE = "inconclusive"
    """Evidence was gathered but did not point either way."""

    ABSENCE_OF_INFORMATION = "absence_of_information"
    """Every tool reported that no information exists on the subject."""

    UNCERTAIN = "uncertain"
    """Tools answered, but with an undetermined validity signal."""

    CONTRADICTORY = "contradictory"
    """Tools disagree: at least one confirms and at least one refutes."""

    @property
    def is_positive(self) -> bool:
        """Whether this status counts as a (full or partial) verification."""
        return self in (VerificationStatus.VERIFIED, VerificationStatus.PARTIALLY_VERIFIED)


class ToolValidity(Enum):
    """Normalized validity signal reported by a verification tool.

    Tools report validity loosely on the wire (``True``, ``False``,
    ``"partial"``, ``"absence_of_information"`` or nothing). ``from_raw``
    maps that signal onto this closed set so aggregation can match on it
    exhaustively.
    """

    VALID = "valid"
    """The tool confirms the claim."""

    INVALID = "invalid"
    """The tool refutes the claim."""

    PARTIAL = "partial"
    """The tool confirms part of the claim."""

    ABSENCE_OF_INFORMATION = "absence_of_information"
    """The tool found nothing about the subject."""

    UNKNOWN = "unknown"
    """The tool answered without a usable validity signal."""

    @classmethod
    def from_raw(cls, value: Any) -> ToolValidity:
        """Map a raw tool validity signal onto a ToolValidity member."""
        if value is True:
            return cls.VALID
        if value is False:
            return cls.INVALID
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "partial":
                return cls.PARTIAL
            if normalized == "absence_of_information":
                return cls.ABSENCE_OF_INFORMATION
        return cls.UNKNOWN


class VerificationEntry(BaseModel):
    """A verification stored in memory.

    Entries are mutated in place when a near-duplicate claim is verified again
    in the same session: status, confidence, sources, timestamp and expiry are
    overwritten, while the id and original text are preserved.
    """

    id: str = Field(description="Unique identifier, prefixed with 'verification-'")
    text: str = Field(description="The verified claim text as first submitted")
    status: VerificationStatus = Field(description="Latest verification status")
    confidence: float = Field(description="Latest confidence (0.0 to 1.0)")
    sources: list[str] = Field(default_factory=list, description="Sources backing the status")
    timestamp: datetime = Field(description="When the entry was created or last refreshed")
    session_id: str = Field(description="Owning reasoning session")
    expires_at: datetime = Field(description="After this instant the entry is eligible for removal")

    model_config = {"validate_assignment": True}

    @field_validator("confidence")
    @classmethod
    def validate_confidence_range(cls, v: float) -> float:
        """Validate that confidence is in the valid range [0.0, 1.0].

        Raises:
            ValueError: If confidence is not in the range [0.0, 1.0]
        """
        return _check_unit_interval(v)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


class VerificationSearchResult(BaseModel):
    """A stored verification matched against a query text."""

    id: str
    status: VerificationStatus
    confidence: float = Field(ge=0.0, le=1.0)
    sources: list[str] = Field(default_factory=list)
    timestamp: datetime
    similarity: float = Field(ge=0.0, le=1.0, description="Match strength against the query")
    text: str

    @classmethod
    def from_entry(cls, entry: VerificationEntry, similarity: float) -> VerificationSearchResult:
        return cls(
            id=entry.id,
            status=entry.status,
            confidence=entry.confidence,
            sources=list(entry.sources),
            timestamp=entry.timestamp,
            similarity=min(1.0, max(0.0, similarity)),
            text=entry.text,
        )


class SimilarityMatch(BaseModel):
    """A candidate text scored against a reference text."""

    text: str
    score: float = Field(ge=0.0, le=1.0)


class CalculationVerification(BaseModel):
    """Outcome of checking one arithmetic expression found in a claim."""

    original: str = Field(description="The expression as written in the claim")
    verified: str = Field(description="Human-readable verification message")
    is_correct: bool | None = Field(
        default=None,
        description="True/False once evaluated, None when verification is pending",
    )
    confidence: float = Field(default=0.5)
    context: str | None = Field(
        default=None,
        description="Evaluator context, e.g. 'function_notation' for entries that are not calculations",
    )

    @field_validator("confidence")
    @classmethod
    def validate_confidence_range(cls, v: float) -> float:
        return _check_unit_interval(v)


CalculationContext = Literal[
    "standard",
    "parentheses",
    "textual",
    "function",
    "sequential",
    "function_notation",
    "evaluation_error",
]


class CalculationEvaluation(BaseModel):
    """Raw output of the calculation evaluator for one detected expression."""

    original: str
    expression_text: str
    result: float | None = None
    is_correct: bool | None = None
    claimed_result: float | None = None
    confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    context: CalculationContext = "standard"
    error: str | None = None
    failed_step: str | None = Field(
        default=None, description="First chained step that does not hold, for sequential expressions"
    )


class VerificationResult(BaseModel):
    """Aggregated outcome of a verification run.

    Returned to the caller and never stored as-is; memory keeps only status,
    confidence and sources.
    """

    status: VerificationStatus
    confidence: float
    sources: list[str] = Field(default_factory=list)
    verification_steps: list[str] = Field(default_factory=list)
    contradictions: list[str] | None = None
    notes: str = ""
    verified_calculations: list[CalculationVerification] | None = None

    @field_validator("confidence")
    @classmethod
    def validate_confidence_range(cls, v: float) -> float:
        """Validate that confidence is in the valid range [0.0, 1.0].

        Raises:
            ValueError: If confidence is not in the range [0.0, 1.0]
        """
        return _check_unit_interval(v)


class SuggestedTool(BaseModel):
    """A tool proposed by the tool integrator for a given claim."""

    name: str
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reason: str = ""
    priority: int | None = None


class ToolResult(BaseModel):
    """What a verification tool returns.

    ``is_valid`` keeps the raw wire signal; use ``validity`` for the
    normalized value.
    """

    is_valid: bool | Literal["partial", "absence_of_information"] | None = None
    source: str | None = None
    details: Any = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    verified_calculations: list[CalculationVerification] | None = None

    @property
    def validity(self) -> ToolValidity:
        return ToolValidity.from_raw(self.is_valid)

    @property
    def has_signal(self) -> bool:
        """False when the tool returned nothing usable."""
        return not (
            self.is_valid is None
            and self.verified_calculations is None
            and self.source is None
            and self.details is None
        )


class ToolOutcome(BaseModel):
    """One successful tool execution, as seen by aggregation."""

    tool_name: str
    result: ToolResult
    confidence: float = Field(default=0.5, ge=0.0, le=1.0, description="Suggested confidence")

    @property
    def validity(self) -> ToolValidity:
        return self.result.validity

    @property
    def effective_confidence(self) -> float:
        """The tool's own confidence when reported, else the suggested one."""
        if self.result.confidence is not None:
            return self.result.confidence
        return self.confidence


class VerificationRequirements(BaseModel):
    """How many independent verifications a claim deserves, and why."""

    requires_multiple_verifications: bool = False
    recommended_verifications_count: int = Field(default=1, ge=1)
    reasons: list[str] = Field(default_factory=list)


class PreliminaryVerificationResult(BaseModel):
    """Result of the cheap, calculation-only preliminary pass."""

    verified_calculations: list[CalculationVerification] | None = None
    initial_verification: bool = False
    verification_in_progress: bool = False
    preverified_thought: str


class PreviousVerificationResult(BaseModel):
    """Result of looking a claim up in verification memory."""

    previous_verification: VerificationSearchResult | None = None
    verification: VerificationResult | None = None
    is_verified: bool = False
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    certainty_summary: str = ""


class MemoryStats(BaseModel):
    """Snapshot of the verification memory."""

    total_entries: int
    session_count: int
    cache_size: int
    entries_by_status: dict[str, int]


class ClaimCategory(str, Enum):
    """Kinds of statements detected in a claim."""

    FACTUAL = "factual"
    CALCULATION = "calculation"
    OPINION = "opinion"
    STATISTIC = "statistic"
    EXTERNAL_REFERENCE = "external_reference"


class ClaimClassification(BaseModel):
    """Categories detected in a claim by the classifier tables."""

    categories: set[ClaimCategory] = Field(default_factory=set)

    @property
    def category_count(self) -> int:
        return len(self.categories)

    def has(self, category: ClaimCategory) -> bool:
        return category in self.categories
