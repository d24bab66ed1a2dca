"""Thought data model.

A ThoughtNode is the claim handed to the verification service. The service
stamps its verification outcome into ``metadata``, which is the only field it
mutates.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class ThoughtNode(BaseModel):
    """A single claim produced by a reasoning process.

    Examples:
        >>> thought = ThoughtNode(content="Paris is the capital of France.")
        >>> thought.confidence
        0.5
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier for this thought (UUID)",
    )
    content: str = Field(description="The claim text to verify")
    confidence: float = Field(
        default=0.5,
        description="Intrinsic confidence supplied by the reasoning process (0.0 to 1.0)",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Side channel for verification stamps and caller data",
    )

    @field_validator("confidence")
    @classmethod
    def validate_confidence_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {v}")
        return v
