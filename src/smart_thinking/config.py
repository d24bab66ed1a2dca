"""Configuration management for smart-thinking.

This module provides the Settings class for managing verification thresholds
and memory parameters with support for environment variables and .env files.

Nested values use the ``__`` delimiter, for example:
    SMART_THINKING_LOG_LEVEL=DEBUG
    SMART_THINKING_VERIFICATION__SIMILARITY__MEDIUM_SIMILARITY=0.7
    SMART_THINKING_VERIFICATION__MEMORY__CACHE_EXPIRATION=1800
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Module-level logger for configuration warnings
_config_logger = logging.getLogger(__name__)


class ConfidenceThresholds(BaseModel):
    """Confidence thresholds used when resolving verification outcomes."""

    minimum_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum confidence for an information to be considered reliable",
    )
    verification_required: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Below this confidence a verification is always required",
    )
    high_confidence: float = Field(
        default=0.85, ge=0.0, le=1.0, description="Threshold considered high confidence"
    )
    low_confidence: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Threshold considered low confidence"
    )


class SimilarityThresholds(BaseModel):
    """Similarity thresholds for semantic and textual comparisons."""

    exact_match: float = Field(
        default=0.95, ge=0.0, le=1.0, description="Two texts are treated as identical"
    )
    high_similarity: float = Field(
        default=0.80, ge=0.0, le=1.0, description="Two texts are very similar"
    )
    medium_similarity: float = Field(
        default=0.65,
        ge=0.0,
        le=1.0,
        description="Two texts refer to the same claim (used for deduplication)",
    )
    low_similarity: float = Field(
        default=0.55, ge=0.0, le=1.0, description="Two texts are weakly similar"
    )
    text_match: float = Field(
        default=0.65,
        ge=0.0,
        le=1.0,
        description="Threshold for token-overlap matching when no similarity engine is available",
    )

    @model_validator(mode="after")
    def validate_ordering(self) -> SimilarityThresholds:
        """Validate that the similarity bands are ordered from strict to loose.

        Raises:
            ValueError: If a looser band is stricter than a tighter one.
        """
        if not (
            self.exact_match >= self.high_similarity >= self.medium_similarity >= self.low_similarity
        ):
            raise ValueError(
                "Similarity thresholds must satisfy "
                "exact_match >= high_similarity >= medium_similarity >= low_similarity"
            )
        return self


class MemorySettings(BaseModel):
    """Configuration for the verification memory."""

    max_cache_size: int = Field(
        default=1000, ge=1, description="Maximum number of entries in the similarity memo"
    )
    cache_expiration: float = Field(
        default=3600.0,
        gt=0,
        description="Cache validity in seconds; the expiry sweep runs every half period",
    )
    default_session_ttl: float = Field(
        default=86400.0, gt=0, description="Default lifetime of a verification entry in seconds"
    )


class VerificationSettings(BaseModel):
    """Configuration for verification features."""

    confidence: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)
    similarity: SimilarityThresholds = Field(default_factory=SimilarityThresholds)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    max_confidence: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Upper bound for aggregated verification confidence",
    )
    corroboration_bonus: float = Field(
        default=0.05,
        ge=0.0,
        le=0.5,
        description="Confidence bonus per additional corroborating tool",
    )


class Settings(BaseSettings):
    """Verification core configuration settings.

    Settings can be configured via environment variables with the
    SMART_THINKING_ prefix, or via a .env file.

    Example:
        SMART_THINKING_LOG_LEVEL=DEBUG
        SMART_THINKING_DEFAULT_SESSION_ID=my-session
    """

    model_config = SettingsConfigDict(
        env_prefix="SMART_THINKING_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Logging settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )

    # Session settings
    default_session_id: str = Field(
        default="default",
        min_length=1,
        description="Session used when the caller does not provide one",
    )

    # Verification settings
    verification: VerificationSettings = Field(
        default_factory=VerificationSettings,
        description="Verification thresholds and memory configuration",
    )

    @model_validator(mode="after")
    def validate_session_ttl(self) -> Settings:
        """Warn when the entry TTL is shorter than the expiry sweep period.

        Returns:
            The unchanged Settings instance.
        """
        memory = self.verification.memory
        if memory.default_session_ttl < memory.cache_expiration / 2:
            _config_logger.warning(
                "default_session_ttl (%ss) is shorter than the expiry sweep period (%ss); "
                "expired entries may remain reachable until the next sweep.",
                memory.default_session_ttl,
                memory.cache_expiration / 2,
            )
        return self


# Global settings instance (lazy-loaded)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        The global Settings instance, created on first access.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure_settings(**overrides: Any) -> Settings:
    """Configure settings with overrides.

    Args:
        **overrides: Setting values to override.

    Returns:
        New Settings instance with overrides applied.
    """
    global _settings
    _settings = Settings(**overrides)
    return _settings


__all__ = [
    "ConfidenceThresholds",
    "MemorySettings",
    "Settings",
    "SimilarityThresholds",
    "VerificationSettings",
    "configure_settings",
    "get_settings",
]
