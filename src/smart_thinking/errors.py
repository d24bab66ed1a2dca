"""Exception types for smart-thinking.

Tool and evaluator failures are never surfaced through these types during a
verification run; the pipeline downgrades them to "no result". The exceptions
below are raised for programmer and configuration errors only, or by the
default collaborators when called directly.
"""

from __future__ import annotations


class SmartThinkingError(Exception):
    """Base exception for smart-thinking errors."""

    pass


class VerificationBackendNotConfiguredError(SmartThinkingError, RuntimeError):
    """Raised when the verification service is used before it has been wired."""

    def __init__(self, component: str = "verification_service") -> None:
        self.component = component
        super().__init__(
            f"Verification backend not configured: {component} is unavailable. "
            "Create a VerificationContext (or enter verification_lifespan) "
            "before requesting verification."
        )


class ToolNotFoundError(SmartThinkingError, LookupError):
    """Raised when a verification tool name is not registered."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Verification tool not registered: {tool_name}")


class CalculationError(SmartThinkingError, ValueError):
    """Raised when an arithmetic expression cannot be evaluated safely."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"Cannot evaluate expression {expression!r}: {reason}")


__all__ = [
    "CalculationError",
    "SmartThinkingError",
    "ToolNotFoundError",
    "VerificationBackendNotConfiguredError",
]
