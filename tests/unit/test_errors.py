"""Tests for smart_thinking.errors module."""

from __future__ import annotations

from smart_thinking.errors import (
    CalculationError,
    SmartThinkingError,
    ToolNotFoundError,
    VerificationBackendNotConfiguredError,
)


class TestErrors:
    """Tests for exception types."""

    def test_backend_not_configured(self):
        """Test the error names the missing component and is a RuntimeError."""
        error = VerificationBackendNotConfiguredError()

        assert isinstance(error, SmartThinkingError)
        assert isinstance(error, RuntimeError)
        assert "verification_service" in str(error)

    def test_tool_not_found(self):
        """Test the error keeps the tool name and is a LookupError."""
        error = ToolNotFoundError("web_search")

        assert isinstance(error, LookupError)
        assert error.tool_name == "web_search"
        assert "web_search" in str(error)

    def test_calculation_error(self):
        """Test the error keeps the expression and the reason."""
        error = CalculationError("1 / 0", "division by zero")

        assert isinstance(error, ValueError)
        assert error.expression == "1 / 0"
        assert error.reason == "division by zero"
        assert str(error) == "Cannot evaluate expression '1 / 0': division by zero"
