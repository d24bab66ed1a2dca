"""Keyword-driven registry of verification tools.

KeywordToolIntegrator is the default ToolIntegrator. Tools are registered
with keywords and an async handler; suggestions rank the registered tools by
keyword overlap with the claim, plus a bonus when the claim reads like a web
search or a computation and the tool is of that kind.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from smart_thinking.errors import ToolNotFoundError
from smart_thinking.models import SuggestedTool, ToolResult

logger = structlog.get_logger(__name__)

ToolHandler = Callable[[str], Awaitable[ToolResult | dict[str, Any] | None]]

MIN_SUGGESTION_SCORE = 0.1
FALLBACK_CONFIDENCE = 0.5

# Keys some tools emit in camelCase
_RESULT_KEY_ALIASES = {
    "isValid": "is_valid",
    "verifiedCalculations": "verified_calculations",
    "isCorrect": "is_correct",
}


class ToolKind(Enum):
    """What a verification tool does, used for intent bonuses."""

    WEB_SEARCH = "web_search"
    """Searches external sources for facts."""

    CODE_EXECUTION = "code_execution"
    """Runs code, typically to check calculations."""

    GENERAL = "general"
    """Anything else."""


INTENT_TERMS: dict[ToolKind, tuple[str, ...]] = {
    ToolKind.WEB_SEARCH: (
        "search", "find", "look up", "information", "recent", "latest", "news",
        "according to", "recherche", "cherche", "actualité", "récent",
    ),
    ToolKind.CODE_EXECUTION: (
        "code", "calculat", "compute", "python", "script", "algorithm", "data",
        "calcul", "programme", "données",
    ),
}

INTENT_BONUS: dict[ToolKind, float] = {
    ToolKind.WEB_SEARCH: 0.3,
    ToolKind.CODE_EXECUTION: 0.4,
}

_ARITHMETIC = re.compile(r"\d+\s*[+\-*/×÷^]\s*\d+")
_WORD_SPLIT = re.compile(r"\W+")


@dataclass
class VerificationTool:
    """A registered verification tool."""

    name: str
    description: str
    keywords: list[str]
    use_case: str
    handler: ToolHandler | None = None
    kind: ToolKind = ToolKind.GENERAL

    @property
    def can_verify(self) -> bool:
        return self.handler is not None


@dataclass
class _Scored:
    tool: VerificationTool
    score: float
    matched: list[str] = field(default_factory=list)


def coerce_tool_result(raw: Any) -> ToolResult | None:
    """Normalize what a tool handler returned into a ToolResult."""
    if raw is None or isinstance(raw, ToolResult):
        return raw
    if isinstance(raw, dict):
        data = {_RESULT_KEY_ALIASES.get(key, key): value for key, value in raw.items()}
        calculations = data.get("verified_calculations")
        if isinstance(calculations, list):
            data["verified_calculations"] = [
                {_RESULT_KEY_ALIASES.get(key, key): value for key, value in item.items()}
                if isinstance(item, dict)
                else item
                for item in calculations
            ]
        return ToolResult.model_validate(data)
    raise TypeError(f"Unsupported tool result type: {type(raw).__name__}")


class KeywordToolIntegrator:
    """Registry and dispatcher for verification tools.

    Examples:
        >>> async def search(content: str) -> dict:
        ...     return {"is_valid": True, "source": "encyclopedia"}
        >>> integrator = KeywordToolIntegrator()
        >>> integrator.add_tool(
        ...     "web_search", "Search the web", ["search", "capital"],
        ...     "Check facts online", handler=search, kind=ToolKind.WEB_SEARCH,
        ... )
        >>> [tool.name for tool in integrator.suggest_verification_tools("Search the capital")]
        ['web_search']
    """

    def __init__(
        self,
        tools: Iterable[VerificationTool] = (),
        default_tool: str | None = None,
        max_suggestions: int | None = None,
    ) -> None:
        self._tools: dict[str, VerificationTool] = {}
        for tool in tools:
            self._tools[tool.name] = tool
        self._default_tool = default_tool
        self._max_suggestions = max_suggestions

    def add_tool(
        self,
        name: str,
        description: str,
        keywords: Iterable[str],
        use_case: str,
        handler: ToolHandler | None = None,
        kind: ToolKind = ToolKind.GENERAL,
    ) -> VerificationTool:
        tool = VerificationTool(
            name=name,
            description=description,
            keywords=[keyword.lower() for keyword in keywords],
            use_case=use_case,
            handler=handler,
            kind=kind,
        )
        self._tools[name] = tool
        logger.debug("verification_tool_registered", tool=name, kind=kind.value)
        return tool

    def remove_tool(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get_all_tools(self) -> list[VerificationTool]:
        return list(self._tools.values())

    def get_tool(self, name: str) -> VerificationTool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def _detect_intents(self, content: str) -> set[ToolKind]:
        lowered = content.lower()
        intents = {
            kind for kind, terms in INTENT_TERMS.items() if any(term in lowered for term in terms)
        }
        if _ARITHMETIC.search(content):
            intents.add(ToolKind.CODE_EXECUTION)
        return intents

    def _score(self, tool: VerificationTool, content: str, intents: set[ToolKind]) -> _Scored:
        lowered = content.lower()
        words = {word for word in _WORD_SPLIT.split(lowered) if len(word) > 3}
        matched = [keyword for keyword in tool.keywords if keyword in words or keyword in lowered]
        score = len(matched) / max(len(tool.keywords), 1)
        if tool.kind in intents:
            score += INTENT_BONUS.get(tool.kind, 0.0)
        return _Scored(tool=tool, score=score, matched=matched)

    @staticmethod
    def _reason(scored: _Scored) -> str:
        if scored.matched:
            return f"{scored.tool.use_case} (matched: {', '.join(scored.matched)})"
        return scored.tool.use_case

    def suggest_verification_tools(
        self, content: str, limit: int | None = None
    ) -> list[SuggestedTool]:
        """Rank the tools able to verify ``content``.

        Only tools with a handler are considered. When none scores above the
        minimum, the default tool (or the first web search tool) is suggested
        with neutral confidence.
        """
        limit = limit if limit is not None else self._max_suggestions
        candidates = [tool for tool in self._tools.values() if tool.can_verify]
        if not candidates:
            return []

        intents = self._detect_intents(content)
        scores = [self._score(tool, content, intents) for tool in candidates]
        ranked = sorted(
            (scored for scored in scores if scored.score > MIN_SUGGESTION_SCORE),
            key=lambda scored: scored.score,
            reverse=True,
        )
        if limit is not None:
            ranked = ranked[:limit]

        suggestions = [
            SuggestedTool(
                name=scored.tool.name,
                confidence=min(max(scored.score, 0.0), 1.0),
                reason=self._reason(scored),
                priority=index + 1,
            )
            for index, scored in enumerate(ranked)
        ]
        if suggestions:
            return suggestions

        fallback = self._fallback_tool(candidates)
        if fallback is None:
            return []
        return [
            SuggestedTool(
                name=fallback.name,
                confidence=FALLBACK_CONFIDENCE,
                reason="No tool matched strongly; a general search may help.",
                priority=1,
            )
        ]

    def _fallback_tool(self, candidates: list[VerificationTool]) -> VerificationTool | None:
        if self._default_tool is not None:
            tool = self._tools.get(self._default_tool)
            if tool is not None and tool.can_verify:
                return tool
        return next((tool for tool in candidates if tool.kind is ToolKind.WEB_SEARCH), None)

    async def execute_verification_tool(self, name: str, content: str) -> ToolResult | None:
        """Run a registered tool against ``content``.

        Raises:
            ToolNotFoundError: If no tool with a handler is registered under ``name``.
        """
        tool = self.get_tool(name)
        if tool.handler is None:
            raise ToolNotFoundError(name)

        logger.debug("verification_tool_started", tool=name)
        raw = tool.handler(content)
        if inspect.isawaitable(raw):
            raw = await raw
        return coerce_tool_result(raw)


__all__ = [
    "INTENT_BONUS",
    "INTENT_TERMS",
    "KeywordToolIntegrator",
    "ToolHandler",
    "ToolKind",
    "VerificationTool",
    "coerce_tool_result",
]
