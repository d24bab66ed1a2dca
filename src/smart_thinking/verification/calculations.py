"""Detection and evaluation of arithmetic claims embedded in text.

MathEvaluator finds expressions such as ``2 + 3 = 5``, ``(2 + 3) * 4 = 20``,
``2 plus 3 equals 5``, ``square root of 9 = 3`` or chained computations like
``2³ - 2×2 - 5 = 8 - 4 - 5 = -1`` and checks the claimed result. Expressions
are evaluated by walking a restricted Python AST; nothing is passed to
``eval``.

Function notations (``f(x) = f(2) = 4``) are reported for documentation but
never evaluated.
"""

from __future__ import annotations

import ast
import math
import operator
import re
from collections.abc import Callable, Iterable

import structlog

from smart_thinking.errors import CalculationError
from smart_thinking.models import CalculationEvaluation, CalculationVerification

logger = structlog.get_logger(__name__)

RELATIVE_EPSILON = 1e-10
ABSOLUTE_EPSILON = 1e-12
MAX_EXPONENT = 100

ERROR_CONFIDENCE = 0.3
SEQUENTIAL_CONFIDENCE = 0.9
FUNCTION_NOTATION_CONFIDENCE = 0.95
FAILED_STEP_CONFIDENCE = 0.85
INCORRECT_PENALTY = 0.8

_NUM = r"\d+(?:\.\d+)?"
_OP = r"[+\-*/×÷^]"
_EQUALS = (
    r"(?:=|\bequals?\b|\bis\s+equal\s+to\b|\bmakes\b|\bgives\b"
    r"|\bégale?\b|\best\s+égal\s+à|\bvaut\b|\bfont\b|\bdonne\b)"
)
_CLAIMED = rf"(?P<claimed>-?{_NUM})"
_WORD_OPERATORS: list[tuple[str, str]] = [
    (r"\s+multiplied\s+by\s+", " * "),
    (r"\s+divided\s+by\s+", " / "),
    (r"\s+plus\s+", " + "),
    (r"\s+minus\s+", " - "),
    (r"\s+times\s+", " * "),
    (r"\s+multiplié\s+par\s+", " * "),
    (r"\s+divisé\s+par\s+", " / "),
    (r"\s+moins\s+", " - "),
    (r"\s+fois\s+", " * "),
]
_WORD_OP = r"(?:plus|minus|times|multiplied\s+by|divided\s+by|moins|fois|multiplié\s+par|divisé\s+par)"
_SUPERSCRIPTS = {"¹": "1", "²": "2", "³": "3"}
_PAREN_GROUP = r"\([\d\s+\-*/×÷^.]+\)"
_SEGMENT = rf"-?{_NUM}[³²¹]?(?:\s*{_OP}\s*-?{_NUM}[³²¹]?)*"

FUNCTION_NOTATION = re.compile(
    r"\b[a-zA-Z]'?\([^()=\n]+\)\s*=\s*[a-zA-Z]'?\([^()=\n]+\)(?:\s*=\s*-?\d+(?:\.\d+)?)*"
)

SEQUENTIAL = re.compile(
    rf"{_NUM}[³²¹]?(?:\s*{_OP}\s*{_NUM}[³²¹]?)+(?:\s*=\s*{_SEGMENT}){{2,}}"
)

# (context, pattern, confidence); evaluated in order, each match blanks its
# span so later patterns do not re-read it.
EXPRESSION_PATTERNS: list[tuple[str, re.Pattern[str], float]] = [
    (
        "parentheses",
        re.compile(
            rf"(?P<expr>{_PAREN_GROUP}(?:\s*{_OP}\s*(?:{_NUM}|{_PAREN_GROUP}))*)\s*{_EQUALS}\s*{_CLAIMED}",
            re.IGNORECASE,
        ),
        0.99,
    ),
    (
        "standard",
        re.compile(
            rf"(?P<expr>{_NUM}(?:\s*{_OP}\s*{_NUM})+)\s*{_EQUALS}\s*{_CLAIMED}", re.IGNORECASE
        ),
        0.99,
    ),
    (
        "textual",
        re.compile(
            rf"(?P<expr>{_NUM}(?:\s+{_WORD_OP}\s+{_NUM})+)\s*{_EQUALS}\s*{_CLAIMED}",
            re.IGNORECASE,
        ),
        0.95,
    ),
    (
        "function",
        re.compile(
            rf"(?P<expr>(?:square\s+root\s+of|racine\s+carrée\s+(?:de\s+)?)\s*{_NUM}"
            rf"|{_NUM}\s+(?:squared|cubed|au\s+carré|au\s+cube))\s*{_EQUALS}\s*{_CLAIMED}",
            re.IGNORECASE,
        ),
        0.97,
    ),
]

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}
_UNARY_OPERATORS: dict[type[ast.unaryop], Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}
_FUNCTIONS: dict[str, Callable[[float], float]] = {"sqrt": math.sqrt}


def numbers_equal(a: float, b: float) -> bool:
    """Compare two floats with a relative tolerance and an absolute floor."""
    diff = abs(a - b)
    if abs(a) < ABSOLUTE_EPSILON or abs(b) < ABSOLUTE_EPSILON:
        return diff < ABSOLUTE_EPSILON
    return diff < max(ABSOLUTE_EPSILON, RELATIVE_EPSILON * max(abs(a), abs(b)))


def format_number(value: float) -> str:
    return format(value, ".10g")


def to_python_expression(text: str) -> str:
    """Rewrite human arithmetic notation into Python expression syntax."""
    expression = text.strip()
    for pattern, replacement in _WORD_OPERATORS:
        expression = re.sub(pattern, replacement, expression, flags=re.IGNORECASE)
    expression = re.sub(
        r"(?:square\s+root\s+of|racine\s+carrée\s+(?:de\s+)?)\s*(\d+(?:\.\d+)?)",
        r"sqrt(\1)",
        expression,
        flags=re.IGNORECASE,
    )
    expression = re.sub(r"\s+(?:squared|au\s+carré)", " ** 2", expression, flags=re.IGNORECASE)
    expression = re.sub(r"\s+(?:cubed|au\s+cube)", " ** 3", expression, flags=re.IGNORECASE)
    expression = re.sub(
        r"(\d+(?:\.\d+)?)([¹²³])", lambda m: f"{m.group(1)}**{_SUPERSCRIPTS[m.group(2)]}", expression
    )
    return expression.replace("×", "*").replace("÷", "/").replace("^", "**")


def _evaluate_node(node: ast.AST, expression: str) -> float:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(
        node.value, bool
    ):
        return float(node.value)

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        left = _evaluate_node(node.left, expression)
        right = _evaluate_node(node.right, expression)
        if isinstance(node.op, ast.Div) and abs(right) < ABSOLUTE_EPSILON:
            raise CalculationError(expression, "division by zero")
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise CalculationError(expression, f"exponent {right} is too large")
        try:
            return _BINARY_OPERATORS[type(node.op)](left, right)
        except (OverflowError, ZeroDivisionError) as e:
            raise CalculationError(expression, str(e)) from e

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate_node(node.operand, expression))

    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCTIONS
        and len(node.args) == 1
        and not node.keywords
    ):
        argument = _evaluate_node(node.args[0], expression)
        try:
            return _FUNCTIONS[node.func.id](argument)
        except (TypeError, ValueError) as e:
            raise CalculationError(expression, str(e)) from e

    raise CalculationError(expression, f"unsupported element {type(node).__name__}")


def safe_evaluate(expression: str) -> float:
    """Evaluate an arithmetic expression restricted to numbers, + - * / ** and sqrt.

    Raises:
        CalculationError: If the expression is malformed, uses anything else,
            divides by zero, or does not produce a finite number.
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise CalculationError(expression, "malformed expression") from e

    value = _evaluate_node(tree.body, expression)
    if isinstance(value, complex) or not math.isfinite(value):
        raise CalculationError(expression, "result is not a finite number")
    return float(value)


def _blank(text: str, start: int, end: int) -> str:
    return text[:start] + " " * (end - start) + text[end:]


class MathEvaluator:
    """Default calculation evaluator.

    Examples:
        >>> evaluator = MathEvaluator()
        >>> [evaluation] = evaluator.detect_and_evaluate("2 + 3 = 5")
        >>> evaluation.is_correct
        True
    """

    def detect_and_evaluate(self, text: str) -> list[CalculationEvaluation]:
        results: list[CalculationEvaluation] = []
        analysis_text = text

        for match in FUNCTION_NOTATION.finditer(text):
            results.append(
                CalculationEvaluation(
                    original=match.group(0),
                    expression_text="function notation",
                    is_correct=True,
                    confidence=FUNCTION_NOTATION_CONFIDENCE,
                    context="function_notation",
                )
            )
            analysis_text = _blank(analysis_text, match.start(), match.end())

        for match in list(SEQUENTIAL.finditer(analysis_text)):
            results.append(self._evaluate_sequence(match.group(0)))
            analysis_text = _blank(analysis_text, match.start(), match.end())

        for context, pattern, confidence in EXPRESSION_PATTERNS:
            for match in list(pattern.finditer(analysis_text)):
                results.append(self._evaluate_match(match, context, confidence))
                analysis_text = _blank(analysis_text, match.start(), match.end())

        return results

    def _evaluate_match(
        self, match: re.Match[str], context: str, confidence: float
    ) -> CalculationEvaluation:
        original = match.group(0).strip()
        claimed = float(match.group("claimed"))
        expression = to_python_expression(match.group("expr"))
        try:
            result = safe_evaluate(expression)
        except CalculationError as e:
            logger.debug("calculation_evaluation_failed", expression=original, error=e.reason)
            return CalculationEvaluation(
                original=original,
                expression_text=expression,
                claimed_result=claimed,
                is_correct=False,
                confidence=ERROR_CONFIDENCE,
                context="evaluation_error",
                error=e.reason,
            )

        is_correct = numbers_equal(result, claimed)
        return CalculationEvaluation(
            original=original,
            expression_text=expression,
            result=result,
            is_correct=is_correct,
            claimed_result=claimed,
            confidence=confidence if is_correct else confidence * INCORRECT_PENALTY,
            context=context,
        )

    def _evaluate_sequence(self, original: str) -> CalculationEvaluation:
        parts = [part.strip() for part in original.split("=")]
        first_expression = to_python_expression(parts[0])
        try:
            values = [safe_evaluate(to_python_expression(part)) for part in parts]
        except CalculationError as e:
            logger.debug("calculation_evaluation_failed", expression=original, error=e.reason)
            return CalculationEvaluation(
                original=original,
                expression_text=first_expression,
                is_correct=False,
                confidence=ERROR_CONFIDENCE,
                context="evaluation_error",
                error=e.reason,
            )

        first, claimed = values[0], values[-1]
        failed_step = None
        for step, value in enumerate(values[1:], start=1):
            if not numbers_equal(first, value):
                failed_step = f"step {step}: {format_number(first)} ≠ {format_number(value)}"
                break

        return CalculationEvaluation(
            original=original,
            expression_text=first_expression,
            result=first,
            is_correct=failed_step is None,
            claimed_result=claimed,
            confidence=SEQUENTIAL_CONFIDENCE,
            context="sequential",
            failed_step=failed_step,
        )

    def convert_to_verification_results(
        self, evaluations: Iterable[CalculationEvaluation]
    ) -> list[CalculationVerification]:
        """Turn evaluator output into annotated verification records."""
        verifications = []
        for evaluation in evaluations:
            if evaluation.context == "function_notation":
                verified = "Function notation (not evaluated)"
                is_correct: bool | None = True
                confidence = FUNCTION_NOTATION_CONFIDENCE
            elif evaluation.context == "evaluation_error":
                verified = f"Verification pending: {evaluation.error or 'expression could not be evaluated'}"
                is_correct = None
                confidence = ERROR_CONFIDENCE
            elif evaluation.failed_step is not None:
                verified = f"Incorrect calculation, error at {evaluation.failed_step}"
                is_correct = False
                confidence = FAILED_STEP_CONFIDENCE
            elif evaluation.is_correct:
                verified = f"{evaluation.expression_text} = {format_number(evaluation.result)}"
                is_correct = True
                confidence = evaluation.confidence
            else:
                verified = (
                    f"Incorrect calculation: {evaluation.expression_text} = "
                    f"{format_number(evaluation.result)}, not {format_number(evaluation.claimed_result)}"
                )
                is_correct = False
                confidence = evaluation.confidence
            verifications.append(
                CalculationVerification(
                    original=evaluation.original,
                    verified=verified,
                    is_correct=is_correct,
                    confidence=confidence,
                    context=evaluation.context,
                )
            )
        return verifications


__all__ = [
    "MathEvaluator",
    "format_number",
    "numbers_equal",
    "safe_evaluate",
    "to_python_expression",
]
