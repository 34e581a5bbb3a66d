"""
Port: ExpressionEvaluator
Responsibility: parse and evaluate a math expression and render its value.
The API treats implementations as opaque and swappable.
"""
from typing import Any, Optional, Protocol, runtime_checkable

from contracts import ResultKind


@runtime_checkable
class ExpressionEvaluator(Protocol):
    def evaluate(self, expression: str) -> Any:
        """
        Parses and evaluates an expression (arithmetic, functions, units,
        matrices, constants).
        Raises EvaluationError with a human-readable message on invalid input.
        """
        ...

    def to_string(self, value: Any) -> str:
        """Default string representation of an evaluated value."""
        ...

    def as_number(self, value: Any) -> Optional[float]:
        """Real numeric value of an evaluated value, or None if it has none."""
        ...

    def format_significant(self, number: float, precision: int) -> str:
        """Renders a number to `precision` significant digits."""
        ...

    def describe(self, value: Any) -> ResultKind:
        """Classifies an evaluated value."""
        ...
