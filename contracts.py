"""
contracts.py — shared types for MathEval.
Request model, result classification and the error taxonomy rendered by the API.
"""
from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

CONTRACTS_VERSION = "1.0.0"

NOT_FOUND_MESSAGE = "Endpoint not found. Use GET or POST to /v4/"
INTERNAL_ERROR_MESSAGE = "Internal server error"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# ─────────────────────────── Errors ──────────────────────────────────────

class ApiError(Exception):
    """Client-attributable failure, rendered as {"result": null, "error": message}."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingParameterError(ApiError):
    def __init__(self, name: str = "expr") -> None:
        super().__init__(f"Missing required parameter: {name}")
        self.parameter = name


class EvaluationError(ApiError):
    """The evaluator rejected the expression; message is shown to the client as-is."""


# ─────────────────────────── Evaluation ──────────────────────────────────

class ResultKind(str, Enum):
    NUMBER = "number"
    COMPLEX = "complex"
    BOOLEAN = "boolean"
    MATRIX = "matrix"
    UNIT = "unit"
    STRING = "string"
    NULL = "null"
    EXPRESSION = "expression"


def parse_precision(value: Any) -> Optional[int]:
    """
    Loose precision parsing.
    int → as is, float → truncated, str → leading integer ("3", " 4abc", "5.9").
    Anything unparsable (including bool, NaN and empty strings) means "no precision".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


class EvaluationRequest(BaseModel):
    expression: str = Field(..., min_length=1)
    precision: Optional[int] = None

    @field_validator("precision", mode="before")
    @classmethod
    def _loose_precision(cls, v: Any) -> Optional[int]:
        return parse_precision(v)

    @classmethod
    def from_params(cls, expr: Any, precision: Any = None) -> "EvaluationRequest":
        """Validates raw transport parameters; raises ApiError before any evaluation."""
        if expr is None or expr == "":
            raise MissingParameterError("expr")
        if not isinstance(expr, str):
            raise EvaluationError("Parameter expr must be a string")
        return cls(expression=expr, precision=precision)
