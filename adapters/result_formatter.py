"""
result_formatter.py — turns an evaluated value into the string sent to the client.

Without precision the evaluator's default representation is used unchanged.
With precision, anything that coerces to a real number is rendered to that many
significant digits; everything else keeps its default representation.
"""
from __future__ import annotations

import math
from typing import Any, Optional

from ports.evaluator import ExpressionEvaluator


def _coerce_number(result: Any, evaluator: ExpressionEvaluator) -> Optional[float]:
    if isinstance(result, bool):
        return None
    if isinstance(result, int):
        number: Optional[float] = math.inf if result > 0 else -math.inf
        if abs(result) < 2 ** 1023:
            number = float(result)
    elif isinstance(result, float):
        number = result
    elif isinstance(result, str):
        try:
            number = float(result)
        except ValueError:
            return None
    else:
        number = evaluator.as_number(result)

    if number is None or math.isnan(number):
        return None
    return number


def format_result(result: Any, precision: Optional[int], evaluator: ExpressionEvaluator) -> str:
    if precision is None:
        return evaluator.to_string(result)

    number = _coerce_number(result, evaluator)
    if number is None:
        return evaluator.to_string(result)
    return evaluator.format_significant(number, precision)
