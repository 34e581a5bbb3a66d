from __future__ import annotations

import pytest

from adapters.evaluator.sympy_evaluator import SympyEvaluator
from contracts import EvaluationError, ResultKind
from ports.evaluator import ExpressionEvaluator


@pytest.fixture
def evaluator() -> SympyEvaluator:
    return SympyEvaluator()


def _show(evaluator: SympyEvaluator, expression: str) -> str:
    return evaluator.to_string(evaluator.evaluate(expression))


def test_sympy_evaluator_implements_port(evaluator):
    assert isinstance(evaluator, ExpressionEvaluator)


def test_arithmetic_is_rendered_like_the_v4_api(evaluator):
    assert _show(evaluator, "2 + 2") == "4"
    assert _show(evaluator, "sqrt(16)") == "4"
    assert _show(evaluator, "2 ^ 10") == "1024"
    assert _show(evaluator, "1 / 3") == "0.3333333333333333"
    assert _show(evaluator, "0.1 + 0.2") == "0.30000000000000004"
    assert _show(evaluator, "7 % 3") == "1"


def test_constants_and_implicit_multiplication(evaluator):
    assert _show(evaluator, "pi") == "3.141592653589793"
    assert _show(evaluator, "2pi") == "6.283185307179586"
    assert _show(evaluator, "2 (3 + 1)") == "8"


def test_functions(evaluator):
    assert _show(evaluator, "factorial(5)") == "120"
    assert _show(evaluator, "log(100, 10)") == "2"
    assert _show(evaluator, "abs(-3)") == "3"
    assert _show(evaluator, "round(2.5)") == "3"
    assert _show(evaluator, "round(pi, 2)") == "3.14"
    assert _show(evaluator, "cbrt(-8)") == "-2"
    assert _show(evaluator, "max(1, 7, 3)") == "7"
    assert _show(evaluator, "gcd(12, 18)") == "6"


def test_division_by_zero_is_infinity_not_an_error(evaluator):
    assert _show(evaluator, "1 / 0") == "Infinity"
    assert _show(evaluator, "0 / 0") == "NaN"


def test_modulo_by_zero_is_nan(evaluator):
    assert _show(evaluator, "5 % 0") == "NaN"
    assert _show(evaluator, "mod(5, 0)") == "NaN"
    assert _show(evaluator, "-7 % 3") == "2"
    assert _show(evaluator, "mod(7.5, 2)") == "1.5"


def test_unbounded_oscillation_is_nan(evaluator):
    assert _show(evaluator, "sin(Infinity)") == "NaN"
    assert _show(evaluator, "cos(Infinity) + 1") == "NaN"


def test_complex_results(evaluator):
    assert _show(evaluator, "sqrt(-4)") == "2i"
    assert _show(evaluator, "2 + 3 i") == "2 + 3i"
    assert _show(evaluator, "1 - i") == "1 - i"
    assert evaluator.describe(evaluator.evaluate("sqrt(-1)")) == ResultKind.COMPLEX


def test_booleans(evaluator):
    assert _show(evaluator, "2 > 1") == "true"
    assert _show(evaluator, "false") == "false"
    assert evaluator.describe(evaluator.evaluate("3 < 2")) == ResultKind.BOOLEAN


@pytest.mark.parametrize("expression, expected", [
    ("true and false", "false"),
    ("true or false", "true"),
    ("not true", "false"),
    ("not (1 > 2)", "true"),
    ("1 < 2 and 2 < 3", "true"),
    ("true and not false", "true"),
])
def test_logical_operators(evaluator, expression, expected):
    assert _show(evaluator, expression) == expected


def test_matrices(evaluator):
    assert _show(evaluator, "[1, 2, 3]") == "[1, 2, 3]"
    assert _show(evaluator, "[[1, 2], [3, 4]]") == "[[1, 2], [3, 4]]"
    assert _show(evaluator, "[1, 2; 3, 4] * 2") == "[[2, 4], [6, 8]]"
    assert _show(evaluator, "det([1, 2; 3, 4])") == "-2"
    assert evaluator.describe(evaluator.evaluate("[1, 2]")) == ResultKind.MATRIX


def test_units(evaluator):
    assert _show(evaluator, "2 hour to minute") == "120 minute"
    assert _show(evaluator, "1 km in m") == "1000 meter"
    assert _show(evaluator, "5 cm + 2 m") == "2.05 meter"
    assert evaluator.describe(evaluator.evaluate("3 kg")) == ResultKind.UNIT


def test_incompatible_units_fail(evaluator):
    with pytest.raises(EvaluationError, match="Units do not match"):
        evaluator.evaluate("5 m + 2 s")
    with pytest.raises(EvaluationError, match="Units do not match"):
        evaluator.evaluate("5 m to s")


def test_undefined_names_fail(evaluator):
    with pytest.raises(EvaluationError, match="Undefined symbol x"):
        evaluator.evaluate("x + 1")
    with pytest.raises(EvaluationError, match="Undefined function foo"):
        evaluator.evaluate("foo(2)")


def test_syntax_errors_fail(evaluator):
    with pytest.raises(EvaluationError) as info:
        evaluator.evaluate("2 +")
    assert info.value.message


def test_empty_and_oversized_expressions_fail():
    evaluator = SympyEvaluator(max_expression_length=10)
    with pytest.raises(EvaluationError, match="Empty expression"):
        evaluator.evaluate("   ")
    with pytest.raises(EvaluationError, match="Expression too long"):
        evaluator.evaluate("1 + " * 10 + "1")


def test_python_escapes_are_rejected(evaluator):
    with pytest.raises(EvaluationError, match="Unsupported syntax"):
        evaluator.evaluate("(1).__class__")
    with pytest.raises(EvaluationError, match="Unsupported syntax"):
        evaluator.evaluate("__import__('os')")
    with pytest.raises(EvaluationError, match="Unsupported syntax"):
        evaluator.evaluate("lambda: 1")


def test_as_number(evaluator):
    assert evaluator.as_number(evaluator.evaluate("1 / 4")) == 0.25
    assert evaluator.as_number(evaluator.evaluate("sqrt(-1)")) is None
    assert evaluator.as_number(evaluator.evaluate("true")) is None
    assert evaluator.as_number(evaluator.evaluate("[1, 2]")) is None
    assert evaluator.as_number(evaluator.evaluate("3 kg")) is None


def test_to_string_of_plain_python_values(evaluator):
    assert evaluator.to_string(None) == "null"
    assert evaluator.to_string(True) == "true"
    assert evaluator.to_string(3) == "3"
    assert evaluator.to_string(2.0) == "2"
    assert evaluator.to_string("text") == "text"
