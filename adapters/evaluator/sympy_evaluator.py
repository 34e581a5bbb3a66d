"""
Adapter: SympyEvaluator
Implements the ExpressionEvaluator port on top of SymPy's expression parser.

Grammar follows the math.js conventions clients of the v4 API expect:
  - '^' is power, '5!' factorial, implicit multiplication ("2pi", "3 cm")
  - matrices as [1, 2, 3], [[1, 2], [3, 4]] or [1, 2; 3, 4]
  - units with conversion: "5 cm to inch", "2 hour in minute"
  - comparisons combine with and / or / not; a % b is mod(a, b)
  - undefined names fail with "Undefined symbol <name>"

Parsing goes through stringify_expr → AST whitelist → eval_expr with empty
builtins, so only arithmetic, calls to known functions and literals get evaluated.
"""
from __future__ import annotations

import ast
import logging
import math
import re
from functools import reduce
from tokenize import OP, NAME, TokenError
from typing import Any, Iterable, Optional

import sympy
from sympy import AccumBounds, Add, Basic, Mul
from sympy.core.function import AppliedUndef
from sympy.logic.boolalg import BooleanAtom
from sympy.matrices import MatrixBase
from sympy.parsing.sympy_parser import (
    auto_number,
    auto_symbol,
    convert_xor,
    eval_expr,
    factorial_notation,
    function_exponentiation,
    implicit_application,
    implicit_multiplication,
    stringify_expr,
)
from sympy.physics import units as u
from sympy.physics.units import convert_to
from sympy.physics.units.quantities import Quantity

from adapters.evaluator import number_format
from contracts import EvaluationError, ResultKind

logger = logging.getLogger("matheval.sympy_evaluator")

_LOGICAL_KEYWORDS = {"and", "or", "not"}


def _logical_operators(
    tokens: list[tuple[int, str]], local_dict: dict, global_dict: dict,
) -> list[tuple[int, str]]:
    """Turns and/or/not into operator tokens the implicit multiplication passes leave alone."""
    result: list[tuple[int, str]] = []
    for toknum, tokval in tokens:
        if toknum == NAME and tokval in _LOGICAL_KEYWORDS:
            result.append((OP, f" {tokval} "))
        else:
            result.append((toknum, tokval))
    return result


_TRANSFORMATIONS = (
    auto_symbol,
    auto_number,
    _logical_operators,
    factorial_notation,
    convert_xor,
    implicit_multiplication,
    implicit_application,
    function_exponentiation,
)

# "<expr> to <unit>" / "<expr> in <unit>"; the last keyword wins
_CONVERSION = re.compile(r"^(.+)\s+(?:to|in)\s+(\S.*)$")
_ROW_SEPARATED = re.compile(r"\[([^\[\]]*;[^\[\]]*)\]")
_NUMBER = re.compile(r"(?<![A-Za-z_\d.])\d+(?:\.\d*)?(?:[eE][+-]?\d+)?")

_SI_BASE = [u.meter, u.kilogram, u.second, u.ampere, u.kelvin, u.mole, u.candela]

# Names the parser transformations emit into generated code
_GLOBALS: dict[str, Any] = {
    "__builtins__": {},
    "Integer": sympy.Integer,
    "Float": sympy.Float,
    "Rational": sympy.Rational,
    "Symbol": sympy.Symbol,
    "Function": sympy.Function,
    "factorial": sympy.factorial,
    "factorial2": sympy.factorial2,
    "I": sympy.I,
}

# Constructors allowed to receive string literals (auto_number / auto_symbol output)
_LITERAL_CONSTRUCTORS = {"Integer", "Float", "Rational", "Symbol", "Function"}

_ALLOWED_NODES = (
    ast.Expression, ast.BinOp, ast.UnaryOp, ast.BoolOp, ast.Compare,
    ast.Call, ast.Name, ast.Load, ast.Constant, ast.List,
    ast.Add, ast.Sub, ast.Mult, ast.Div, ast.Mod, ast.Pow,
    ast.USub, ast.UAdd, ast.Not, ast.And, ast.Or,
    ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE,
)


# ─────────────────────────── Namespace ───────────────────────────────────

def _flatten(values: Iterable[Any]) -> list[Any]:
    flat: list[Any] = []
    for v in values:
        if isinstance(v, (list, tuple, MatrixBase)):
            flat.extend(_flatten(list(v)))
        else:
            flat.append(v)
    return flat


def _matrix(rows: list[Any]) -> sympy.Matrix:
    if rows and all(isinstance(r, (list, MatrixBase)) for r in rows):
        return sympy.Matrix([list(r) for r in rows])
    # a flat list is a single row
    return sympy.Matrix([rows])


def _as_matrix(value: Any) -> sympy.Matrix:
    if isinstance(value, MatrixBase):
        return value
    if isinstance(value, list):
        return _matrix(value)
    raise EvaluationError(f"Expected a matrix, got {value}")


def _round(x: Any, n: Any = 0) -> Any:
    """Half away from zero, to n decimals."""
    value = sympy.sympify(x)
    scale = sympy.Integer(10) ** int(n)
    scaled = value * scale
    return sympy.sign(scaled) * sympy.floor(sympy.Abs(scaled) + sympy.Rational(1, 2)) / scale


def _fix(x: Any) -> Any:
    value = sympy.sympify(x)
    return sympy.sign(value) * sympy.floor(sympy.Abs(value))


def _mean(*values: Any) -> Any:
    flat = _flatten(values)
    return Add(*flat) / len(flat)


def _mod(x: Any, y: Any) -> Any:
    if sympy.sympify(y).is_zero:
        return sympy.nan
    return sympy.Mod(x, y)


_FUNCTIONS: dict[str, Any] = {
    "sqrt": sympy.sqrt,
    "cbrt": lambda x: sympy.real_root(x, 3),
    "nthRoot": lambda x, n=2: sympy.real_root(x, n),
    "abs": sympy.Abs,
    "sign": sympy.sign,
    "exp": sympy.exp,
    "log": sympy.log,
    "log10": lambda x: sympy.log(x, 10),
    "log2": lambda x: sympy.log(x, 2),
    "sin": sympy.sin,
    "cos": sympy.cos,
    "tan": sympy.tan,
    "asin": sympy.asin,
    "acos": sympy.acos,
    "atan": sympy.atan,
    "atan2": sympy.atan2,
    "sinh": sympy.sinh,
    "cosh": sympy.cosh,
    "tanh": sympy.tanh,
    "ceil": sympy.ceiling,
    "floor": sympy.floor,
    "round": _round,
    "fix": _fix,
    "factorial": sympy.factorial,
    "gcd": lambda *a: reduce(sympy.gcd, _flatten(a)),
    "lcm": lambda *a: reduce(sympy.lcm, _flatten(a)),
    "mod": _mod,
    "min": lambda *a: sympy.Min(*_flatten(a)),
    "max": lambda *a: sympy.Max(*_flatten(a)),
    "sum": lambda *a: Add(*_flatten(a)),
    "mean": _mean,
    "re": sympy.re,
    "im": sympy.im,
    "conj": sympy.conjugate,
    "arg": sympy.arg,
    "matrix": _matrix,
    "det": lambda m: _as_matrix(m).det(),
    "inv": lambda m: _as_matrix(m).inv(),
    "transpose": lambda m: _as_matrix(m).T,
}

_CONSTANTS: dict[str, Any] = {
    "pi": sympy.pi,
    "e": sympy.E,
    "E": sympy.E,
    "i": sympy.I,
    "tau": 2 * sympy.pi,
    "phi": sympy.GoldenRatio,
    "Infinity": sympy.oo,
    "NaN": sympy.nan,
    "true": sympy.true,
    "false": sympy.false,
}

_UNITS: dict[str, Any] = {
    # length
    "m": u.meter, "meter": u.meter, "cm": u.centimeter, "mm": u.millimeter,
    "km": u.kilometer, "um": u.micrometer, "nm": u.nanometer,
    "inch": u.inch, "ft": u.foot, "foot": u.foot, "yd": u.yard,
    "mi": u.mile, "mile": u.mile,
    # mass
    "g": u.gram, "gram": u.gram, "kg": u.kilogram, "mg": u.milligram, "lb": u.pound,
    # time
    "s": u.second, "second": u.second, "ms": u.millisecond,
    "minute": u.minute, "hour": u.hour, "day": u.day, "year": u.year,
    # volume
    "L": u.liter, "liter": u.liter, "ml": u.milliliter,
    # derived
    "N": u.newton, "J": u.joule, "W": u.watt, "Pa": u.pascal,
    "Hz": u.hertz, "V": u.volt, "A": u.ampere, "K": u.kelvin,
}

_NAMESPACE: dict[str, Any] = {**_UNITS, **_FUNCTIONS, **_CONSTANTS}


# ─────────────────────────── Parsing ─────────────────────────────────────

def _split_number_suffixes(text: str) -> str:
    """Separates a name glued to a number: 2pi → 2 pi, 5cm → 5 cm."""

    def _space(m: re.Match) -> str:
        following = m.string[m.end():m.end() + 1]
        if following.isalpha() or following == "_":
            return m.group(0) + " "
        return m.group(0)

    return _NUMBER.sub(_space, text)


def _rewrite_matrices(text: str) -> str:
    """[1, 2; 3, 4] → matrix([[1, 2], [3, 4]]); outermost brackets become matrix(...)."""
    previous = None
    while previous != text:
        previous = text
        text = _ROW_SEPARATED.sub(
            lambda m: "[" + ", ".join(f"[{row.strip()}]" for row in m.group(1).split(";")) + "]",
            text,
        )

    out: list[str] = []
    depth = 0
    for ch in text:
        if ch == "[":
            if depth == 0:
                out.append("matrix(")
            depth += 1
            out.append(ch)
        elif ch == "]":
            depth -= 1
            out.append(ch)
            if depth == 0:
                out.append(")")
        else:
            out.append(ch)
    return "".join(out)


def _check_syntax(code: str) -> ast.Expression:
    """Rejects anything beyond arithmetic, comparisons, calls and literals."""
    tree = ast.parse(code, mode="eval")
    literal_args: set[int] = set()
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise EvaluationError(f"Unsupported syntax: {type(node).__name__}")
        if isinstance(node, ast.Call):
            if isinstance(node.func, ast.Name) and node.func.id in _LITERAL_CONSTRUCTORS:
                literal_args.update(id(arg) for arg in node.args)
            if node.keywords:
                raise EvaluationError("Unsupported syntax: keyword arguments")
        elif isinstance(node, ast.Name) and node.id.startswith("_"):
            raise EvaluationError(f"Undefined symbol {node.id}")
        elif isinstance(node, ast.Constant):
            if isinstance(node.value, str):
                if id(node) not in literal_args:
                    raise EvaluationError("Unsupported syntax: string literal")
            elif not isinstance(node.value, (bool, int, float, complex)):
                raise EvaluationError(f"Unsupported syntax: {node.value!r}")
    return tree


class _ModuloCalls(ast.NodeTransformer):
    """a % b → mod(a, b)"""

    def visit_BinOp(self, node: ast.BinOp) -> ast.AST:
        self.generic_visit(node)
        if isinstance(node.op, ast.Mod):
            call = ast.Call(
                func=ast.Name(id="mod", ctx=ast.Load()),
                args=[node.left, node.right],
                keywords=[],
            )
            return ast.copy_location(call, node)
        return node


def _describe_failure(exc: Exception) -> str:
    if isinstance(exc, SyntaxError):
        return f"Syntax error in expression: {exc.msg}"
    if isinstance(exc, TokenError):
        return f"Syntax error in expression: {exc.args[0]}"
    if isinstance(exc, ZeroDivisionError):
        return "Division by zero"
    if isinstance(exc, RecursionError):
        return "Expression too deeply nested"
    return str(exc) or type(exc).__name__


def _unit_part(value: Basic) -> Basic:
    return Mul(*[f for f in Mul.make_args(value) if f.has(Quantity)])


def _numeric_part(value: Basic) -> Basic:
    return Mul(*[f for f in Mul.make_args(value) if not f.has(Quantity)])


def _int_str(n: int) -> str:
    if abs(n) < 10 ** 21:
        return str(n)
    try:
        return number_format.js_number_str(float(n))
    except OverflowError:
        return "Infinity" if n > 0 else "-Infinity"


def _complex_str(real: float, imag: float) -> str:
    if imag == 0:
        return number_format.js_number_str(real)
    magnitude = abs(imag)
    imag_text = "i" if magnitude == 1 else f"{number_format.js_number_str(magnitude)}i"
    if real == 0:
        return ("-" if imag < 0 else "") + imag_text
    return f"{number_format.js_number_str(real)} {'-' if imag < 0 else '+'} {imag_text}"


# ─────────────────────────── Adapter ─────────────────────────────────────

class SympyEvaluator:
    """math.js-flavoured expression evaluator backed by SymPy."""

    def __init__(self, max_expression_length: int = 1000) -> None:
        self._max_length = max_expression_length

    # -- ExpressionEvaluator protocol ---------------------------------------

    def evaluate(self, expression: str) -> Any:
        text = expression.strip()
        if not text:
            raise EvaluationError("Empty expression")
        if len(text) > self._max_length:
            raise EvaluationError(f"Expression too long (max {self._max_length} characters)")

        try:
            match = _CONVERSION.match(text)
            if match:
                value = self._convert(match.group(1), match.group(2))
            else:
                value = self._normalize_units(self._eval_text(text))
            if isinstance(value, AccumBounds):
                # sin(Infinity) and friends have no single value
                value = sympy.nan
            self._check_defined(value)
        except EvaluationError:
            raise
        except Exception as exc:
            logger.debug("Evaluation of %r failed: %r", text, exc)
            raise EvaluationError(_describe_failure(exc)) from exc
        return value

    def to_string(self, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, (bool, BooleanAtom)):
            return "true" if bool(value) else "false"
        if isinstance(value, str):
            return value
        if isinstance(value, int):
            return _int_str(value)
        if isinstance(value, float):
            return number_format.js_number_str(value)
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self.to_string(v) for v in value) + "]"
        if isinstance(value, MatrixBase):
            rows = value.tolist()
            if value.rows == 1:
                return self.to_string(rows[0])
            return self.to_string(rows)
        if isinstance(value, Basic):
            if value.has(Quantity):
                return f"{self.to_string(_numeric_part(value))} {_unit_part(value)}"
            if value is sympy.zoo:
                return "Infinity"
            if value is sympy.nan:
                return "NaN"
            if value.is_Integer:
                return _int_str(int(value))
            if value.is_number:
                if value.is_extended_real:
                    return number_format.js_number_str(self.as_number(value))
                c = complex(value)
                return _complex_str(c.real, c.imag)
        return str(value)

    def as_number(self, value: Any) -> Optional[float]:
        if isinstance(value, (bool, BooleanAtom)):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, Basic) and not value.has(Quantity):
            if value.is_number and value.is_extended_real:
                try:
                    return float(value)
                except OverflowError:
                    return math.inf if value > 0 else -math.inf
        return None

    def format_significant(self, number: float, precision: int) -> str:
        return number_format.format_significant(number, precision)

    def describe(self, value: Any) -> ResultKind:
        if value is None:
            return ResultKind.NULL
        if isinstance(value, (bool, BooleanAtom)):
            return ResultKind.BOOLEAN
        if isinstance(value, str):
            return ResultKind.STRING
        if isinstance(value, (int, float)):
            return ResultKind.NUMBER
        if isinstance(value, (list, tuple, MatrixBase)):
            return ResultKind.MATRIX
        if isinstance(value, Basic):
            if value.has(Quantity):
                return ResultKind.UNIT
            if value.is_number:
                if value.is_extended_real is False and value is not sympy.zoo:
                    return ResultKind.COMPLEX
                return ResultKind.NUMBER
        return ResultKind.EXPRESSION

    # -- Private ------------------------------------------------------------

    def _eval_text(self, text: str) -> Any:
        source = _rewrite_matrices(_split_number_suffixes(text))
        code = stringify_expr(source, dict(_NAMESPACE), dict(_GLOBALS), _TRANSFORMATIONS)
        tree = _ModuloCalls().visit(_check_syntax(code))
        return eval_expr(ast.unparse(tree), dict(_NAMESPACE), dict(_GLOBALS))

    def _normalize_units(self, value: Any) -> Any:
        """Sums of quantities are expressed in SI base units; mixed dimensions fail."""
        if isinstance(value, Add) and value.has(Quantity):
            converted = convert_to(value, _SI_BASE)
            if isinstance(converted, Add):
                raise EvaluationError("Units do not match")
            return converted
        return value

    def _convert(self, value_text: str, unit_text: str) -> Any:
        value = self._normalize_units(self._eval_text(value_text))
        target = self._eval_text(unit_text)
        if not (isinstance(value, Basic) and value.has(Quantity)):
            raise EvaluationError(f"Cannot convert a unitless value to {unit_text.strip()}")
        if not (isinstance(target, Basic) and target.has(Quantity)):
            raise EvaluationError(f"Unit expected after 'to': {unit_text.strip()}")

        target = _unit_part(target)
        converted = convert_to(value, target)
        if converted.atoms(Quantity) - target.atoms(Quantity):
            raise EvaluationError("Units do not match")
        return converted

    @staticmethod
    def _check_defined(value: Any) -> None:
        if isinstance(value, (Basic, MatrixBase)):
            undefined_fns = sorted(str(f.func) for f in value.atoms(AppliedUndef))
            if undefined_fns:
                raise EvaluationError(f"Undefined function {undefined_fns[0]}")
            free = sorted(str(s) for s in value.free_symbols)
            if free:
                raise EvaluationError(f"Undefined symbol {free[0]}")
