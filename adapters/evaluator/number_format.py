"""
Number display rules shared by the evaluator adapters.

js_number_str()       — default stringification of a float, as JavaScript's
                        Number.prototype.toString() renders it
format_significant()  — significant-digit formatting with automatic notation,
                        as math.js format(value, {precision}) renders it

Both work on the shortest round-trip decimal digits of the float (repr), so
0.1 is "0.1" and not its binary expansion.
"""
from __future__ import annotations

import math
from decimal import Decimal

# Automatic notation switches to exponential outside [LOWER_EXP, UPPER_EXP)
LOWER_EXP = -3
UPPER_EXP = 5

# Number.prototype.toString() thresholds
_JS_LOWER_EXP = -7
_JS_UPPER_EXP = 21


def split_number(value: float) -> tuple[str, list[int], int]:
    """
    Splits a finite float into (sign, significant digits, exponent).
    123.4 → ("", [1, 2, 3, 4], 2); 0.005 → ("", [5], -3); 0 → ("", [0], 0).
    """
    if value == 0:
        return "", [0], 0
    sign = "-" if value < 0 else ""
    digits_t, exp = Decimal(repr(abs(value))).normalize().as_tuple()[1:]
    digits = list(digits_t)
    return sign, digits, len(digits) - 1 + exp


def round_digits(digits: list[int], exponent: int, precision: int) -> tuple[list[int], int]:
    """Rounds half-up to `precision` significant digits; trailing zeros are dropped."""
    if len(digits) <= precision:
        return list(digits), exponent

    kept = digits[:precision]
    if digits[precision] >= 5:
        i = precision - 1
        while i >= 0:
            kept[i] += 1
            if kept[i] < 10:
                break
            kept[i] = 0
            i -= 1
        if i < 0:
            kept = [1] + kept
            exponent += 1

    while len(kept) > 1 and kept[-1] == 0:
        kept.pop()
    return kept, exponent


def _fixed(digits: list[int], exponent: int) -> str:
    if exponent >= 0:
        int_part = digits[: exponent + 1]
        int_part = int_part + [0] * (exponent + 1 - len(int_part))
        frac_part = digits[exponent + 1:]
    else:
        int_part = [0]
        frac_part = [0] * (-exponent - 1) + digits
    text = "".join(map(str, int_part))
    if frac_part:
        text += "." + "".join(map(str, frac_part))
    return text


def _exponential(digits: list[int], exponent: int) -> str:
    text = str(digits[0])
    if len(digits) > 1:
        text += "." + "".join(map(str, digits[1:]))
    return f"{text}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"


def _special(value: float) -> str | None:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return None


def js_number_str(value: float) -> str:
    """1.0 → "1", 1e21 → "1e+21", 1e-7 → "1e-7", 0.1 + 0.2 → "0.30000000000000004"."""
    special = _special(value)
    if special is not None:
        return special

    sign, digits, exponent = split_number(value)
    if _JS_LOWER_EXP < exponent < _JS_UPPER_EXP:
        return sign + _fixed(digits, exponent)
    return sign + _exponential(digits, exponent)


def format_significant(value: float, precision: int) -> str:
    """
    Formats to `precision` significant digits:
      (1/3, 3) → "0.333", (123.4, 2) → "120", (0.0001234, 2) → "1.2e-4",
      (123456, 2) → "1.2e+5".
    A precision below 1 disables rounding; the automatic notation still applies.
    """
    special = _special(value)
    if special is not None:
        return special

    sign, digits, exponent = split_number(value)
    if precision and precision > 0:
        digits, exponent = round_digits(digits, exponent, precision)
    if digits == [0]:
        return "0"

    if exponent < LOWER_EXP or exponent >= UPPER_EXP:
        return sign + _exponential(digits, exponent)
    return sign + _fixed(digits, exponent)
