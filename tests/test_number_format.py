from adapters.evaluator.number_format import (
    format_significant,
    js_number_str,
    round_digits,
    split_number,
)


def test_split_number_reads_shortest_digits():
    assert split_number(123.4) == ("", [1, 2, 3, 4], 2)
    assert split_number(-0.005) == ("-", [5], -3)
    assert split_number(0.0) == ("", [0], 0)


def test_round_digits_carries_into_new_leading_digit():
    assert round_digits([9, 9, 9, 6], 2, 3) == ([1], 3)
    assert round_digits([1, 2, 3, 4], 2, 2) == ([1, 2], 2)
    assert round_digits([1, 2], 1, 5) == ([1, 2], 1)


def test_js_number_str_matches_javascript_rendering():
    assert js_number_str(4.0) == "4"
    assert js_number_str(0.1 + 0.2) == "0.30000000000000004"
    assert js_number_str(-2.5) == "-2.5"
    assert js_number_str(1e20) == "100000000000000000000"
    assert js_number_str(1e21) == "1e+21"
    assert js_number_str(0.000001) == "0.000001"
    assert js_number_str(1.5e-7) == "1.5e-7"


def test_js_number_str_special_values():
    assert js_number_str(float("inf")) == "Infinity"
    assert js_number_str(float("-inf")) == "-Infinity"
    assert js_number_str(float("nan")) == "NaN"


def test_format_significant_uses_significant_digits_not_decimals():
    assert format_significant(1 / 3, 3) == "0.333"
    assert format_significant(123.4, 2) == "120"
    assert format_significant(2 / 3, 2) == "0.67"
    assert format_significant(999.96, 4) == "1000"


def test_format_significant_switches_to_exponential_notation():
    assert format_significant(0.0001234, 2) == "1.2e-4"
    assert format_significant(123456.0, 2) == "1.2e+5"
    assert format_significant(100000.0, 3) == "1e+5"
    assert format_significant(0.001234, 2) == "0.0012"


def test_format_significant_drops_trailing_zeros():
    assert format_significant(2.5, 10) == "2.5"
    assert format_significant(4.0, 3) == "4"
    assert format_significant(-1.5, 1) == "-2"


def test_format_significant_without_rounding_for_non_positive_precision():
    assert format_significant(3.14159, 0) == "3.14159"
    assert format_significant(3.14159, -2) == "3.14159"


def test_format_significant_caps_significant_digits():
    for precision in range(1, 16):
        text = format_significant(2 ** 0.5, precision)
        digits = text.replace(".", "").lstrip("0")
        assert len(digits) <= precision
