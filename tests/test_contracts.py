import pytest

from contracts import (
    EvaluationError,
    EvaluationRequest,
    MissingParameterError,
    parse_precision,
)


def test_parse_precision_is_loose_like_parseint():
    assert parse_precision("3") == 3
    assert parse_precision(" 4abc") == 4
    assert parse_precision("5.9") == 5
    assert parse_precision("-2") == -2
    assert parse_precision(7) == 7
    assert parse_precision(3.9) == 3


def test_parse_precision_treats_garbage_as_absent():
    assert parse_precision(None) is None
    assert parse_precision("") is None
    assert parse_precision("abc") is None
    assert parse_precision(True) is None
    assert parse_precision(float("nan")) is None
    assert parse_precision([3]) is None


def test_evaluation_request_requires_expr():
    with pytest.raises(MissingParameterError) as info:
        EvaluationRequest.from_params(None)
    assert info.value.message == "Missing required parameter: expr"
    assert info.value.status_code == 400

    with pytest.raises(MissingParameterError):
        EvaluationRequest.from_params("", "3")


def test_evaluation_request_rejects_non_string_expr():
    with pytest.raises(EvaluationError, match="must be a string"):
        EvaluationRequest.from_params(42)


def test_evaluation_request_parses_precision():
    req = EvaluationRequest.from_params("1/3", "3")
    assert req.expression == "1/3"
    assert req.precision == 3

    assert EvaluationRequest.from_params("1/3", "abc").precision is None
    assert EvaluationRequest(expression="2", precision=4.2).precision == 4
