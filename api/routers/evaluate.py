"""
Router: GET /v4/, POST /v4/

math.js v4 compatible evaluation endpoints.
  GET  — expr / precision from the query string; success is a text/plain body
  POST — expr / precision from a JSON (or urlencoded) body; success is the
         {"result": ..., "error": null} envelope

Failures (missing expr, rejected expression) are raised as ApiError and
rendered as a 400 envelope by the handler registered in api.main.
"""
from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qs, unquote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from adapters.result_formatter import format_result
from api.dependencies import get_evaluator
from api.schemas import ApiResponse
from contracts import EvaluationRequest
from ports.evaluator import ExpressionEvaluator

logger = logging.getLogger("matheval.evaluate")

router = APIRouter(prefix="/v4", tags=["evaluate"])


async def _read_body(request: Request) -> dict[str, Any]:
    """Body parameters; anything unreadable counts as an empty body."""
    raw = await request.body()
    if not raw:
        return {}

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        form = parse_qs(raw.decode("utf-8", errors="replace"), keep_blank_values=True)
        return {key: values[-1] for key, values in form.items()}

    try:
        payload = json.loads(raw)
    except ValueError:
        logger.info("Ignoring request body that is not valid JSON")
        return {}
    return payload if isinstance(payload, dict) else {}


def _evaluate(body: EvaluationRequest, expression: str, evaluator: ExpressionEvaluator) -> str:
    result = evaluator.evaluate(expression)
    formatted = format_result(result, body.precision, evaluator)
    logger.debug("%r -> %r (precision=%s)", expression, formatted, body.precision)
    return formatted


@router.get("/", response_class=PlainTextResponse)
@router.get("", response_class=PlainTextResponse, include_in_schema=False)
async def evaluate_get(
    expr: str | None = None,
    precision: str | None = None,
    evaluator: ExpressionEvaluator = Depends(get_evaluator),
) -> PlainTextResponse:
    body = EvaluationRequest.from_params(expr, precision)
    # query values arrive decoded once already; a second pass matches the v4 API
    formatted = _evaluate(body, unquote(body.expression), evaluator)
    return PlainTextResponse(formatted)


@router.post("/", response_model=ApiResponse)
@router.post("", response_model=ApiResponse, include_in_schema=False)
async def evaluate_post(
    request: Request,
    evaluator: ExpressionEvaluator = Depends(get_evaluator),
) -> ApiResponse:
    params = await _read_body(request)
    body = EvaluationRequest.from_params(params.get("expr"), params.get("precision"))
    return ApiResponse.ok(_evaluate(body, body.expression, evaluator))
