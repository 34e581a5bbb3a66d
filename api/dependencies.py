"""
dependencies.py — FastAPI dependency injection.
Each dependency returns the matching object from Request.app.state.
"""
from __future__ import annotations

from fastapi import Request

from ports.evaluator import ExpressionEvaluator


def get_evaluator(request: Request) -> ExpressionEvaluator:
    return request.app.state.evaluator
