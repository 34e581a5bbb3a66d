"""
schemas.py — FastAPI request/response models.
Kept apart from contracts.py so the wire format can evolve independently.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


# ─────────────────────────── /v4/ ────────────────────────────────

class ApiResponse(BaseModel):
    """Envelope: exactly one of result / error is set."""

    result: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: str) -> "ApiResponse":
        return cls(result=result, error=None)

    @classmethod
    def fail(cls, error: str) -> "ApiResponse":
        return cls(result=None, error=error)


# ─────────────────────────── /health ─────────────────────────────

class HealthResponse(BaseModel):
    status: str
    timestamp: str
