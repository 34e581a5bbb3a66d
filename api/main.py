"""
api/main.py — FastAPI entry point.

Lifespan:
  - Creates the expression evaluator (stateless, one per process)
  - Logs the endpoint banner

Routing fallbacks:
  - unknown path or method → 404 {"result": null, "error": "Endpoint not found. ..."}
  - ApiError raised by a handler → its status with the envelope
  - anything else → 500 "Internal server error", details only in the server log
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from adapters.evaluator.sympy_evaluator import SympyEvaluator
from api.routers import evaluate
from api.schemas import ApiResponse, HealthResponse
from config import Settings
from contracts import INTERNAL_ERROR_MESSAGE, NOT_FOUND_MESSAGE, ApiError

logger = logging.getLogger("matheval")


def _utc_timestamp() -> str:
    """ISO-8601 with millisecond precision and a 'Z' suffix."""
    now = datetime.now(tz=timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _envelope(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ApiResponse.fail(error).model_dump())


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    app.state.evaluator = SympyEvaluator(max_expression_length=settings.max_expression_length)

    logger.info("MathEval API server running on port %d", settings.port)
    logger.info("Health check available at: http://localhost:%d/health", settings.port)
    logger.info("API endpoints:")
    logger.info("  GET  /v4/?expr=<expression>&precision=<number>")
    logger.info('  POST /v4/ with JSON body: {"expr": "<expression>", "precision": <number>}')
    yield

    logger.info("Shutting down.")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(evaluate.router)

    # Health
    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="OK", timestamp=_utc_timestamp())

    # Error handlers
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return _envelope(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # a known path with an unsupported method is just as unroutable
        if exc.status_code in (404, 405):
            return _envelope(404, NOT_FOUND_MESSAGE)
        return _envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _envelope(500, INTERNAL_ERROR_MESSAGE)

    return app


app = create_app()
