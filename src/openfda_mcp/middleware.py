"""Rate limiting, exception handlers, and lifecycle events for the openFDA MCP server."""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from . import config
from .cache import CacheSweeper, get_cache_store
from .models.base import ErrorResponse
from .openfda_client import close_openfda_client

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[config.RATE_LIMIT],
    enabled=config.RATE_LIMIT_ENABLED,
)

_sweeper: CacheSweeper | None = None


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return a consistent JSON body for rate limit violations (HTTP 429)."""
    body = ErrorResponse(
        error="rate_limit_exceeded",
        detail=str(exc.detail),
        status_code=429,
        suggestions=["Wait a minute before retrying", "Batch several drugs into one batch_drug_analysis call"],
    )
    response = JSONResponse(status_code=429, content=body.model_dump())
    response.headers["Retry-After"] = "60"
    return response


def _json_safe(value):
    if isinstance(value, Exception):
        return str(value)
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Format request validation errors with examples of well-formed calls."""
    errors = []
    for error in exc.errors():
        field_path = " -> ".join(str(loc) for loc in error["loc"][1:])
        detail = {
            "field": field_path or (str(error["loc"][-1]) if error["loc"] else "unknown"),
            "message": error["msg"],
            "type": error["type"],
        }
        if "input" in error:
            detail["received_value"] = _json_safe(error["input"])
        if isinstance(error.get("ctx"), dict):
            detail["context"] = {k: _json_safe(v) for k, v in error["ctx"].items()}
        errors.append(detail)

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": errors,
            "examples": {
                "tools/call": {
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "tools/call",
                    "params": {
                        "name": "search_drug_shortages",
                        "arguments": {"drug_name": "amoxicillin", "limit": 5},
                    },
                },
            },
        },
    )


async def startup_event():
    """Start the background cache sweeper."""
    global _sweeper
    if config.CACHE_SWEEP_ENABLED:
        _sweeper = CacheSweeper(get_cache_store(), config.CACHE_SWEEP_INTERVAL)
        await _sweeper.start()
    logger.info(f"{config.SERVER_NAME} {config.VERSION} started")


async def shutdown_event():
    """Stop background tasks and release the upstream HTTP session."""
    global _sweeper
    if _sweeper is not None:
        await _sweeper.stop()
        _sweeper = None
    await close_openfda_client()
    logger.info(f"{config.SERVER_NAME} stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run startup work before serving and shutdown work after the last request."""
    await startup_event()
    try:
        yield
    finally:
        await shutdown_event()
