"""Facade re-exporting the FastAPI app and its main handlers.

``uvicorn openfda_mcp.app:app`` is the entry point used by the CLI.
"""

from .endpoints import health_check, mcp_endpoint, root
from .middleware import (
    lifespan,
    limiter,
    rate_limit_handler,
    shutdown_event,
    startup_event,
    validation_exception_handler,
)
from .server import app, create_app

__all__ = [
    "app",
    "create_app",
    "health_check",
    "lifespan",
    "limiter",
    "mcp_endpoint",
    "rate_limit_handler",
    "root",
    "shutdown_event",
    "startup_event",
    "validation_exception_handler",
]
