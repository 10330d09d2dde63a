"""FastAPI application initialization and configuration for the openFDA MCP server."""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from . import config
from .middleware import (
    lifespan,
    limiter,
    rate_limit_handler,
    validation_exception_handler,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    app = FastAPI(
        title=config.SERVER_NAME,
        description="""
## openfda-mcp API

A Model Context Protocol (MCP) server exposing drug information from the
public openFDA API to AI assistants.

### MCP Tools Available:
- `search_drug_shortages` - Ranked shortage records for a medication
- `search_drug_recalls` - Enforcement reports with classification breakdown
- `get_drug_label_info` - Key prescribing label sections
- `get_medication_profile` - Label plus current shortage picture
- `analyze_drug_shortage_trends` - Monthly shortage timeline and trend
- `batch_drug_analysis` - Shortage, recall and risk overview for up to 25 drugs
- `search_adverse_events` / `search_serious_adverse_events` - FAERS reports

Send JSON-RPC 2.0 requests to `POST /mcp`.
        """.strip(),
        version=config.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Health check endpoints"},
            {"name": "mcp", "description": "MCP JSON-RPC endpoint and tool registry"},
            {"name": "admin", "description": "Cache and usage statistics"},
            {"name": "oauth", "description": "Authless OAuth compatibility stubs"},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    # Configure validation error handler
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Register routers
    from .endpoints import router as main_router
    from .endpoints_oauth import router as oauth_router

    app.include_router(main_router)
    app.include_router(oauth_router)

    return app


# Create the app instance
app = create_app()
