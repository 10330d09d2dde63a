"""API endpoint handlers for the openFDA MCP server."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from . import config
from .cache import get_cache_store
from .dispatcher import ToolDispatcher, get_dispatcher
from .mcp_tools_config import list_tools
from .middleware import limiter
from .monitoring import get_usage_analytics
from .openfda_client import get_openfda_client

logger = logging.getLogger(__name__)

router = APIRouter()

MEMORY_WARNING_MB = 512


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sse_event(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def sse_keepalive(
    is_disconnected: Callable[[], Awaitable[bool]],
    interval: float = config.SSE_PING_INTERVAL,
) -> AsyncIterator[str]:
    """Announce the server once, then ping every ``interval`` seconds until the client leaves."""
    yield _sse_event(
        "initialized",
        {
            "type": "initialized",
            "serverInfo": {"name": config.SERVER_NAME, "version": config.VERSION},
            "protocolVersion": config.PROTOCOL_VERSION,
        },
    )
    while not await is_disconnected():
        await asyncio.sleep(interval)
        if await is_disconnected():
            break
        yield _sse_event("ping", {"type": "ping", "timestamp": _now_iso()})


# ===== MCP Endpoints =====


async def _handle_rpc(request: Request, dispatcher: ToolDispatcher) -> Response:
    response = await dispatcher.dispatch_raw(await request.body())
    if response is None:
        return Response(status_code=202)
    return JSONResponse(content=response, headers={"Cache-Control": "no-cache"})


@router.post("/mcp", tags=["mcp"], summary="JSON-RPC 2.0 endpoint")
@limiter.limit(config.RATE_LIMIT)
async def mcp_endpoint(request: Request, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
    """
    Handle MCP JSON-RPC requests.

    Accepts a single request object or a batch array. Notifications are
    acknowledged with HTTP 202 and no body.
    """
    return await _handle_rpc(request, dispatcher)


@router.post("/", tags=["mcp"], summary="JSON-RPC 2.0 endpoint (root alias)")
@limiter.limit(config.RATE_LIMIT)
async def mcp_root_endpoint(
    request: Request, dispatcher: ToolDispatcher = Depends(get_dispatcher)
):
    return await _handle_rpc(request, dispatcher)


@router.get("/mcp", tags=["mcp"], summary="SSE keep-alive stream")
async def mcp_stream(request: Request):
    logger.info("SSE stream opened")
    return StreamingResponse(
        sse_keepalive(request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/tools", tags=["mcp"], summary="Tool registry")
async def get_tools():
    tools = list_tools()
    return {"tools": tools, "count": len(tools)}


# ===== Health and Info Endpoints =====


@router.get("/health", tags=["health"], summary="Health Check")
async def health_check(upstream: bool = False):
    """
    Check service health.

    Returns cache and memory status. With ``?upstream=true`` the openFDA
    endpoints are checked as well.
    """
    health = {
        "status": "healthy",
        "service": config.SERVER_NAME,
        "version": config.VERSION,
        "protocol_version": config.PROTOCOL_VERSION,
        "timestamp": _now_iso(),
        "tools_available": len(list_tools()),
        "api_key_configured": bool(config.OPENFDA_API_KEY),
    }

    subsystems = {}
    stats = get_cache_store().get_stats()
    subsystems["cache"] = {
        "status": "healthy",
        "total_entries": stats["total_entries"],
        "hit_rate": stats["hit_rate"],
    }

    try:
        process = psutil.Process()
        memory_mb = process.memory_info().rss / 1024 / 1024
        subsystems["memory"] = {
            "status": "healthy" if memory_mb < MEMORY_WARNING_MB else "warning",
            "usage_mb": round(memory_mb, 2),
            "threshold_mb": MEMORY_WARNING_MB,
            "percent": round(process.memory_percent(), 2),
        }
    except psutil.Error as e:
        subsystems["memory"] = {"status": "unknown", "error": str(e)}

    if upstream:
        api = await get_openfda_client().health_check()
        subsystems["openfda"] = {
            **api,
            "status": {"healthy": "healthy", "degraded": "warning"}.get(
                api["status"], "unhealthy"
            ),
        }

    health["subsystems"] = subsystems
    if any(s.get("status") == "unhealthy" for s in subsystems.values()):
        health["status"] = "unhealthy"
    elif any(s.get("status") == "warning" for s in subsystems.values()):
        health["status"] = "degraded"
    return health


@router.get("/", tags=["health"], summary="Service Information")
async def root():
    return {
        "service": config.SERVER_NAME,
        "version": config.VERSION,
        "description": "MCP server for FDA drug shortages, recalls, labels and adverse events",
        "protocol_version": config.PROTOCOL_VERSION,
        "tools_available": len(list_tools()),
        "authentication": "none (OAuth endpoints are authless compatibility stubs)",
        "endpoints": {
            "mcp": "/mcp",
            "tools": "/tools",
            "health": "/health",
            "cache_stats": "/cache-stats",
            "usage_stats": "/usage-stats",
            "oauth_discovery": "/.well-known/oauth-authorization-server",
        },
    }


@router.get("/robots.txt", include_in_schema=False)
async def robots():
    return PlainTextResponse("User-agent: *\nDisallow: /\n")


# ===== Admin Endpoints =====


@router.get("/cache-stats", tags=["admin"], summary="Cache statistics")
async def cache_stats():
    return {"timestamp": _now_iso(), "cache": get_cache_store().get_stats()}


@router.post("/cache-cleanup", tags=["admin"], summary="Sweep expired cache entries")
async def cache_cleanup():
    store = get_cache_store()
    removed = store.sweep()
    logger.info(f"Manual cache cleanup removed {removed} entries")
    return {"removed_entries": removed, "cache": store.get_stats()}


@router.get("/usage-stats", tags=["admin"], summary="Usage analytics")
async def usage_stats():
    return {"timestamp": _now_iso(), "usage": get_usage_analytics().get_stats()}
