"""OAuth compatibility endpoints.

The server is authless. Some MCP clients insist on walking an OAuth flow
before connecting, so these endpoints advertise and complete a trivial one:
any client registers, every authorization is approved and the issued token
is never checked.
"""

import logging
import secrets
import time
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])

OAUTH_SCOPE = "mcp"


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def _with_query(url: str, **params: str) -> str:
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v)
    return urlunsplit(parts._replace(query=urlencode(query)))


@router.get("/.well-known/oauth-authorization-server", summary="OAuth Server Metadata")
async def oauth_authorization_server(request: Request):
    """RFC 8414 metadata pointing at the stub endpoints below."""
    base = _base_url(request)
    return {
        "issuer": base,
        "authorization_endpoint": f"{base}/oauth/authorize",
        "token_endpoint": f"{base}/oauth/token",
        "registration_endpoint": f"{base}/register",
        "scopes_supported": [OAUTH_SCOPE],
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code"],
        "token_endpoint_auth_methods_supported": ["none"],
        "code_challenge_methods_supported": ["S256"],
        "authless": True,
    }


@router.get("/.well-known/oauth-protected-resource", summary="OAuth Resource Metadata")
async def oauth_protected_resource(request: Request):
    base = _base_url(request)
    return {
        "resource": f"{base}/mcp",
        "authorization_servers": [base],
        "scopes_supported": [OAUTH_SCOPE],
        "bearer_methods_supported": ["header"],
        "authless": True,
    }


@router.post("/register", summary="Dynamic Client Registration")
async def register_client(request: Request):
    """RFC 7591 registration; every client gets a fresh id and no secret."""
    client_id = f"mcp-client-{secrets.token_hex(8)}"
    logger.info(f"Registered OAuth client {client_id}")
    return {
        "client_id": client_id,
        "client_id_issued_at": int(time.time()),
        "grant_types": ["authorization_code"],
        "response_types": ["code"],
        "scope": OAUTH_SCOPE,
        "token_endpoint_auth_method": "none",
        "authless": True,
        "mcp_endpoint": f"{_base_url(request)}/mcp",
    }


@router.get("/oauth/authorize", summary="Authorization Endpoint")
async def authorize(redirect_uri: str | None = None, state: str | None = None):
    """Approve immediately by redirecting back with a code (and the caller's state)."""
    if not redirect_uri:
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_request", "error_description": "Missing redirect_uri"},
        )
    code = f"mcp_auth_code_{secrets.token_hex(8)}"
    return RedirectResponse(_with_query(redirect_uri, code=code, state=state or ""), status_code=302)


@router.post("/oauth/token", summary="Token Endpoint")
async def token(request: Request):
    return {
        "access_token": "mcp_no_auth_required",
        "token_type": "bearer",
        "expires_in": 3600,
        "scope": OAUTH_SCOPE,
        "authless": True,
    }
