"""aiohttp client for the openFDA drug endpoints."""

from __future__ import annotations

import time
from typing import Any

import aiohttp
import structlog

from . import config
from .errors import UpstreamStatusError
from .retry import Fetch, RetryController, Sleep

logger = structlog.get_logger(__name__)


class OpenFDAClient:
    """Owns the shared ClientSession and routes every call through the retry controller.

    ``transport`` replaces the aiohttp fetch for a single attempt; tests pass an
    in-memory fake so that no network is touched.
    """

    def __init__(
        self,
        api_key: str | None = config.OPENFDA_API_KEY,
        timeout: float = config.HTTP_TIMEOUT,
        transport: Fetch | None = None,
        sleep: Sleep | None = None,
        max_retries: int = config.MAX_RETRIES,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None
        self._transport = transport or self.fetch_json
        retry_kwargs: dict[str, Any] = {"max_retries": max_retries}
        if sleep is not None:
            retry_kwargs["sleep"] = sleep
        self.retry = RetryController(self._transport, **retry_kwargs)
        self.request_count = 0

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure the aiohttp session is created with connection pooling."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                connector=aiohttp.TCPConnector(limit=50, limit_per_host=10),
                headers={"User-Agent": config.USER_AGENT, "Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def build_params(self, search: str, limit: int) -> dict[str, Any]:
        params: dict[str, Any] = {"search": search, "limit": limit}
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def fetch_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Perform a single GET and decode the JSON body.

        Raises:
            UpstreamStatusError: For any non-2xx response
            aiohttp.ClientError / asyncio.TimeoutError: Transport failures
        """
        session = await self._ensure_session()
        async with session.get(url, params=params) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise UpstreamStatusError(resp.status, resp.reason, str(resp.url))
            return await resp.json(content_type=None)

    async def query(self, endpoint_key: str, search: str, limit: int) -> dict[str, Any]:
        """Run one search against ``config.ENDPOINTS[endpoint_key]`` with retries."""
        url = config.ENDPOINTS[endpoint_key]
        params = self.build_params(search, limit)
        self.request_count += 1
        start = time.perf_counter()
        payload = await self.retry.execute(url, params)
        logger.debug(
            "upstream_query",
            endpoint=endpoint_key,
            search=search,
            limit=limit,
            results=len(payload.get("results") or []),
            elapsed_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return payload

    async def health_check(self) -> dict[str, Any]:
        """Check each endpoint with a one-record query, bypassing retries.

        A 404 counts as available: it is how openFDA reports "no matches".
        """
        checks = {
            "label": 'openfda.generic_name:"aspirin"',
            "shortages": '"aspirin"',
            "enforcement": 'product_description:"aspirin"',
        }
        session = await self._ensure_session()
        endpoints: dict[str, Any] = {}
        for name, search in checks.items():
            start = time.perf_counter()
            try:
                async with session.get(
                    config.ENDPOINTS[name],
                    params=self.build_params(search, 1),
                    timeout=aiohttp.ClientTimeout(total=config.HEALTH_CHECK_TIMEOUT),
                ) as resp:
                    status = resp.status
            except Exception as e:
                logger.warning("upstream_health_failed", endpoint=name, error=str(e))
                endpoints[name] = {"available": False, "error": type(e).__name__}
                continue
            endpoints[name] = {
                "available": status in (200, 404),
                "http_status": status,
                "response_time_ms": round((time.perf_counter() - start) * 1000, 1),
            }

        available = sum(1 for e in endpoints.values() if e["available"])
        if available == len(checks):
            status_text = "healthy"
        elif available:
            status_text = "degraded"
        else:
            status_text = "unreachable"
        return {"status": status_text, "endpoints": endpoints}


# Global client instance
_client: OpenFDAClient | None = None


def get_openfda_client() -> OpenFDAClient:
    """Get the global openFDA client, creating it on first use."""
    global _client
    if _client is None:
        _client = OpenFDAClient()
    return _client


async def close_openfda_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
