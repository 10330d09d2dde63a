"""Pytest configuration and fixtures.

No test touches the network: the upstream transport is an in-memory fake,
cache time comes from a fake clock and retry backoff sleeps are recorded
instead of awaited.
"""

from datetime import datetime, timezone
from typing import Any

import pytest

from openfda_mcp import config
from openfda_mcp.cache import CacheStore
from openfda_mcp.dispatcher import ToolDispatcher
from openfda_mcp.errors import UpstreamStatusError
from openfda_mcp.monitoring import UsageAnalytics
from openfda_mcp.openfda_client import OpenFDAClient
from openfda_mcp.services.drug_service import DrugInformationService

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def payload(*records: dict[str, Any], total: int | None = None) -> dict[str, Any]:
    """Build an openFDA-shaped response body."""
    return {
        "meta": {"results": {"skip": 0, "limit": len(records), "total": total or len(records)}},
        "results": list(records),
    }


class FakeTransport:
    """Stands in for a single upstream HTTP attempt.

    Responses are keyed by the ``search`` parameter. A key may hold several
    outcomes, consumed in order; the last one repeats. Unknown searches get
    a 404, which openFDA uses for "no matching records".
    """

    def __init__(self):
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.routes: dict[str, list[Any]] = {}

    def add(self, search: str, *outcomes: Any) -> None:
        self.routes[search] = list(outcomes)

    async def __call__(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((url, dict(params)))
        outcomes = self.routes.get(params["search"])
        if not outcomes:
            raise UpstreamStatusError(404, "Not Found", url)
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, int):
            raise UpstreamStatusError(outcome, "error", url)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def searches(self) -> list[str]:
        return [params["search"] for _, params in self.calls]


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def client(transport, sleeps):
    return OpenFDAClient(api_key=None, transport=transport, sleep=sleeps, max_retries=2)


@pytest.fixture
def cache(clock):
    return CacheStore(ttls=dict(config.CACHE_TTLS), clock=clock)


@pytest.fixture
def service(client, cache):
    return DrugInformationService(client=client, cache=cache, now=lambda: FIXED_NOW)


@pytest.fixture
def analytics():
    return UsageAnalytics(window_size=100)


@pytest.fixture
def dispatcher(service, analytics):
    return ToolDispatcher(service=service, analytics=analytics)
