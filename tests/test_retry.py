"""Tests for the retry controller."""

import asyncio

import pytest

from openfda_mcp.classifier import ErrorCategory
from openfda_mcp.errors import ClassifiedError, UpstreamStatusError
from openfda_mcp.retry import RetryController

from .conftest import RecordingSleep, payload

URL = "https://api.fda.gov/drug/shortages.json"


class ScriptedFetch:
    """Fetch that plays back a list of outcomes, one per attempt."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, endpoint, params):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, int):
            raise UpstreamStatusError(outcome, "error", endpoint)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_server_error_retried_until_exhausted():
    fetch = ScriptedFetch(503)
    sleeps = RecordingSleep()
    controller = RetryController(fetch, max_retries=2, sleep=sleeps)

    with pytest.raises(ClassifiedError) as exc_info:
        await controller.execute(URL, {"search": '"aspirin"'})

    assert fetch.calls == 3
    assert sleeps.delays == [30.0, 45.0]
    assert exc_info.value.attempts == 3
    assert exc_info.value.classification.category is ErrorCategory.SERVER_ERROR
    assert exc_info.value.retry_recommended is True


@pytest.mark.asyncio
async def test_bad_request_not_retried():
    fetch = ScriptedFetch(400)
    sleeps = RecordingSleep()
    controller = RetryController(fetch, max_retries=3, sleep=sleeps)

    with pytest.raises(ClassifiedError) as exc_info:
        await controller.execute(URL, {"search": "bad:query"})

    assert fetch.calls == 1
    assert sleeps.delays == []
    assert exc_info.value.classification.category is ErrorCategory.BAD_REQUEST
    assert exc_info.value.retry_recommended is False
    assert exc_info.value.attempts == 1


@pytest.mark.asyncio
async def test_not_found_becomes_empty_result():
    fetch = ScriptedFetch(404)
    controller = RetryController(fetch, max_retries=3, sleep=RecordingSleep())

    result = await controller.execute(URL, {"search": '"nothing"'})

    assert fetch.calls == 1
    assert result == {"results": [], "meta": {"results": {"total": 0}}}


@pytest.mark.asyncio
async def test_rate_limited_then_success():
    body = payload({"generic_name": "aspirin"})
    fetch = ScriptedFetch(429, body)
    sleeps = RecordingSleep()
    controller = RetryController(fetch, max_retries=2, sleep=sleeps)

    result = await controller.execute(URL, {"search": '"aspirin"'})

    assert result == body
    assert fetch.calls == 2
    assert sleeps.delays == [60.0]


@pytest.mark.asyncio
async def test_network_error_uses_short_backoff():
    fetch = ScriptedFetch(asyncio.TimeoutError(), payload())
    sleeps = RecordingSleep()
    controller = RetryController(fetch, max_retries=2, sleep=sleeps)

    await controller.execute(URL, {"search": '"aspirin"'})

    assert sleeps.delays == [5.0]


@pytest.mark.asyncio
async def test_delay_capped_by_max_delay():
    fetch = ScriptedFetch(429)
    sleeps = RecordingSleep()
    controller = RetryController(fetch, max_retries=2, max_delay=50, sleep=sleeps)

    with pytest.raises(ClassifiedError):
        await controller.execute(URL, {"search": '"aspirin"'})

    assert sleeps.delays == [50, 50]


@pytest.mark.asyncio
async def test_max_retries_override_zero():
    fetch = ScriptedFetch(500)
    controller = RetryController(fetch, max_retries=4, sleep=RecordingSleep())

    with pytest.raises(ClassifiedError) as exc_info:
        await controller.execute(URL, {"search": '"aspirin"'}, max_retries=0)

    assert fetch.calls == 1
    assert exc_info.value.attempts == 1


def test_compute_delay():
    controller = RetryController(ScriptedFetch(payload()), backoff_multiplier=1.5, max_delay=120)
    assert controller.compute_delay(30, 1) == 30
    assert controller.compute_delay(30, 2) == 45
    assert controller.compute_delay(30, 3) == 67.5
    assert controller.compute_delay(60, 3) == 120
    assert controller.compute_delay(None, 1) == 0.0
