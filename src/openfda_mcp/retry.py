"""Retry controller for single outbound openFDA calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from . import config
from .classifier import ErrorCategory, classify
from .errors import ClassifiedError

logger = structlog.get_logger(__name__)

Fetch = Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]]
Sleep = Callable[[float], Awaitable[Any]]


def empty_result() -> dict[str, Any]:
    """Payload used in place of an upstream 404 ("no matching records")."""
    return {"results": [], "meta": {"results": {"total": 0}}}


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ClassifiedError) and exc.classification.retryable


class RetryController:
    """Execute one upstream call with classification-driven retries.

    ``fetch`` performs a single attempt and raises on failure. Failures are
    classified; retryable ones are retried up to ``max_retries`` times with
    ``base_delay * multiplier ** (attempt - 1)`` seconds between attempts.
    A 404 is converted to an empty result instead of an error.
    """

    def __init__(
        self,
        fetch: Fetch,
        max_retries: int = config.MAX_RETRIES,
        backoff_multiplier: float = config.RETRY_BACKOFF_MULTIPLIER,
        max_delay: float = config.RETRY_MAX_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        self._fetch = fetch
        self.max_retries = max_retries
        self.backoff_multiplier = backoff_multiplier
        self.max_delay = max_delay
        self._sleep = sleep

    def compute_delay(self, base_delay: float | None, attempt: int) -> float:
        """Backoff before the attempt following ``attempt`` (1-based)."""
        if not base_delay:
            return 0.0
        delay = base_delay * self.backoff_multiplier ** (attempt - 1)
        return min(delay, self.max_delay)

    def _wait(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if not isinstance(exc, ClassifiedError):
            return 0.0
        return self.compute_delay(
            exc.classification.base_delay, retry_state.attempt_number
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        category = exc.classification.category.value if isinstance(exc, ClassifiedError) else None
        logger.warning(
            "upstream_retry",
            category=category,
            attempt=retry_state.attempt_number,
            delay=retry_state.next_action.sleep if retry_state.next_action else None,
        )

    async def _attempt(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self._fetch(endpoint, params)
        except ClassifiedError:
            raise
        except Exception as e:
            classification = classify(e)
            if classification.category is ErrorCategory.NOT_FOUND:
                logger.debug("upstream_not_found", endpoint=endpoint, search=params.get("search"))
                return empty_result()
            raise ClassifiedError(classification, endpoint=endpoint) from e

    async def execute(
        self,
        endpoint: str,
        params: dict[str, Any],
        max_retries: int | None = None,
    ) -> dict[str, Any]:
        """Run the call, retrying transient failures.

        Args:
            endpoint: Upstream URL
            params: Query parameters (``search``, ``limit``, ...)
            max_retries: Override for the configured retry count

        Returns:
            The decoded JSON payload, or an empty result for a 404

        Raises:
            ClassifiedError: Non-retryable failure, or retries exhausted
        """
        retries = self.max_retries if max_retries is None else max_retries
        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            retry=retry_if_exception(_is_retryable),
            wait=self._wait,
            sleep=self._sleep,
            before_sleep=self._before_sleep,
            reraise=True,
        )

        attempt_number = 0
        try:
            async for attempt in retrying:
                attempt_number = attempt.retry_state.attempt_number
                with attempt:
                    payload = await self._attempt(endpoint, params)
        except ClassifiedError as e:
            e.attempts = attempt_number
            logger.warning(
                "upstream_failed",
                endpoint=endpoint,
                search=params.get("search"),
                category=e.classification.category.value,
                attempts=attempt_number,
            )
            raise

        return payload
