"""Failure classification for outbound openFDA calls.

Maps an HTTP status or a transport exception to an ``ErrorClassification``
that decides retry eligibility, the base backoff delay and the remediation
hints shown to the user.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import aiohttp

from . import config
from .errors import UpstreamStatusError


class ErrorCategory(str, Enum):
    """Failure taxonomy for upstream calls."""

    SERVER_ERROR = "server_error"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorClassification:
    """Classification of one failed call. Never persisted."""

    category: ErrorCategory
    retryable: bool
    base_delay: float | None
    suggestions: tuple[str, ...] = field(default_factory=tuple)
    status: int | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "retryable": self.retryable,
            "base_delay": self.base_delay,
            "suggestions": list(self.suggestions),
            "status": self.status,
            "message": self.message,
        }


SUGGESTIONS: dict[ErrorCategory, tuple[str, ...]] = {
    ErrorCategory.SERVER_ERROR: (
        "The FDA database is temporarily unavailable; try again in a few minutes",
        "Retry the same query later; upstream outages are usually short",
        "Check https://open.fda.gov/apis/status/ for service announcements",
    ),
    ErrorCategory.NOT_FOUND: (
        "Try the generic name instead of the brand name (e.g. 'acetaminophen' for 'Tylenol')",
        "Check the spelling of the medication name",
        "Use a broader term (e.g. 'insulin' instead of 'insulin glargine 100 units/mL')",
    ),
    ErrorCategory.BAD_REQUEST: (
        "Remove special characters such as quotes, colons or brackets from the drug name",
        "Try the generic name instead of the brand name",
        "Use a simple medication name without dosage or strength",
    ),
    ErrorCategory.RATE_LIMITED: (
        "Too many requests were sent to the FDA API; wait a minute before retrying",
        "Configure OPENFDA_API_KEY to raise the upstream rate limit",
        "Batch several drugs into one batch_drug_analysis call instead of many single calls",
    ),
    ErrorCategory.NETWORK_ERROR: (
        "The FDA API could not be reached; check network connectivity",
        "Retry the request; transient timeouts usually resolve on their own",
        "Reduce the result limit to shorten response time",
    ),
    ErrorCategory.UNKNOWN: (
        "Retry the request with a simpler query",
        "Try the generic name instead of the brand name",
        "Contact the server operator if the problem persists",
    ),
}

_MESSAGES = {
    ErrorCategory.SERVER_ERROR: "FDA API server error",
    ErrorCategory.NOT_FOUND: "No matching records found in the FDA database",
    ErrorCategory.BAD_REQUEST: "The FDA API rejected the query as malformed",
    ErrorCategory.RATE_LIMITED: "FDA API rate limit exceeded",
    ErrorCategory.NETWORK_ERROR: "Could not reach the FDA API",
    ErrorCategory.UNKNOWN: "Unexpected error while querying the FDA API",
}

_RETRYABLE = {
    ErrorCategory.SERVER_ERROR,
    ErrorCategory.RATE_LIMITED,
    ErrorCategory.NETWORK_ERROR,
}

_NETWORK_EXCEPTIONS = (
    asyncio.TimeoutError,
    TimeoutError,
    aiohttp.ServerTimeoutError,
    aiohttp.ClientConnectionError,
    ConnectionError,
)


def _category_for_status(status: int) -> ErrorCategory:
    if status >= 500:
        return ErrorCategory.SERVER_ERROR
    if status == 404:
        return ErrorCategory.NOT_FOUND
    if status == 400:
        return ErrorCategory.BAD_REQUEST
    if status == 429:
        return ErrorCategory.RATE_LIMITED
    return ErrorCategory.UNKNOWN


def build_classification(
    category: ErrorCategory, status: int | None = None, detail: str | None = None
) -> ErrorClassification:
    """Assemble a classification for ``category`` using the configured delays."""
    retryable = category in _RETRYABLE
    message = _MESSAGES[category]
    if status is not None:
        message = f"{message} (HTTP {status})"
    if detail:
        message = f"{message}: {detail}"
    return ErrorClassification(
        category=category,
        retryable=retryable,
        base_delay=config.RETRY_BASE_DELAYS.get(category.value) if retryable else None,
        suggestions=SUGGESTIONS[category],
        status=status,
        message=message,
    )


def classify(outcome: int | BaseException) -> ErrorClassification:
    """Classify an HTTP status code or an exception raised by a call.

    Args:
        outcome: HTTP status, ``UpstreamStatusError``,
            ``aiohttp.ClientResponseError`` or any other exception

    Returns:
        The matching ErrorClassification
    """
    if isinstance(outcome, bool):
        return build_classification(ErrorCategory.UNKNOWN)

    if isinstance(outcome, int):
        return build_classification(_category_for_status(outcome), status=outcome)

    if isinstance(outcome, UpstreamStatusError):
        return build_classification(
            _category_for_status(outcome.status), status=outcome.status
        )

    # ClientResponseError must be checked before the connection errors
    if isinstance(outcome, aiohttp.ClientResponseError):
        return build_classification(
            _category_for_status(outcome.status), status=outcome.status
        )

    if isinstance(outcome, _NETWORK_EXCEPTIONS):
        detail = type(outcome).__name__
        return build_classification(ErrorCategory.NETWORK_ERROR, detail=detail)

    return build_classification(ErrorCategory.UNKNOWN, detail=type(outcome).__name__)
