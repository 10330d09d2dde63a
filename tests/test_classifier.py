"""Tests for upstream failure classification."""

import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest

from openfda_mcp.classifier import ErrorCategory, classify
from openfda_mcp.errors import UpstreamStatusError


@pytest.mark.parametrize(
    "status,category,retryable,base_delay",
    [
        (500, ErrorCategory.SERVER_ERROR, True, 30.0),
        (503, ErrorCategory.SERVER_ERROR, True, 30.0),
        (404, ErrorCategory.NOT_FOUND, False, None),
        (400, ErrorCategory.BAD_REQUEST, False, None),
        (429, ErrorCategory.RATE_LIMITED, True, 60.0),
        (403, ErrorCategory.UNKNOWN, False, None),
    ],
)
def test_classify_status(status, category, retryable, base_delay):
    classification = classify(status)
    assert classification.category is category
    assert classification.retryable is retryable
    assert classification.base_delay == base_delay
    assert classification.status == status


def test_classify_upstream_status_error():
    classification = classify(UpstreamStatusError(502, "Bad Gateway"))
    assert classification.category is ErrorCategory.SERVER_ERROR
    assert "HTTP 502" in classification.message


def test_classify_client_response_error():
    exc = aiohttp.ClientResponseError(MagicMock(), (), status=429, message="Too Many")
    assert classify(exc).category is ErrorCategory.RATE_LIMITED


@pytest.mark.parametrize(
    "exc",
    [
        asyncio.TimeoutError(),
        aiohttp.ClientConnectionError("refused"),
        aiohttp.ServerTimeoutError("timeout"),
        ConnectionRefusedError(),
    ],
)
def test_classify_network_errors(exc):
    classification = classify(exc)
    assert classification.category is ErrorCategory.NETWORK_ERROR
    assert classification.retryable is True
    assert classification.base_delay == 5.0


def test_classify_unexpected_exception_is_unknown():
    classification = classify(ValueError("boom"))
    assert classification.category is ErrorCategory.UNKNOWN
    assert classification.retryable is False


@pytest.mark.parametrize("category", list(ErrorCategory))
def test_every_category_has_actionable_suggestions(category):
    from openfda_mcp.classifier import build_classification

    suggestions = build_classification(category).suggestions
    assert 2 <= len(suggestions) <= 4
    assert all(isinstance(s, str) and s for s in suggestions)


def test_classification_to_dict():
    data = classify(429).to_dict()
    assert data["category"] == "rate_limited"
    assert data["retryable"] is True
    assert isinstance(data["suggestions"], list)
