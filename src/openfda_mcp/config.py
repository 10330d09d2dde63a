"""Simple configuration for openfda-mcp."""

import os
import warnings

from . import __version__


def _optional_seconds(name: str, default: str) -> float | None:
    """Read a TTL in seconds; 'none', 'off' or a non-positive value disables caching."""
    raw = os.getenv(name, default).strip().lower()
    if raw in ("", "none", "off", "never"):
        return None
    value = float(raw)
    return value if value > 0 else None


# Server identity
SERVER_NAME = "openfda-mcp"
VERSION = __version__
PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

# Upstream configuration
OPENFDA_BASE_URL = os.getenv("OPENFDA_BASE_URL", "https://api.fda.gov").rstrip("/")
OPENFDA_API_KEY = os.getenv("OPENFDA_API_KEY") or None
USER_AGENT = f"{SERVER_NAME}/{VERSION}"

ENDPOINTS = {
    "label": f"{OPENFDA_BASE_URL}/drug/label.json",
    "shortages": f"{OPENFDA_BASE_URL}/drug/shortages.json",
    "enforcement": f"{OPENFDA_BASE_URL}/drug/enforcement.json",
    "event": f"{OPENFDA_BASE_URL}/drug/event.json",
}

# HTTP configuration
HTTP_TIMEOUT = float(os.getenv("OPENFDA_HTTP_TIMEOUT", "15.0"))
HEALTH_CHECK_TIMEOUT = float(os.getenv("OPENFDA_HEALTH_CHECK_TIMEOUT", "5.0"))

# Retry configuration
MAX_RETRIES = int(os.getenv("OPENFDA_MAX_RETRIES", "2"))
if not 0 <= MAX_RETRIES <= 5:
    warnings.warn(
        f"Max retries {MAX_RETRIES} out of range (0-5), using 2", stacklevel=2
    )
    MAX_RETRIES = 2
RETRY_BACKOFF_MULTIPLIER = float(os.getenv("OPENFDA_RETRY_BACKOFF_MULTIPLIER", "1.5"))
RETRY_MAX_DELAY = float(os.getenv("OPENFDA_RETRY_MAX_DELAY", "120.0"))
RETRY_BASE_DELAYS = {
    "server_error": float(os.getenv("OPENFDA_RETRY_DELAY_SERVER_ERROR", "30.0")),
    "rate_limited": float(os.getenv("OPENFDA_RETRY_DELAY_RATE_LIMITED", "60.0")),
    "network_error": float(os.getenv("OPENFDA_RETRY_DELAY_NETWORK_ERROR", "5.0")),
}

# Cache configuration (seconds; None means the category is never cached)
CACHE_TTLS: dict[str, float | None] = {
    "labels": _optional_seconds("OPENFDA_CACHE_TTL_LABELS", "86400"),  # 24 hours
    "shortages": _optional_seconds("OPENFDA_CACHE_TTL_SHORTAGES", "1800"),  # 30 minutes
    "adverse_events": _optional_seconds("OPENFDA_CACHE_TTL_ADVERSE_EVENTS", "3600"),
    "recalls": None,
    "serious_adverse_events": None,
}
CACHE_SWEEP_ENABLED = os.getenv("OPENFDA_CACHE_SWEEP_ENABLED", "true").lower() == "true"
CACHE_SWEEP_INTERVAL = float(os.getenv("OPENFDA_CACHE_SWEEP_INTERVAL", "600"))

# Relevance scoring weights for shortage ranking
SCORING_WEIGHTS = {
    "exact_match": float(os.getenv("OPENFDA_SCORE_EXACT", "100")),
    "substring_match": float(os.getenv("OPENFDA_SCORE_SUBSTRING", "60")),
    "reverse_containment": float(os.getenv("OPENFDA_SCORE_REVERSE", "40")),
    "active_status": float(os.getenv("OPENFDA_SCORE_ACTIVE", "20")),
    "reason_present": float(os.getenv("OPENFDA_SCORE_REASON", "10")),
    "availability_present": float(os.getenv("OPENFDA_SCORE_AVAILABILITY", "5")),
}
SHORTAGE_CANDIDATE_POOL = int(os.getenv("OPENFDA_SHORTAGE_CANDIDATE_POOL", "25"))
TREND_FETCH_LIMIT = 100

# Tool argument bounds
DEFAULT_LIMIT = 10
DEFAULT_ADVERSE_EVENT_LIMIT = 5
MIN_LIMIT = 1
MAX_LIMIT = 50
MAX_BATCH_SIZE = 25
DEFAULT_MONTHS_BACK = 12
MAX_MONTHS_BACK = 60
MAX_DRUG_NAME_LENGTH = 200

# Batch processing
BATCH_CONCURRENCY = int(os.getenv("OPENFDA_BATCH_CONCURRENCY", "3"))
if not 1 <= BATCH_CONCURRENCY <= 10:
    warnings.warn(
        f"Batch concurrency {BATCH_CONCURRENCY} out of range (1-10), using 3",
        stacklevel=2,
    )
    BATCH_CONCURRENCY = 3

# Server configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("OPENFDA_PORT", os.getenv("PORT", "3000")))
if not 1024 <= PORT <= 65535:
    warnings.warn(f"Port {PORT} out of range (1024-65535), using 3000", stacklevel=2)
    PORT = 3000

# Rate limiting (disabled automatically under CI)
RATE_LIMIT = os.getenv("OPENFDA_RATE_LIMIT", "100/minute")
RATE_LIMIT_ENABLED = (
    os.getenv("OPENFDA_RATE_LIMIT_ENABLED", "true").lower() == "true"
    and not os.getenv("CI")
)

# SSE keep-alive
SSE_PING_INTERVAL = float(os.getenv("OPENFDA_SSE_PING_INTERVAL", "30"))

# Usage analytics
USAGE_WINDOW_SIZE = int(os.getenv("OPENFDA_USAGE_WINDOW_SIZE", "1000"))

# Logging
LOG_LEVEL = os.getenv("OPENFDA_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("OPENFDA_LOG_FORMAT", "console").lower()  # console | json
