"""
Base models and shared configuration for all model modules.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Request models reject unknown arguments
strict_config = ConfigDict(extra="forbid")


class ErrorResponse(BaseModel):
    """
    Standard error body for non-JSON-RPC HTTP errors.

    Example:
        ```json
        {
            "error": "rate_limit_exceeded",
            "detail": "100 per 1 minute",
            "status_code": 429,
            "suggestions": ["Wait a minute before retrying"]
        }
        ```
    """

    error: str = Field(..., description="Error type/category")
    detail: str | None = Field(None, description="Detailed error message")
    status_code: int = Field(500, description="HTTP status code", ge=400, le=599)
    suggestions: list[str] | None = Field(
        None, description="Actionable remediation hints"
    )

    model_config = strict_config
