"""Exception types shared by the query layer and the tool dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .classifier import ErrorClassification


class OpenFDAMCPError(Exception):
    """Base class for errors raised by openfda-mcp."""


class ToolValidationError(OpenFDAMCPError, ValueError):
    """Raised when tool arguments are missing or malformed.

    Always raised before any outbound request is made, so the caller can fix
    the input and retry immediately.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        examples: list[Any] | None = None,
        guidance: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.examples = examples or []
        self.guidance = guidance
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"error_type": "validation_error", "message": self.message}
        if self.field:
            data["field"] = self.field
        if self.examples:
            data["examples"] = self.examples
        if self.guidance:
            data["guidance"] = self.guidance
        if self.details:
            data["details"] = self.details
        return data


class UnknownToolError(OpenFDAMCPError, LookupError):
    """Raised when a tools/call names a tool that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class UnknownMethodError(OpenFDAMCPError, LookupError):
    """Raised for a JSON-RPC method the server does not implement."""

    def __init__(self, method: str):
        super().__init__(f"Method not found: {method}")
        self.method = method


class UpstreamStatusError(OpenFDAMCPError):
    """Non-2xx response from the openFDA API."""

    def __init__(self, status: int, reason: str | None = None, url: str | None = None):
        super().__init__(f"HTTP {status}: {reason or 'upstream error'}")
        self.status = status
        self.reason = reason
        self.url = url


class ClassifiedError(OpenFDAMCPError):
    """An upstream failure that has been classified and will not be retried further."""

    def __init__(
        self,
        classification: ErrorClassification,
        endpoint: str | None = None,
        attempts: int = 1,
    ):
        super().__init__(classification.message)
        self.classification = classification
        self.endpoint = endpoint
        self.attempts = attempts

    @property
    def retry_recommended(self) -> bool:
        return self.classification.retryable

    def to_dict(self) -> dict[str, Any]:
        """User-facing error payload: category, message and remediation hints."""
        return {
            "error_type": self.classification.category.value,
            "message": self.classification.message,
            "status": self.classification.status,
            "suggestions": list(self.classification.suggestions),
            "retryRecommended": self.retry_recommended,
            "attempts": self.attempts,
        }
