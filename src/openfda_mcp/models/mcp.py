"""
MCP (Model Context Protocol) and JSON-RPC 2.0 envelope models.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import strict_config


class ToolDefinition(BaseModel):
    """
    A tool advertised through ``tools/list``.

    Example:
        ```python
        tool = ToolDefinition(
            name="search_drug_shortages",
            description="Search current drug shortages",
            inputSchema={
                "type": "object",
                "properties": {"drug_name": {"type": "string"}},
                "required": ["drug_name"],
            },
        )
        ```
    """

    name: str = Field(..., description="Unique tool identifier")
    description: str = Field(..., description="Human-readable tool description")
    input_schema: dict[str, Any] = Field(
        ..., alias="inputSchema", description="JSON Schema for tool inputs"
    )

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class RPCRequest(BaseModel):
    """A JSON-RPC 2.0 request or notification."""

    jsonrpc: Literal["2.0"]
    method: str = Field(..., min_length=1)
    id: str | int | float | None = None
    params: dict[str, Any] | list[Any] | None = None

    model_config = strict_config


class RPCError(BaseModel):
    code: int
    message: str
    data: Any | None = None


class RPCResponse(BaseModel):
    """A JSON-RPC 2.0 response carrying exactly one of ``result`` or ``error``."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: str | int | float | None = None
    result: Any | None = None
    error: RPCError | None = None

    def to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            body["error"] = self.error.model_dump(exclude_none=True)
        else:
            body["result"] = self.result
        return body
