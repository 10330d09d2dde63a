"""JSON-RPC 2.0 dispatcher for MCP requests.

Routes ``initialize``, ``ping``, ``tools/list`` and ``tools/call`` and turns
every outcome into a JSON-RPC response envelope. This is the single place
where arbitrary exceptions become ``-32603`` internal errors.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from . import config
from .errors import (
    ClassifiedError,
    ToolValidationError,
    UnknownMethodError,
    UnknownToolError,
)
from .mcp_tools_config import TOOL_NAMES, list_tools
from .models.mcp import RPCError, RPCRequest, RPCResponse
from .models.requests import (
    AnalyzeShortageTrendsRequest,
    BatchDrugAnalysisRequest,
    DrugLabelRequest,
    SearchAdverseEventsRequest,
    SearchDrugRecallsRequest,
    SearchDrugShortagesRequest,
)
from .monitoring import UsageAnalytics, get_usage_analytics
from .services.drug_service import DrugInformationService
from .validation import validation_error_from_pydantic

logger = logging.getLogger(__name__)

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

SERVER_INSTRUCTIONS = (
    "Drug information from the public openFDA API: shortages, recalls, "
    "product labels and FAERS adverse event reports."
)


@dataclass(frozen=True)
class ToolRoute:
    """Binds a tool name to its request model and service call."""

    request_model: type[BaseModel]
    handler: Callable[[DrugInformationService, Any], Awaitable[dict[str, Any]]]
    drugs: Callable[[Any], list[str]]


def _single_drug(request: Any) -> list[str]:
    return [request.drug_name]


def _identifier(request: Any) -> list[str]:
    return [request.drug_identifier]


TOOL_ROUTES: dict[str, ToolRoute] = {
    "search_drug_shortages": ToolRoute(
        SearchDrugShortagesRequest,
        lambda s, r: s.search_drug_shortages(r.drug_name, r.limit),
        _single_drug,
    ),
    "search_adverse_events": ToolRoute(
        SearchAdverseEventsRequest,
        lambda s, r: s.search_adverse_events(r.drug_name, r.limit),
        _single_drug,
    ),
    "search_serious_adverse_events": ToolRoute(
        SearchAdverseEventsRequest,
        lambda s, r: s.search_serious_adverse_events(r.drug_name, r.limit),
        _single_drug,
    ),
    "search_drug_recalls": ToolRoute(
        SearchDrugRecallsRequest,
        lambda s, r: s.search_drug_recalls(r.drug_name, r.limit),
        _single_drug,
    ),
    "get_drug_label_info": ToolRoute(
        DrugLabelRequest,
        lambda s, r: s.get_drug_label_info(r.drug_identifier, r.identifier_type),
        _identifier,
    ),
    "get_medication_profile": ToolRoute(
        DrugLabelRequest,
        lambda s, r: s.get_medication_profile(r.drug_identifier, r.identifier_type),
        _identifier,
    ),
    "analyze_drug_shortage_trends": ToolRoute(
        AnalyzeShortageTrendsRequest,
        lambda s, r: s.analyze_drug_shortage_trends(r.drug_name, r.months_back),
        _single_drug,
    ),
    "batch_drug_analysis": ToolRoute(
        BatchDrugAnalysisRequest,
        lambda s, r: s.batch_drug_analysis(r.drug_list, r.include_trends),
        lambda r: list(r.drug_list),
    ),
}

if set(TOOL_ROUTES) != TOOL_NAMES:
    raise RuntimeError("tool registry and routes are out of sync")


class ToolDispatcher:
    """Stateless request router; one instance serves every transport."""

    def __init__(
        self,
        service: DrugInformationService | None = None,
        analytics: UsageAnalytics | None = None,
    ):
        self._service = service
        self.analytics = analytics or get_usage_analytics()

    @property
    def service(self) -> DrugInformationService:
        if self._service is None:
            self._service = DrugInformationService()
        return self._service

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """
        Validate arguments and run one tool.

        Raises:
            UnknownToolError: ``name`` is not registered
            ToolValidationError: Arguments failed validation (no network call made)
            ClassifiedError: Upstream failure after retries
        """
        route = TOOL_ROUTES.get(name)
        if route is None:
            raise UnknownToolError(name)

        try:
            request = route.request_model.model_validate(arguments or {})
        except ValidationError as e:
            self.analytics.record_tool_call(name, success=False)
            raise validation_error_from_pydantic(e) from e

        drugs = route.drugs(request)
        start = time.perf_counter()
        try:
            result = await route.handler(self.service, request)
        except Exception:
            self.analytics.record_tool_call(
                name, drugs, time.perf_counter() - start, success=False
            )
            raise
        self.analytics.record_tool_call(name, drugs, time.perf_counter() - start)
        return result

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = (
            requested
            if requested in config.SUPPORTED_PROTOCOL_VERSIONS
            else config.PROTOCOL_VERSION
        )
        client = params.get("clientInfo") or {}
        logger.info(
            f"Initialize from {client.get('name', 'unknown client')} "
            f"(requested protocol {requested}, using {version})"
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": config.SERVER_NAME, "version": config.VERSION},
            "instructions": SERVER_INSTRUCTIONS,
        }

    async def _tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise ToolValidationError(
                "tools/call requires a tool name in params.name",
                field="name",
                examples=sorted(TOOL_NAMES)[:3],
                guidance="Call tools/list to see the available tools",
            )
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise ToolValidationError(
                "params.arguments must be an object",
                field="arguments",
                guidance="Pass tool arguments as a JSON object",
            )

        result = await self.call_tool(name, arguments)
        return {"content": [{"type": "text", "text": json.dumps(result, indent=2)}]}

    async def _route(self, request: RPCRequest) -> Any:
        params = request.params if isinstance(request.params, dict) else {}
        if request.params is not None and not isinstance(request.params, dict):
            raise ToolValidationError(
                "params must be an object", field="params", guidance="Send params as a JSON object"
            )

        if request.method == "initialize":
            return self._initialize(params)
        if request.method == "ping":
            return {}
        if request.method == "tools/list":
            return {"tools": list_tools()}
        if request.method == "tools/call":
            return await self._tools_call(params)
        raise UnknownMethodError(request.method)

    @staticmethod
    def _error(request_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
        return RPCResponse(
            id=request_id, error=RPCError(code=code, message=message, data=data)
        ).to_wire()

    async def dispatch(self, message: Any) -> dict[str, Any] | None:
        """
        Handle one decoded JSON-RPC message.

        Returns:
            The response envelope, or None for a notification
        """
        if not isinstance(message, dict):
            return self._error(None, INVALID_REQUEST, "Invalid Request: expected a JSON object")

        request_id = message.get("id")
        if isinstance(request_id, (dict, list, bool)):
            request_id = None
        is_notification = "id" not in message

        try:
            request = RPCRequest.model_validate(message)
        except ValidationError:
            if is_notification:
                return None
            return self._error(
                request_id,
                INVALID_REQUEST,
                "Invalid Request: expected jsonrpc '2.0', a method name and optional id/params",
            )

        try:
            result = await self._route(request)
        except UnknownToolError as e:
            response = self._error(
                request_id,
                METHOD_NOT_FOUND,
                str(e),
                {"available_tools": sorted(TOOL_NAMES)},
            )
        except UnknownMethodError:
            response = self._error(
                request_id, METHOD_NOT_FOUND, f"Method not found: {request.method}"
            )
        except ToolValidationError as e:
            response = self._error(
                request_id, INVALID_PARAMS, f"Invalid params: {e.message}", e.to_dict()
            )
        except ClassifiedError as e:
            response = self._error(request_id, INTERNAL_ERROR, str(e), e.to_dict())
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method}: {e}")
            response = self._error(request_id, INTERNAL_ERROR, "Internal error")
        else:
            response = RPCResponse(id=request_id, result=result).to_wire()

        if is_notification:
            return None
        return response

    async def dispatch_raw(self, body: bytes | str) -> dict[str, Any] | list[Any] | None:
        """
        Decode a request body and dispatch it, handling JSON-RPC batches.

        Returns:
            A response, a list of responses for a batch, or None when nothing
            needs to be sent back
        """
        try:
            message = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            return self._error(None, PARSE_ERROR, "Parse error: request body is not valid JSON")

        if isinstance(message, list):
            if not message:
                return self._error(None, INVALID_REQUEST, "Invalid Request: empty batch")
            responses = [await self.dispatch(item) for item in message]
            responses = [r for r in responses if r is not None]
            return responses or None

        return await self.dispatch(message)


# Global dispatcher instance
_dispatcher: ToolDispatcher | None = None


def get_dispatcher() -> ToolDispatcher:
    """Get or create the global dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = ToolDispatcher()
    return _dispatcher
