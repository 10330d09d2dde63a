"""Tests for the STDIO transport handlers."""

import json
from unittest.mock import patch

import pytest

from openfda_mcp import mcp_stdio_server
from openfda_mcp.mcp_tools_config import TOOL_NAMES

from .conftest import payload


@pytest.fixture
def stdio_dispatcher(dispatcher):
    with patch.object(mcp_stdio_server, "_dispatcher", dispatcher):
        yield dispatcher


@pytest.mark.asyncio
async def test_list_tools_matches_registry():
    tools = await mcp_stdio_server.handle_list_tools()
    assert {tool.name for tool in tools} == TOOL_NAMES
    assert all(tool.inputSchema["type"] == "object" for tool in tools)


@pytest.mark.asyncio
async def test_call_tool_returns_json_text(stdio_dispatcher, transport):
    transport.add('"aspirin"', payload({"generic_name": "Aspirin"}))

    content = await mcp_stdio_server.handle_call_tool("search_drug_shortages", {"drug_name": "aspirin"})

    assert len(content) == 1
    result = json.loads(content[0].text)
    assert result["status"] == "success"


@pytest.mark.asyncio
async def test_validation_error_returned_as_error_document(stdio_dispatcher, transport):
    content = await mcp_stdio_server.handle_call_tool("search_drug_shortages", {"drug_name": ""})

    result = json.loads(content[0].text)
    assert result["tool"] == "search_drug_shortages"
    assert result["error"]["error_type"] == "validation_error"
    assert result["error"]["field"] == "drug_name"
    assert transport.calls == []


@pytest.mark.asyncio
async def test_upstream_error_returned_with_suggestions(stdio_dispatcher, transport):
    transport.add('product_description:"aspirin"', 400)

    content = await mcp_stdio_server.handle_call_tool("search_drug_recalls", {"drug_name": "aspirin"})

    result = json.loads(content[0].text)
    assert result["error"]["error_type"] == "bad_request"
    assert result["error"]["retryRecommended"] is False
    assert result["error"]["suggestions"]


@pytest.mark.asyncio
async def test_unknown_tool(stdio_dispatcher):
    content = await mcp_stdio_server.handle_call_tool("unknown_tool", {})
    result = json.loads(content[0].text)
    assert result["error"]["message"] == "Unknown tool: unknown_tool"
