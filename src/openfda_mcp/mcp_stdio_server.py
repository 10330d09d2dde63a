"""STDIO transport built on the MCP SDK low-level server.

Serves the same tool registry and operations as the HTTP endpoint. Logging
goes to stderr; stdout carries protocol frames only.
"""

import json
import logging

from mcp import types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server

from . import config
from .dispatcher import ToolDispatcher, get_dispatcher
from .errors import ClassifiedError, OpenFDAMCPError
from .logging_config import configure_logging
from .mcp_tools_config import TOOL_DEFINITIONS
from .openfda_client import close_openfda_client

logger = logging.getLogger(__name__)

server = Server(config.SERVER_NAME)

_dispatcher: ToolDispatcher | None = None


def _get_dispatcher() -> ToolDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = get_dispatcher()
    return _dispatcher


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available tools."""
    return [
        types.Tool(
            name=tool.name,
            description=tool.description,
            inputSchema=tool.input_schema,
        )
        for tool in TOOL_DEFINITIONS
    ]


@server.call_tool()
async def handle_call_tool(name: str, arguments: dict | None) -> list[types.TextContent]:
    """Handle tool calls from clients.

    Validation and upstream failures are returned as a JSON error document
    with remediation hints; anything else propagates to the SDK.
    """
    try:
        result = await _get_dispatcher().call_tool(name, arguments)
    except ClassifiedError as e:
        logger.warning(f"Tool {name} failed upstream: {e}")
        result = {"error": e.to_dict(), "tool": name}
    except OpenFDAMCPError as e:
        logger.info(f"Tool {name} rejected: {e}")
        error = e.to_dict() if hasattr(e, "to_dict") else {"message": str(e)}
        result = {"error": error, "tool": name}
    return [types.TextContent(type="text", text=json.dumps(result, indent=2))]


async def run_stdio_server() -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    configure_logging()
    logger.info(f"Starting {config.SERVER_NAME} {config.VERSION} on STDIO")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=config.SERVER_NAME,
                    server_version=config.VERSION,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )
    finally:
        await close_openfda_client()
