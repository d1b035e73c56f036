"""
MCP Tool Definitions and Handlers

All MCP tools are registered and routed through this module.
"""

import json

from loguru import logger
from mcp.server import Server
from mcp.types import TextContent, Tool

from .catalog import MessageType
from .errors import ConsoleError
from .server import DEFAULT_SEARCH_LIMIT, MidasMCPServer

# Tools that need an open console session
CONNECTED_TOOLS = {"get_value", "set_value"}

_INDEX_PROPERTY = {
    "type": "integer",
    "minimum": 0,
    "description": "Channel/instance index (0-based) for multi-path endpoints",
}

TOOLS = [
    Tool(
        name="list_groups",
        description=(
            "List all Midas Pro Series control groups (e.g. VirtualMicInputs, VirtualMasters) "
            "with endpoint counts and message type breakdowns. Start here."
        ),
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="list_endpoints",
        description="List all endpoints in one control group with types and descriptions",
        inputSchema={
            "type": "object",
            "properties": {
                "group": {"type": "string", "description": "Control group name (e.g. VirtualMicInputs)"},
            },
            "required": ["group"],
        },
    ),
    Tool(
        name="search_endpoints",
        description=(
            "Search all endpoints by keyword. Matches endpoint names, descriptions, "
            "group names and message types (e.g. 'fader', 'mute', 'eq frequency')."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search keywords, all must match"},
                "group": {"type": "string", "description": "Limit search to one group"},
                "type": {
                    "type": "string",
                    "enum": [t.value for t in MessageType],
                    "description": "Filter by message type",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": f"Maximum results returned (default: {DEFAULT_SEARCH_LIMIT})",
                    "default": DEFAULT_SEARCH_LIMIT,
                },
            },
            "required": ["query"],
        },
    ),
    Tool(
        name="get_endpoint_info",
        description="Get OSC path, message type, argument type, indexing and usage for one endpoint",
        inputSchema={
            "type": "object",
            "properties": {
                "group": {"type": "string", "description": "Control group name"},
                "endpoint": {"type": "string", "description": "Endpoint name within the group"},
            },
            "required": ["group", "endpoint"],
        },
    ),
    Tool(
        name="build_osc_command",
        description="Construct the exact OSC address for a command, validating group, endpoint and index",
        inputSchema={
            "type": "object",
            "properties": {
                "group": {"type": "string", "description": "Control group name"},
                "endpoint": {"type": "string", "description": "Endpoint name"},
                "index": _INDEX_PROPERTY,
            },
            "required": ["group", "endpoint"],
        },
    ),
    Tool(
        name="connect",
        description="Connect to a Midas Pro Series console over OSC (required before get_value/set_value)",
        inputSchema={
            "type": "object",
            "properties": {
                "ip": {"type": "string", "description": "Console IP address (e.g. 192.168.1.100)"},
                "port": {
                    "type": "integer",
                    "description": "Console OSC port (default: 10023)",
                    "default": 10023,
                },
                "listen_port": {
                    "type": "integer",
                    "description": "Local port for responses (default: 10024)",
                    "default": 10024,
                },
            },
            "required": ["ip"],
        },
    ),
    Tool(
        name="disconnect",
        description="Disconnect from the console",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="connection_status",
        description="Report whether a console is connected, and which one",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="get_value",
        description="Read the current value of a parameter (works for meters too)",
        inputSchema={
            "type": "object",
            "properties": {
                "group": {"type": "string", "description": "Control group name"},
                "endpoint": {"type": "string", "description": "Endpoint name"},
                "index": _INDEX_PROPERTY,
                "timeout_ms": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "How long to wait for the reply (default: 2000)",
                },
            },
            "required": ["group", "endpoint"],
        },
    ),
    Tool(
        name="set_value",
        description=(
            "Set a parameter on the console. Floats are clamped to 0-1. "
            "DANGEROUS commands (reboot, reset) are blocked unless confirm is true."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "group": {"type": "string", "description": "Control group name"},
                "endpoint": {"type": "string", "description": "Endpoint name"},
                "value": {
                    "type": ["number", "string"],
                    "description": "Float 0-1 for faders/rotaries, 0 or 1 for switches, string for labels",
                },
                "index": _INDEX_PROPERTY,
                "confirm": {
                    "type": "boolean",
                    "description": "Explicit user confirmation for dangerous commands",
                    "default": False,
                },
            },
            "required": ["group", "endpoint", "value"],
        },
    ),
]


TOOL_NAMES = [t.name for t in TOOLS]


def _text(result: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(result, indent=2))]


async def dispatch(server: MidasMCPServer, name: str, arguments: dict) -> dict:
    """Route one tool call to its handler and return the result dict."""
    logger.info(f"Tool called: {name} with args: {arguments}")
    arguments = arguments or {}

    try:
        if name in CONNECTED_TOOLS and not server.client.is_connected:
            return {
                "status": "error",
                "message": "Not connected to any console",
                "suggestion": "Call connect first",
            }

        handler = getattr(server, name) if name in TOOL_NAMES else None
        if handler is None:
            return {
                "status": "error",
                "message": f"Unknown tool: {name}",
                "available_tools": TOOL_NAMES,
            }

        return await handler(**arguments)

    except ConsoleError as e:
        logger.warning(f"Tool {name} failed: {e}")
        error = {"status": "error", "message": str(e), "tool": name}
        if e.suggestion:
            error["suggestion"] = e.suggestion
        return error

    except Exception as e:
        logger.error(f"Tool {name} failed: {e}")
        return {"status": "error", "message": str(e), "tool": name}


def build_app(server: MidasMCPServer) -> Server:
    """
    Create the MCP app for a server instance.

    Args:
        server: Tool implementation bound to a catalog and client

    Returns:
        mcp Server ready to ``run()`` on a transport
    """
    app = Server("midas-mcp")

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        """Register available MCP tools."""
        return TOOLS

    @app.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Route tool calls to appropriate handlers."""
        return _text(await dispatch(server, name, arguments))

    return app
