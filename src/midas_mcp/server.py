"""
Midas MCP Server Implementation

Tool behaviour over the endpoint catalog and the console client. Every
method returns a JSON-serializable dict with a ``status`` field.
"""

from typing import Optional, Union

from loguru import logger

from .catalog import EndpointCatalog, MessageType
from .client import ConsoleClient
from .config import DEFAULT_LISTEN_PORT, DEFAULT_PORT, DEFAULT_QUERY_TIMEOUT_MS
from .errors import InvalidEndpointError
from .utils import path_template, usage_hints

DEFAULT_SEARCH_LIMIT = 50


class MidasMCPServer:
    """
    MCP server for Midas Pro Series consoles.

    Knowledge tools (no connection needed):
    - list_groups() → Control groups with endpoint counts
    - list_endpoints(group) → Endpoints in one group
    - search_endpoints(query) → Keyword search across all endpoints
    - get_endpoint_info(group, endpoint) → Full endpoint details
    - build_osc_command(group, endpoint, index) → Ready-to-send address

    Control tools:
    - connect(ip) → Open OSC session
    - disconnect() → Close OSC session
    - connection_status() → Current session
    - get_value(group, endpoint) → Query console (needs connection)
    - set_value(group, endpoint, value) → Send to console (needs connection)

    The catalog and client are passed in, so independent servers can
    exist side by side (e.g. in tests).
    """

    def __init__(
        self,
        catalog: EndpointCatalog,
        client: ConsoleClient,
        query_timeout_ms: int = DEFAULT_QUERY_TIMEOUT_MS,
    ):
        self.catalog = catalog
        self.client = client
        self.query_timeout_ms = query_timeout_ms

    async def list_groups(self):
        """
        List all control groups with database statistics.

        Returns:
            {
                "status": "ok",
                "stats": {"total_groups": 13, "total_endpoints": 80, ...},
                "groups": [
                    {"name": "VirtualMicInputs", "endpoint_count": 25,
                     "message_types": {"enPPCFaderMessage": 1, ...}}
                ]
            }
        """
        groups = self.catalog.list_groups()
        stats = self.catalog.get_stats()
        return {
            "status": "ok",
            "stats": stats.model_dump(mode="json"),
            "groups": [g.model_dump(mode="json") for g in groups],
        }

    async def list_endpoints(self, group: str):
        entries = self.catalog.list_endpoints(group)
        if entries is None:
            return {
                "status": "error",
                "message": f"Group '{group}' not found",
                "suggestion": "Use list_groups to see available groups",
            }

        return {
            "status": "ok",
            "group": group,
            "count": len(entries),
            "endpoints": [
                {
                    "endpoint": e.endpoint,
                    "type": e.spec.type.short_name,
                    "argument_type": e.spec.argument_type.value if e.spec.argument_type else None,
                    "read_only": e.spec.read_only,
                    "multi_path": e.spec.multi_path,
                    "description": e.spec.description,
                }
                for e in entries
            ],
        }

    async def search_endpoints(
        self,
        query: str,
        group: Optional[str] = None,
        type: Optional[str] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        """
        Keyword search across all endpoints.

        Returns:
            {
                "status": "ok",
                "query": "fader",
                "total": 12,
                "truncated": false,
                "results": [
                    {"group": "...", "endpoint": "...", "osc_path": "/.../<index>",
                     "argument_type": "float", "read_only": false, "description": "..."}
                ]
            }
        """
        message_type = MessageType(type) if type else None
        results = self.catalog.search(query, group=group, message_type=message_type)

        shown = results[:limit]
        return {
            "status": "ok",
            "query": query,
            "total": len(results),
            "truncated": len(results) > len(shown),
            "results": [
                {
                    "group": r.group,
                    "endpoint": r.endpoint,
                    "osc_path": path_template(r.osc_path, r.spec),
                    "argument_type": r.spec.argument_type.value if r.spec.argument_type else None,
                    "read_only": r.spec.read_only,
                    "description": r.spec.description,
                }
                for r in shown
            ],
        }

    async def get_endpoint_info(self, group: str, endpoint: str):
        spec = self.catalog.get_endpoint_info(group, endpoint)
        if spec is None:
            raise InvalidEndpointError(group, endpoint)

        info = {
            "status": "ok",
            "group": group,
            "endpoint": endpoint,
            "osc_path": path_template(self.catalog.build_path(group, endpoint), spec),
            "message_type": spec.type.value,
            "argument_type": spec.argument_type.value if spec.argument_type else None,
            "read_only": spec.read_only,
            "multi_path": spec.multi_path,
            "description": spec.description,
            "usage": usage_hints(spec),
        }
        if spec.is_absolute is not None:
            info["absolute"] = spec.is_absolute
        return info

    async def build_osc_command(self, group: str, endpoint: str, index: Optional[int] = None):
        """
        Construct the complete OSC address for a command.

        Unlike the raw catalog lookup, a multi-path endpoint without an
        index is rejected here.
        """
        spec = self.catalog.get_endpoint_info(group, endpoint)
        if spec is None:
            raise InvalidEndpointError(group, endpoint)

        if spec.multi_path and index is None:
            return {
                "status": "error",
                "message": f"{group}/{endpoint} controls multiple instances and needs an index",
                "suggestion": "Add a 0-based index parameter",
            }

        path = self.catalog.build_path(group, endpoint, index)
        result = {
            "status": "ok",
            "osc_path": path,
            "get": f"Send {path} with no arguments",
        }
        if spec.read_only:
            result["set"] = None
            result["note"] = "Endpoint is read-only (no SET operation)"
        else:
            result["set"] = f"Send {path} with one {spec.argument_type.value} argument"
        return result

    async def connect(self, ip: str, port: int = DEFAULT_PORT, listen_port: int = DEFAULT_LISTEN_PORT):
        """
        Connect to a console, replacing any current session.

        Returns:
            {
                "status": "connected",
                "console": {"ip": "192.168.1.100", "port": 10023, "listen_port": 10024}
            }
        """
        config = await self.client.connect(ip, port, listen_port)
        return {"status": "connected", "console": config.model_dump()}

    async def disconnect(self):
        if not self.client.is_connected:
            return {
                "status": "not_connected",
                "message": "No active connection to close",
            }

        console = self.client.connection_info.model_dump()
        await self.client.disconnect()
        return {"status": "disconnected", "console": console}

    async def connection_status(self):
        if not self.client.is_connected:
            return {
                "status": "not_connected",
                "message": "Not connected to any console",
                "suggestion": "Call connect first",
            }
        return {"status": "connected", "console": self.client.connection_info.model_dump()}

    async def get_value(
        self,
        group: str,
        endpoint: str,
        index: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ):
        """
        Read a parameter from the console.

        Returns:
            {"status": "ok", "osc_path": "...", "args": [0.75], "received_at": "..."}
            or {"status": "no_response", ...} when the console did not reply in time
        """
        timeout_ms = timeout_ms or self.query_timeout_ms
        response = await self.client.get_value(group, endpoint, index, timeout_ms)
        path = self.catalog.build_path(group, endpoint, index)

        if response is None:
            return {
                "status": "no_response",
                "osc_path": path,
                "message": f"No response received for {path} within {timeout_ms}ms",
                "suggestion": "The console may not support this query, or the listen port may be misconfigured",
            }

        return {
            "status": "ok",
            "osc_path": response.address,
            "args": response.args,
            "received_at": response.received_at.isoformat(),
        }

    async def set_value(
        self,
        group: str,
        endpoint: str,
        value: Union[float, int, str],
        index: Optional[int] = None,
        confirm: bool = False,
    ):
        """
        Set a parameter on the console.

        Dangerous endpoints (reboot, reset) are blocked unless ``confirm``
        is true.

        Returns:
            {"status": "sent", "osc_path": "...", "value": 0.75}
            or {"status": "blocked", ...} for an unconfirmed dangerous endpoint
        """
        if self.client.is_dangerous(endpoint) and not confirm:
            logger.warning(f"Blocked unconfirmed dangerous endpoint {group}/{endpoint}")
            return {
                "status": "blocked",
                "endpoint": endpoint,
                "message": f"'{endpoint}' is a potentially destructive command (could reboot or reset the console)",
                "suggestion": "Ask the user for explicit confirmation, then call again with confirm=true",
            }

        path = await self.client.set_value(group, endpoint, value, index)
        return {"status": "sent", "osc_path": path, "value": value}
