"""
Midas MCP Server Entry Point

Run with: python -m midas_mcp
Or with uv: uv run python -m midas_mcp

Set MIDAS_IP to connect to a console at startup.
"""

import asyncio

from mcp.server.stdio import stdio_server

from .catalog import EndpointCatalog
from .client import ConsoleClient
from .config import ConsoleSettings, configure_logging
from .server import MidasMCPServer
from .session import ConsoleSession
from .tools import build_app


async def main():
    """Run the MCP server via stdio."""
    settings = ConsoleSettings.from_env()
    configure_logging(settings.log_level)

    catalog = EndpointCatalog.load(settings.data_dir)
    client = ConsoleClient(catalog)
    app = build_app(MidasMCPServer(catalog, client, settings.query_timeout_ms))

    # Auto-connect is best effort; the connect tool can retry later
    async with ConsoleSession(
        client, settings.ip, settings.port, settings.listen_port, required=False
    ):
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
