"""
Midas MCP Server

Model Context Protocol (MCP) server for Midas Pro Series mixing consoles.

Provides LLM-friendly tools for:
- Browsing and searching the OSC endpoint database
- Building ready-to-send OSC addresses
- Connecting to a console and reading/writing parameters

Architecture:
- Endpoint catalog loaded once at startup from bundled JSON tables
- OSC client with one session at a time (connect/disconnect pattern)
- Confirmation gate for destructive commands (reboot, factory reset)
"""

__version__ = "0.1.0"

from .catalog import EndpointCatalog
from .client import ConsoleClient
from .server import MidasMCPServer
from .session import ConsoleSession

__all__ = ["ConsoleClient", "ConsoleSession", "EndpointCatalog", "MidasMCPServer"]
