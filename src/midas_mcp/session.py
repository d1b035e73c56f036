"""
Console Session Management

Context manager for safe session handling with automatic cleanup.
"""

from typing import Optional

from loguru import logger

from .client import ConsoleClient
from .config import DEFAULT_LISTEN_PORT, DEFAULT_PORT
from .errors import ConsoleError


class ConsoleSession:
    """
    Context manager that owns a console connection for one block.

    Ensures sockets are ALWAYS closed, even on errors.

    Example:
        async with ConsoleSession(client, "192.168.1.100") as console:
            await console.set_value("VirtualMicInputs", "enFader", 0.75, index=0)
            # Connection closed here, even if the operation failed
    """

    def __init__(
        self,
        client: ConsoleClient,
        ip: Optional[str] = None,
        port: int = DEFAULT_PORT,
        listen_port: int = DEFAULT_LISTEN_PORT,
        required: bool = True,
    ):
        """
        Initialize session context.

        Args:
            client: Client to connect
            ip: Console address; with None the block runs disconnected
            port: OSC port on the console
            listen_port: Local port for replies
            required: Re-raise connection failures (False logs and continues)
        """
        self.client = client
        self.ip = ip
        self.port = port
        self.listen_port = listen_port
        self.required = required

    async def __aenter__(self) -> ConsoleClient:
        if self.ip is None:
            return self.client

        try:
            await self.client.connect(self.ip, self.port, self.listen_port)
            logger.info(f"Session started with console {self.ip}:{self.port}")
        except ConsoleError as e:
            logger.error(f"Failed to start session with {self.ip}:{self.port}: {e}")
            if self.required:
                raise
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Always disconnects, even if an exception occurred."""
        if self.client.is_connected:
            try:
                await self.client.disconnect()
                logger.info(f"Session ended, console {self.ip} released")
            except Exception as e:
                logger.error(f"Error closing session with {self.ip}: {e}")
                # Don't re-raise to avoid masking the original exception

        return False
