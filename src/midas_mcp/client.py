"""
Console Client

OSC session to a Midas Pro Series console: one UDP send channel to the
console and one OSC listener for its replies.
"""

import asyncio
import math
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Dict, List, Optional, Set, Union

from loguru import logger
from pydantic import BaseModel
from pythonosc.dispatcher import Dispatcher
from pythonosc.osc_message_builder import OscMessageBuilder
from pythonosc.osc_server import AsyncIOOSCUDPServer

from .catalog import ArgumentType, EndpointCatalog, MessageType
from .config import DEFAULT_LISTEN_PORT, DEFAULT_PORT, DEFAULT_QUERY_TIMEOUT_MS
from .errors import (
    InvalidEndpointError,
    NotConnectedError,
    ReadOnlyEndpointError,
    TransportError,
    TypeMismatchError,
)

# Endpoints that must never be sent without explicit human confirmation
DANGEROUS_ENDPOINTS = frozenset({"enRebootConsole", "enResetGlobalsToDefault"})

# The console rejects exactly 0.0 and 1.0 on faders
FADER_MIN = 0.0000001
FADER_MAX = 0.9999999


class ConnectionConfig(BaseModel):
    ip: str
    port: int
    listen_port: int


class ConsoleResponse(BaseModel):
    address: str
    args: List[Any]
    received_at: datetime


def is_dangerous(endpoint: str) -> bool:
    """Check whether an endpoint needs explicit confirmation before sending."""
    return endpoint in DANGEROUS_ENDPOINTS


# OSC integer arguments are signed 32-bit
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def _require_number(value, expected: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeMismatchError(expected, value)
    try:
        finite = math.isfinite(value)
    except OverflowError as e:
        raise TypeMismatchError(
            expected, value, f"Value is too large for a {expected} argument"
        ) from e
    if not finite:
        raise TypeMismatchError(expected, value)
    return value


def encode_value(message_type: MessageType, argument_type: ArgumentType, value):
    """
    Convert a caller value into the OSC argument for an endpoint.

    Returns:
        (value, osc type tag) tuple

    Raises:
        TypeMismatchError: If a numeric argument gets a non-numeric value,
            or an integer argument rounds outside the 32-bit range
    """
    if argument_type == ArgumentType.FLOAT:
        number = float(_require_number(value, argument_type.value))
        if message_type == MessageType.FADER:
            number = max(FADER_MIN, min(FADER_MAX, number))
        else:
            number = max(0.0, min(1.0, number))
        return number, OscMessageBuilder.ARG_TYPE_FLOAT

    if argument_type == ArgumentType.INTEGER:
        number = _require_number(value, argument_type.value)
        # Round half up, so 2.5 -> 3 and -2.5 -> -2
        rounded = math.floor(number + 0.5)
        if not INT32_MIN <= rounded <= INT32_MAX:
            raise TypeMismatchError(
                argument_type.value,
                value,
                f"Value {rounded} is outside the 32-bit integer range "
                f"[{INT32_MIN}, {INT32_MAX}]",
            )
        return rounded, OscMessageBuilder.ARG_TYPE_INT

    return str(value), OscMessageBuilder.ARG_TYPE_STRING


class ConsoleClient:
    """
    OSC client for one Midas console.

    State Model:
    - connect(ip) → opens send channel and reply listener (replaces any
      previous session)
    - disconnect() → closes both, forgets config, clears buffered replies

    Replies are kept per address in a buffer holding only the latest
    message. ``get_value`` waits on a one-shot future resolved by the
    listener, so other operations keep running while it waits.

    Concurrent ``connect`` calls are not supported and must be serialized
    by the caller.
    """

    def __init__(self, catalog: EndpointCatalog):
        self.catalog = catalog
        self._config: Optional[ConnectionConfig] = None
        self._sender: Optional[asyncio.DatagramTransport] = None
        self._listener: Optional[asyncio.DatagramTransport] = None
        self._responses: Dict[str, ConsoleResponse] = {}
        self._waiters: Dict[str, Set[asyncio.Future]] = {}

    @property
    def is_connected(self) -> bool:
        return self._sender is not None

    @property
    def connection_info(self) -> Optional[ConnectionConfig]:
        return self._config

    def is_dangerous(self, endpoint: str) -> bool:
        return is_dangerous(endpoint)

    def buffered_response(self, address: str) -> Optional[ConsoleResponse]:
        return self._responses.get(address)

    async def connect(
        self, ip: str, port: int = DEFAULT_PORT, listen_port: int = DEFAULT_LISTEN_PORT
    ) -> ConnectionConfig:
        """
        Connect to a console.

        Args:
            ip: Console IP address or hostname
            port: OSC port on the console (default: 10023)
            listen_port: Local port replies arrive on (default: 10024)

        Returns:
            The new connection config

        Raises:
            TransportError: If either socket cannot be opened
        """
        if self.is_connected:
            await self.disconnect()

        loop = asyncio.get_running_loop()
        config = ConnectionConfig(ip=ip, port=port, listen_port=listen_port)

        try:
            sender, _ = await loop.create_datagram_endpoint(
                asyncio.DatagramProtocol, remote_addr=(ip, port)
            )
        except OSError as e:
            logger.error(f"Could not open OSC send channel to {ip}:{port}: {e}")
            raise TransportError(f"Could not open send channel to {ip}:{port}: {e}") from e

        dispatcher = Dispatcher()
        dispatcher.set_default_handler(self._on_message)
        server = AsyncIOOSCUDPServer(("0.0.0.0", listen_port), dispatcher, loop)
        try:
            listener, _ = await server.create_serve_endpoint()
        except OSError as e:
            sender.close()
            logger.error(f"Could not listen for replies on port {listen_port}: {e}")
            raise TransportError(f"Could not listen on port {listen_port}: {e}") from e

        self._sender = sender
        self._listener = listener
        self._config = config
        logger.info(f"Connected to console at {ip}:{port}, listening on {listen_port}")
        return config

    async def disconnect(self) -> None:
        """Close the session. Does nothing when already disconnected."""
        if self._sender is None and self._listener is None:
            return

        config = self._config
        if self._sender is not None:
            self._sender.close()
            self._sender = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        # Sockets are released on the next loop iteration
        await asyncio.sleep(0)

        # Pending reads end as "no response"
        for waiters in self._waiters.values():
            for future in waiters:
                if not future.done():
                    future.set_result(None)
        self._waiters.clear()
        self._responses.clear()
        self._config = None

        if config is not None:
            logger.info(f"Disconnected from console at {config.ip}:{config.port}")

    def _on_message(self, address: str, *args) -> None:
        response = ConsoleResponse(
            address=address, args=list(args), received_at=datetime.now(timezone.utc)
        )
        self._responses[address] = response
        logger.debug(f"OSC reply {address} {list(args)}")

        for future in self._waiters.get(address, ()):
            if not future.done():
                future.set_result(response)

    def _send(self, address: str, *args) -> None:
        builder = OscMessageBuilder(address=address)
        for value, arg_type in args:
            builder.add_arg(value, arg_type)
        try:
            self._sender.sendto(builder.build().dgram)
        except OSError as e:
            logger.error(f"Failed to send {address}: {e}")
            raise TransportError(f"Failed to send {address}: {e}") from e

    def _require_connection(self) -> None:
        if not self.is_connected:
            raise NotConnectedError()

    async def get_value(
        self,
        group: str,
        endpoint: str,
        index: Optional[int] = None,
        timeout_ms: int = DEFAULT_QUERY_TIMEOUT_MS,
    ) -> Optional[ConsoleResponse]:
        """
        Query the console for a parameter's current value.

        Any reply already buffered for the address is discarded first, so
        only a reply to this query is returned.

        Returns:
            The reply, or None if nothing arrived within ``timeout_ms``

        Raises:
            NotConnectedError: If not connected
            InvalidEndpointError: If the endpoint is not in the catalog
        """
        self._require_connection()

        path = self.catalog.build_path(group, endpoint, index)
        if path is None:
            raise InvalidEndpointError(group, endpoint)

        self._responses.pop(path, None)

        future = asyncio.get_running_loop().create_future()
        waiters = self._waiters.setdefault(path, set())
        waiters.add(future)
        try:
            self._send(path)
            logger.debug(f"Query sent: {path}")
            response = await asyncio.wait_for(future, timeout_ms / 1000)
        except asyncio.TimeoutError:
            response = None
        finally:
            waiters.discard(future)
            if not waiters and self._waiters.get(path) is waiters:
                del self._waiters[path]

        if response is None:
            logger.warning(f"No response for {path} within {timeout_ms}ms")
        return response

    async def set_value(
        self,
        group: str,
        endpoint: str,
        value: Union[float, int, str],
        index: Optional[int] = None,
    ) -> str:
        """
        Send a value to the console (fire-and-forget).

        Floats are clamped to 0-1 (faders to the open interval), integers
        are rounded. Dangerous endpoints are not checked here.

        Returns:
            The OSC address the value was sent to

        Raises:
            NotConnectedError: If not connected
            InvalidEndpointError: If the endpoint is not in the catalog
            ReadOnlyEndpointError: If the endpoint has no argument type
            TypeMismatchError: If the value does not fit the argument type
            TransportError: If the send fails
        """
        self._require_connection()

        spec = self.catalog.get_endpoint_info(group, endpoint)
        if spec is None:
            raise InvalidEndpointError(group, endpoint)
        if spec.read_only:
            raise ReadOnlyEndpointError(endpoint)

        path = self.catalog.build_path(group, endpoint, index)
        if path is None:
            raise InvalidEndpointError(group, endpoint)

        encoded, arg_type = encode_value(spec.type, spec.argument_type, value)
        self._send(path, (encoded, arg_type))
        logger.info(f"Sent {path} = {encoded!r}")
        return path
