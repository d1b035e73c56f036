"""
Shared fixtures for the test suite.

Network tests talk real OSC over UDP on localhost to a fake console.
"""

import asyncio
import socket
from typing import Dict, List, Tuple

import pytest
from loguru import logger
from pythonosc.osc_message import OscMessage
from pythonosc.osc_message_builder import OscMessageBuilder

from midas_mcp.catalog import EndpointCatalog
from midas_mcp.client import ConsoleClient

# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def catalog() -> EndpointCatalog:
    """The bundled endpoint database."""
    return EndpointCatalog.load()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages: List[str] = []
    sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)


# ---------------------------------------------------------------------------
# Fake console
# ---------------------------------------------------------------------------


def free_udp_port() -> int:
    """Find a UDP port nothing is bound to."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("0.0.0.0", 0))
        return sock.getsockname()[1]


class FakeConsole(asyncio.DatagramProtocol):
    """
    Minimal stand-in for a console.

    Records every OSC message it receives and answers queries (messages
    without arguments) for addresses listed in ``replies``.
    """

    def __init__(self, reply_port: int):
        self.reply_port = reply_port
        self.received: List[OscMessage] = []
        self.replies: Dict[str, Tuple] = {}
        self.reply_delay = 0.01
        self.transport = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        message = OscMessage(data)
        self.received.append(message)
        if not message.params and message.address in self.replies:
            asyncio.get_running_loop().call_later(
                self.reply_delay, self.reply, message.address, *self.replies[message.address]
            )

    def reply(self, address: str, *args) -> None:
        builder = OscMessageBuilder(address=address)
        for arg in args:
            builder.add_arg(arg)
        self.transport.sendto(builder.build().dgram, ("127.0.0.1", self.reply_port))

    async def wait_for_messages(self, count: int = 1, timeout: float = 1.0) -> List[OscMessage]:
        deadline = asyncio.get_running_loop().time() + timeout
        while len(self.received) < count:
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError(f"Expected {count} messages, got {len(self.received)}")
            await asyncio.sleep(0.01)
        return self.received


@pytest.fixture
async def console(anyio_backend):
    """A fake console listening on localhost, with the client's reply port."""
    listen_port = free_udp_port()
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: FakeConsole(listen_port), local_addr=("127.0.0.1", 0)
    )
    protocol.port = transport.get_extra_info("sockname")[1]
    yield protocol
    transport.close()


@pytest.fixture
async def client(anyio_backend, catalog, console):
    """A client connected to the fake console."""
    client = ConsoleClient(catalog)
    await client.connect("127.0.0.1", console.port, console.reply_port)
    yield client
    await client.disconnect()
