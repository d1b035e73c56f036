"""Tool layer tests: result dicts and MCP routing."""

import json

import pytest

from midas_mcp.client import ConsoleClient
from midas_mcp.server import MidasMCPServer
from midas_mcp.tools import TOOL_NAMES, build_app, dispatch


@pytest.fixture
def server(catalog):
    """Server over a client that is not connected."""
    return MidasMCPServer(catalog, ConsoleClient(catalog))


@pytest.fixture
def live_server(catalog, client):
    """Server over a client connected to the fake console."""
    return MidasMCPServer(catalog, client, query_timeout_ms=200)


# ---------------------------------------------------------------------------
# Knowledge tools
# ---------------------------------------------------------------------------


class TestKnowledgeTools:
    @pytest.mark.anyio
    async def test_list_groups(self, server, catalog):
        result = await dispatch(server, "list_groups", {})

        assert result["status"] == "ok"
        assert result["stats"]["total_groups"] == len(catalog.group_names())
        assert result["groups"][0]["name"] == "VirtualMicInputs"
        json.dumps(result)

    @pytest.mark.anyio
    async def test_list_endpoints_marks_read_only(self, server):
        result = await dispatch(server, "list_endpoints", {"group": "VirtualMasters"})

        meter = next(e for e in result["endpoints"] if e["endpoint"] == "enOutputMeter")
        assert meter["read_only"] is True
        assert meter["argument_type"] is None
        assert meter["type"] == "Meter"

    @pytest.mark.anyio
    async def test_list_endpoints_unknown_group(self, server):
        result = await dispatch(server, "list_endpoints", {"group": "Nope"})

        assert result["status"] == "error"
        assert "list_groups" in result["suggestion"]

    @pytest.mark.anyio
    async def test_search_truncates(self, server, catalog):
        result = await dispatch(server, "search_endpoints", {"query": "", "limit": 3})

        assert result["total"] == catalog.get_stats().total_endpoints
        assert result["truncated"] is True
        assert len(result["results"]) == 3

    @pytest.mark.anyio
    async def test_search_shows_index_placeholder(self, server):
        result = await dispatch(
            server,
            "search_endpoints",
            {"query": "fader", "group": "VirtualMicInputs", "type": "enPPCFaderMessage"},
        )

        assert result["truncated"] is False
        assert [r["osc_path"] for r in result["results"]] == [
            "/enPPCFaderMessage/VirtualMicInputs/enFader/<index>"
        ]

    @pytest.mark.anyio
    async def test_get_endpoint_info(self, server):
        result = await dispatch(
            server, "get_endpoint_info", {"group": "VirtualMicInputs", "endpoint": "enSolo"}
        )

        assert result["status"] == "ok"
        assert result["message_type"] == "enPPCSwitchMessage"
        assert result["absolute"] is False
        assert any("TOGGLE" in line for line in result["usage"])
        assert any("<index>" in line for line in result["usage"])

    @pytest.mark.anyio
    async def test_get_endpoint_info_unknown(self, server):
        result = await dispatch(
            server, "get_endpoint_info", {"group": "VirtualMicInputs", "endpoint": "enNope"}
        )

        assert result["status"] == "error"
        assert "VirtualMicInputs/enNope" in result["message"]
        assert "search_endpoints" in result["suggestion"]

    @pytest.mark.anyio
    async def test_build_osc_command_requires_index_for_multi_path(self, server):
        result = await dispatch(
            server, "build_osc_command", {"group": "VirtualMicInputs", "endpoint": "enFader"}
        )

        assert result["status"] == "error"
        assert "index" in result["message"]

    @pytest.mark.anyio
    async def test_build_osc_command(self, server):
        result = await dispatch(
            server,
            "build_osc_command",
            {"group": "VirtualMicInputs", "endpoint": "enFader", "index": 2},
        )

        assert result["osc_path"] == "/enPPCFaderMessage/VirtualMicInputs/enFader/2"
        assert "float" in result["set"]

    @pytest.mark.anyio
    async def test_build_osc_command_read_only(self, server):
        result = await dispatch(
            server, "build_osc_command", {"group": "VirtualMonitor", "endpoint": "enMonitorMeter"}
        )

        assert result["set"] is None


# ---------------------------------------------------------------------------
# Control tools
# ---------------------------------------------------------------------------


class TestControlTools:
    @pytest.mark.anyio
    @pytest.mark.parametrize("tool", ["get_value", "set_value"])
    async def test_requires_connection(self, server, tool):
        args = {"group": "VirtualMicInputs", "endpoint": "enFader", "value": 0.5}
        if tool == "get_value":
            del args["value"]

        result = await dispatch(server, tool, args)

        assert result["status"] == "error"
        assert result["suggestion"] == "Call connect first"

    @pytest.mark.anyio
    async def test_status_and_disconnect_when_idle(self, server):
        assert (await dispatch(server, "connection_status", {}))["status"] == "not_connected"
        assert (await dispatch(server, "disconnect", {}))["status"] == "not_connected"

    @pytest.mark.anyio
    async def test_connect_and_disconnect(self, server, console):
        result = await dispatch(
            server,
            "connect",
            {"ip": "127.0.0.1", "port": console.port, "listen_port": console.reply_port},
        )
        assert result["status"] == "connected"
        assert result["console"]["port"] == console.port

        status = await dispatch(server, "connection_status", {})
        assert status["console"]["listen_port"] == console.reply_port

        result = await dispatch(server, "disconnect", {})
        assert result["status"] == "disconnected"
        assert not server.client.is_connected

    @pytest.mark.anyio
    async def test_get_value(self, live_server, console):
        console.replies["/enPPCFaderMessage/VirtualMasters/enFader/1"] = (0.5,)

        result = await dispatch(
            live_server, "get_value", {"group": "VirtualMasters", "endpoint": "enFader", "index": 1}
        )

        assert result["status"] == "ok"
        assert result["args"] == [0.5]
        json.dumps(result)

    @pytest.mark.anyio
    async def test_get_value_no_response(self, live_server):
        result = await dispatch(
            live_server, "get_value", {"group": "VirtualMasters", "endpoint": "enFader", "index": 1}
        )

        assert result["status"] == "no_response"
        assert result["osc_path"] == "/enPPCFaderMessage/VirtualMasters/enFader/1"

    @pytest.mark.anyio
    async def test_set_value(self, live_server, console):
        result = await dispatch(
            live_server,
            "set_value",
            {"group": "VirtualMicInputs", "endpoint": "enLabel", "value": "Vox", "index": 3},
        )

        assert result == {
            "status": "sent",
            "osc_path": "/enPPCStringMessage/VirtualMicInputs/enLabel/3",
            "value": "Vox",
        }
        await console.wait_for_messages(1)

    @pytest.mark.anyio
    @pytest.mark.parametrize("endpoint", ["enRebootConsole", "enResetGlobalsToDefault"])
    async def test_dangerous_blocked_without_confirm(self, live_server, console, endpoint):
        result = await dispatch(
            live_server, "set_value", {"group": "VirtualSystem", "endpoint": endpoint, "value": 1}
        )

        assert result["status"] == "blocked"
        assert "confirm" in result["suggestion"]
        assert console.received == []

    @pytest.mark.anyio
    async def test_dangerous_sent_with_confirm(self, live_server, console):
        result = await dispatch(
            live_server,
            "set_value",
            {"group": "VirtualSystem", "endpoint": "enRebootConsole", "value": 1, "confirm": True},
        )

        assert result["status"] == "sent"
        (message,) = await console.wait_for_messages(1)
        assert message.params == [1]

    @pytest.mark.anyio
    async def test_set_value_errors_carry_suggestion(self, live_server):
        result = await dispatch(
            live_server,
            "set_value",
            {"group": "VirtualMicInputs", "endpoint": "enInputMeter", "value": 1, "index": 0},
        )

        assert result["status"] == "error"
        assert "read-only" in result["message"]
        assert result["suggestion"]


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_unknown_tool(server):
    result = await dispatch(server, "format_console", {})

    assert result["status"] == "error"
    assert result["available_tools"] == TOOL_NAMES


@pytest.mark.anyio
async def test_bad_arguments_reported(server):
    result = await dispatch(server, "list_endpoints", {"grp": "VirtualMasters"})

    assert result["status"] == "error"
    assert result["tool"] == "list_endpoints"


def test_every_tool_has_a_handler(server):
    for name in TOOL_NAMES:
        assert callable(getattr(server, name))


def test_build_app(server):
    app = build_app(server)
    assert app.name == "midas-mcp"
