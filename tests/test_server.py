"""Tests for the MCP server wiring and entry point."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from prometheus_mcp import server
from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.dispatcher import Dispatcher


@pytest.fixture
def dispatcher(monkeypatch):
    client = MagicMock(spec=PrometheusClient)
    client.base_url = "http://prom.example.com:9090"
    d = Dispatcher(client)
    monkeypatch.setattr(server, "_dispatcher", d)
    return d


@pytest.mark.asyncio
async def test_list_tools_delegates(dispatcher):
    tools = await server.list_tools()
    assert [t.name for t in tools] == [t.name for t in dispatcher.list_tools()]


@pytest.mark.asyncio
async def test_call_tool_returns_error_result(dispatcher):
    result = await server.call_tool("nope", {})
    assert result.isError is True


@pytest.mark.asyncio
async def test_handlers_require_running_server(monkeypatch):
    monkeypatch.setattr(server, "_dispatcher", None)
    with pytest.raises(RuntimeError, match="not initialised"):
        await server.list_tools()


def test_main_exits_on_config_error(monkeypatch):
    def _fail():
        raise RuntimeError("Prometheus URL not found")

    serve = MagicMock()
    monkeypatch.setattr(server, "get_settings", _fail)
    monkeypatch.setattr(server, "_serve", serve)
    with pytest.raises(SystemExit) as exc_info:
        server.main()
    assert exc_info.value.code == 1
    serve.assert_not_called()
