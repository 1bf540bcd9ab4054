"""Tests for the catalog and the tool dispatcher."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from prometheus_mcp.catalog import CATALOG, build_catalog
from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.dispatcher import Dispatcher
from prometheus_mcp.exceptions import BackendUnreachable
from prometheus_mcp.models import EmptyInput, ListMetricsInput, ToolSpec

EXPECTED_TOOLS = {
    "test_connection", "list_targets", "get_target_health",
    "query_instant", "query_range", "query_windows_exporter",
    "query_node_exporter", "query_blackbox_exporter",
    "list_metrics", "get_metric_metadata", "get_label_values", "find_series",
    "list_alerts", "get_alert_rules", "get_recording_rules", "get_alert_history",
    "get_prometheus_status", "get_tsdb_status",
}


def make_client() -> MagicMock:
    client = MagicMock(spec=PrometheusClient)
    client.base_url = "http://prom.example.com:9090"
    return client


def _payload(result) -> dict:
    assert len(result.content) == 1
    return json.loads(result.content[0].text)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class TestCatalog:
    def test_catalog_is_exhaustive(self):
        assert set(CATALOG) == EXPECTED_TOOLS

    def test_every_entry_is_complete(self):
        for name, spec in CATALOG.items():
            assert spec.name == name
            assert spec.description
            assert callable(spec.handler)
            assert issubclass(spec.input_model, BaseModel)

    def test_duplicate_name_rejected(self):
        spec = ToolSpec("dup", "d", EmptyInput, AsyncMock())
        with pytest.raises(ValueError, match="Duplicate tool name: dup"):
            build_catalog([spec], [spec])

    def test_missing_handler_rejected(self):
        with pytest.raises(ValueError, match="no handler"):
            build_catalog([ToolSpec("x", "d", EmptyInput, None)])

    def test_missing_input_model_rejected(self):
        with pytest.raises(ValueError, match="no input model"):
            build_catalog([ToolSpec("x", "d", None, AsyncMock())])


# ---------------------------------------------------------------------------
# list_tools
# ---------------------------------------------------------------------------

class TestListTools:
    def test_lists_every_tool_with_object_schema(self):
        tools = Dispatcher(make_client()).list_tools()
        assert {t.name for t in tools} == EXPECTED_TOOLS
        for tool in tools:
            assert tool.inputSchema["type"] == "object"
            assert "title" not in tool.inputSchema
            assert "properties" in tool.inputSchema

    def test_schema_required_fields(self):
        tools = {t.name: t for t in Dispatcher(make_client()).list_tools()}
        assert tools["query_instant"].inputSchema["required"] == ["query"]
        assert set(tools["query_node_exporter"].inputSchema["required"]) == {"instance", "metric"}
        assert "timeRange" in tools["get_alert_history"].inputSchema["properties"]


# ---------------------------------------------------------------------------
# call
# ---------------------------------------------------------------------------

class TestCall:
    @pytest.mark.asyncio
    async def test_unknown_tool_does_not_touch_client(self):
        client = make_client()
        result = await Dispatcher(client).call("drop_database", {})
        assert result.isError is True
        payload = _payload(result)
        assert payload == {
            "error": "Unknown tool: drop_database",
            "errorType": "UnknownOperation",
            "tool": "drop_database",
        }
        assert client.mock_calls == []

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        client = make_client()
        result = await Dispatcher(client).call("list_targets", {"health": "sick"})
        assert result.isError is True
        payload = _payload(result)
        assert payload["errorType"] == "ValidationError"
        assert payload["error"].startswith("Invalid arguments: health:")
        client.get_targets.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_required_argument(self):
        result = await Dispatcher(make_client()).call("query_instant", None)
        payload = _payload(result)
        assert result.isError is True
        assert "query: Field required" in payload["error"]

    @pytest.mark.asyncio
    async def test_success_envelope(self):
        client = make_client()
        client.get_targets.return_value = {
            "activeTargets": [{"labels": {"job": "node", "instance": "a:9100"}, "health": "up"}],
            "droppedTargets": [],
        }
        result = await Dispatcher(client).call("list_targets", {})
        assert result.isError is False
        payload = _payload(result)
        assert payload["summary"]["total"] == 1
        assert payload["activeTargets"][0]["lastError"] is None
        assert "\n  " in result.content[0].text

    @pytest.mark.asyncio
    async def test_domain_error_contained(self):
        client = make_client()
        client.get_targets.side_effect = BackendUnreachable("http://prom.example.com:9090", "connection refused")
        result = await Dispatcher(client).call("list_targets", {"health": "up"})
        assert result.isError is True
        payload = _payload(result)
        assert payload["tool"] == "list_targets"
        assert payload["errorType"] == "BackendUnreachable"
        assert payload["error"] == (
            "Error executing list_targets: Cannot connect to Prometheus at "
            "http://prom.example.com:9090: connection refused"
        )

    @pytest.mark.asyncio
    async def test_unexpected_error_contained(self):
        async def _boom(client, args):
            raise KeyError("surprise")

        catalog = {"boom": ToolSpec("boom", "explodes", EmptyInput, _boom)}
        result = await Dispatcher(make_client(), catalog).call("boom", {})
        assert result.isError is True
        payload = _payload(result)
        assert payload["tool"] == "boom"
        assert payload["errorType"] == "KeyError"
        assert "surprise" in payload["error"]
        assert payload["error"].startswith("Error executing boom:")

    @pytest.mark.asyncio
    async def test_missing_filter_contained(self):
        client = make_client()
        result = await Dispatcher(client).call("get_target_health", {})
        assert result.isError is True
        assert _payload(result)["errorType"] == "MissingFilter"
        client.get_targets.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_time_expression_contained(self):
        client = make_client()
        result = await Dispatcher(client).call("get_alert_history", {"timeRange": "2 hours"})
        assert result.isError is True
        payload = _payload(result)
        assert payload["errorType"] == "InvalidTimeExpression"
        assert "2 hours" in payload["error"]

    @pytest.mark.asyncio
    async def test_handler_receives_validated_defaults(self):
        seen = {}

        async def _capture(client, args):
            seen["args"] = args
            return {"ok": True}

        catalog = {"cap": ToolSpec("cap", "captures", ListMetricsInput, _capture)}
        result = await Dispatcher(make_client(), catalog).call("cap", {"search": "http"})
        assert _payload(result) == {"ok": True}
        assert seen["args"].limit == 100
        assert seen["args"].search == "http"
