"""
Prometheus MCP Server — main entry point.

Exposes the following read-only MCP tools:

  Connectivity / Targets
  ───────────────────────
  1.  test_connection          — probe Prometheus and report its version
  2.  list_targets             — scrape targets with a per-health summary
  3.  get_target_health        — targets matching a job and/or instance

  Queries
  ────────
  4.  query_instant            — PromQL instant query
  5.  query_range              — PromQL range query (relative start allowed)
  6.  query_windows_exporter   — canned windows_exporter host metrics
  7.  query_node_exporter      — canned node_exporter host metrics
  8.  query_blackbox_exporter  — blackbox probe success and duration

  Metric Discovery
  ─────────────────
  9.  list_metrics             — metric names with substring filter
  10. get_metric_metadata      — type/help for one metric or a summary
  11. get_label_values         — all values of a label
  12. find_series              — series matching a selector

  Alerting
  ─────────
  13. list_alerts              — active alerts with state counts
  14. get_alert_rules          — alerting rules by group
  15. get_recording_rules      — recording rules by group
  16. get_alert_history        — ALERTS series over a look-back window

  Server Status
  ──────────────
  17. get_prometheus_status    — build, runtime, config and flags
  18. get_tsdb_status          — TSDB cardinality and memory statistics

Run:
    python -m prometheus_mcp.server
    # or via the installed script:
    prometheus-mcp
"""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp import types

from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.config import Settings, get_settings
from prometheus_mcp.dispatcher import Dispatcher

# ---------------------------------------------------------------------------
# Logging setup: structured JSON to stderr, never to stdout (MCP uses stdout)
# ---------------------------------------------------------------------------

structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer(),
    ],
)

log = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------

app = Server("prometheus-mcp")

# Set by _serve() for the lifetime of the stdio session.
_dispatcher: Optional[Dispatcher] = None


def _dispatcher_or_raise() -> Dispatcher:
    if _dispatcher is None:
        raise RuntimeError("Dispatcher not initialised; start the server with main()")
    return _dispatcher


@app.list_tools()
async def list_tools() -> list[types.Tool]:
    """Advertise all available tools to the MCP client."""
    return _dispatcher_or_raise().list_tools()


# Validation is the dispatcher's job so that bad arguments come back as a
# structured isError result rather than a protocol error.
@app.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict) -> types.CallToolResult:
    """Dispatch MCP tool calls to the catalog."""
    return await _dispatcher_or_raise().call(name, arguments)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def _serve(settings: Settings) -> None:
    global _dispatcher
    log.info("server.starting", name="prometheus-mcp", prometheus_url=settings.prometheus_url)
    async with PrometheusClient(settings) as client:
        _dispatcher = Dispatcher(client)
        try:
            async with stdio_server() as (read_stream, write_stream):
                await app.run(read_stream, write_stream, app.create_initialization_options())
        finally:
            _dispatcher = None


def main() -> None:
    try:
        settings = get_settings()
    except (RuntimeError, ValueError) as e:
        log.error("config.error", error=str(e))
        sys.exit(1)
    asyncio.run(_serve(settings))


if __name__ == "__main__":
    main()
