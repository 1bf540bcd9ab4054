"""
PromQL query tools.

  query_instant            — instant query at now or a given evaluation time
  query_range              — range query; ``start`` may be relative ("1h")
  query_windows_exporter   — canned windows_exporter queries for one instance
  query_node_exporter      — canned node_exporter queries for one instance
  query_blackbox_exporter  — probe success joined with probe duration
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog

from prometheus_mcp import timeparse
from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.exceptions import PrometheusMCPError
from prometheus_mcp.models import (
    BlackboxInput,
    InstantQueryInput,
    NodeExporterInput,
    RangeQueryInput,
    ToolSpec,
    WindowsExporterInput,
)
from prometheus_mcp.tools.exporters import (
    NODE_EXPORTER,
    WINDOWS_EXPORTER,
    QueryTable,
    render_queries,
)

log = structlog.get_logger(__name__)


def _sample_time(sample: Any) -> Optional[str]:
    return timeparse.epoch_seconds_to_iso(sample[0]) if sample else None


def _sample_value(sample: Any) -> Optional[str]:
    return sample[1] if sample else None


def _points(values: list[Any]) -> list[dict[str, Any]]:
    return [{"timestamp": _sample_time(v), "value": _sample_value(v)} for v in values]


# ---------------------------------------------------------------------------
# Instant / range
# ---------------------------------------------------------------------------


async def query_instant(client: PrometheusClient, args: InstantQueryInput) -> dict[str, Any]:
    data = await client.query(args.query, args.time)
    result_type = data.get("resultType")
    raw = data.get("result")

    results: list[dict[str, Any]] = []
    if result_type in ("scalar", "string"):
        # [<unix time>, "<value>"] with no series labels.
        results.append({"metric": {}, "timestamp": _sample_time(raw), "value": _sample_value(raw)})
    else:
        for series in raw or []:
            metric = dict(series.get("metric") or {})
            if "values" in series:
                values = series.get("values") or []
                results.append({"metric": metric, "valueCount": len(values), "values": _points(values)})
            else:
                sample = series.get("value")
                results.append({
                    "metric": metric,
                    "timestamp": _sample_time(sample),
                    "value": _sample_value(sample),
                })

    return {
        "resultType": result_type,
        "resultCount": len(results),
        "results": results,
    }


async def query_range(client: PrometheusClient, args: RangeQueryInput) -> dict[str, Any]:
    now = timeparse.now_utc()
    start = args.start
    if timeparse.is_relative(start):
        start = timeparse.to_iso(timeparse.lookback(timeparse.parse_duration_ms(start), now)[0])
    end = args.end or timeparse.to_iso(now)

    data = await client.query_range(args.query, start, end, args.step)
    series_list = data.get("result") or []

    return {
        "resultType": data.get("resultType"),
        "resultCount": len(series_list),
        "timeRange": {"start": start, "end": end, "step": args.step},
        "results": [
            {
                "metric": dict(series.get("metric") or {}),
                "valueCount": len(series.get("values") or []),
                "values": _points(series.get("values") or []),
            }
            for series in series_list
        ],
    }


# ---------------------------------------------------------------------------
# Exporter helpers
# ---------------------------------------------------------------------------


async def _run_named_queries(client: PrometheusClient, queries: dict[str, str]) -> dict[str, Any]:
    """Run every query concurrently; a failed query becomes ``{"error": ...}`` under its key."""

    async def _one(key: str, promql: str) -> Any:
        try:
            data = await client.query(promql)
        except PrometheusMCPError as exc:
            log.warning("exporter.query_failed", key=key, error=str(exc))
            return {"error": str(exc)}
        except Exception as exc:
            log.exception("exporter.query_unexpected_error", key=key)
            return {"error": str(exc)}
        return [
            {"labels": dict(r.get("metric") or {}), "value": _sample_value(r.get("value"))}
            for r in data.get("result") or []
        ]

    outcomes = await asyncio.gather(*(_one(k, q) for k, q in queries.items()))
    return dict(zip(queries, outcomes))


async def _exporter_metrics(
    client: PrometheusClient,
    table: QueryTable,
    instance: str,
    metric: str,
    time_range: str,
) -> dict[str, Any]:
    queries = render_queries(table, metric, instance, time_range)
    return {
        "instance": instance,
        "timeRange": time_range,
        "metrics": await _run_named_queries(client, queries),
    }


async def query_windows_exporter(client: PrometheusClient, args: WindowsExporterInput) -> dict[str, Any]:
    return await _exporter_metrics(client, WINDOWS_EXPORTER, args.instance, args.metric, args.time_range)


async def query_node_exporter(client: PrometheusClient, args: NodeExporterInput) -> dict[str, Any]:
    return await _exporter_metrics(client, NODE_EXPORTER, args.instance, args.metric, args.time_range)


async def query_blackbox_exporter(client: PrometheusClient, args: BlackboxInput) -> dict[str, Any]:
    filters = []
    if args.target:
        filters.append(f'target="{args.target}"')
    if args.module:
        filters.append(f'module="{args.module}"')
    selector = "{" + ",".join(filters) + "}" if filters else ""

    success = await client.query(f"probe_success{selector}")
    try:
        duration = await client.query(f"probe_duration_seconds{selector}")
    except PrometheusMCPError as exc:
        log.warning("blackbox.duration_unavailable", error=str(exc))
        duration = {}

    durations: dict[tuple[Any, Any], Any] = {}
    for series in duration.get("result") or []:
        metric = series.get("metric") or {}
        durations.setdefault((metric.get("instance"), metric.get("target")), _sample_value(series.get("value")))

    probes = []
    for series in success.get("result") or []:
        metric = series.get("metric") or {}
        seconds = durations.get((metric.get("instance"), metric.get("target")))
        probes.append({
            "target": metric.get("target"),
            "instance": metric.get("instance"),
            "module": metric.get("module"),
            "job": metric.get("job"),
            "success": _sample_value(series.get("value")) == "1",
            "durationSeconds": float(seconds) if seconds is not None else None,
        })

    up = sum(1 for p in probes if p["success"])
    return {
        "summary": {"total": len(probes), "up": up, "down": len(probes) - up},
        "probes": probes,
    }


TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="query_instant",
        description="Execute a PromQL instant query to get the current value of metrics.",
        input_model=InstantQueryInput,
        handler=query_instant,
    ),
    ToolSpec(
        name="query_range",
        description=(
            "Execute a PromQL range query to get time series data over a time range. "
            'start accepts RFC3339, a Unix timestamp, or a relative duration like "1h".'
        ),
        input_model=RangeQueryInput,
        handler=query_range,
    ),
    ToolSpec(
        name="query_windows_exporter",
        description="Query common Windows metrics from windows_exporter (CPU, memory, disk, network, services).",
        input_model=WindowsExporterInput,
        handler=query_windows_exporter,
    ),
    ToolSpec(
        name="query_node_exporter",
        description="Query common Linux metrics from node_exporter (CPU, memory, disk, filesystem, network, load).",
        input_model=NodeExporterInput,
        handler=query_node_exporter,
    ),
    ToolSpec(
        name="query_blackbox_exporter",
        description="Query probe results from blackbox_exporter for endpoint monitoring.",
        input_model=BlackboxInput,
        handler=query_blackbox_exporter,
    ),
]
