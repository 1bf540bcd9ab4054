"""
Prometheus server status tools: build/runtime/config/flags and TSDB statistics.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from prometheus_mcp import timeparse
from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.exceptions import PrometheusMCPError
from prometheus_mcp.models import StatusInput, ToolSpec, TsdbStatusInput

log = structlog.get_logger(__name__)

CONFIG_PREVIEW_CHARS = 2000

BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_bytes(n: float) -> str:
    """Render a byte count with binary (1024) units, e.g. ``1536 -> "1.5 KB"``."""
    if not n:
        return "0 Bytes"
    value = float(n)
    unit = 0
    while abs(value) >= 1024 and unit < len(BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[unit]}"


def _config_section(yaml_text: str) -> dict[str, Any]:
    if len(yaml_text) > CONFIG_PREVIEW_CHARS:
        return {
            "yaml": yaml_text[:CONFIG_PREVIEW_CHARS] + "\n... (truncated)",
            "fullLength": len(yaml_text),
        }
    return {"yaml": yaml_text}


async def get_prometheus_status(client: PrometheusClient, args: StatusInput) -> dict[str, Any]:
    async def _config() -> dict[str, Any]:
        return _config_section(await client.get_config())

    fetchers: dict[str, Callable[[], Awaitable[Any]]] = {
        "build": client.get_build_info,
        "runtime": client.get_runtime_info,
        "config": _config,
        "flags": client.get_flags,
    }
    if args.include != "all":
        fetchers = {args.include: fetchers[args.include]}

    async def _section(name: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await fetch()
        except PrometheusMCPError as exc:
            log.warning("status.section_failed", section=name, error=str(exc))
            return {"error": str(exc)}
        except Exception as exc:
            log.exception("status.section_unexpected_error", section=name)
            return {"error": str(exc)}

    sections = await asyncio.gather(*(_section(n, f) for n, f in fetchers.items()))
    return dict(zip(fetchers, sections))


async def get_tsdb_status(client: PrometheusClient, args: TsdbStatusInput) -> dict[str, Any]:
    tsdb = await client.get_tsdb_status()
    head = tsdb.get("headStats") or {}
    limit = args.limit

    def _top(key: str) -> list[Any]:
        return list(tsdb.get(key) or [])[:limit]

    return {
        "headStats": {
            "numSeries": head.get("numSeries"),
            "numLabelPairs": head.get("numLabelPairs"),
            "chunkCount": head.get("chunkCount"),
            "minTime": timeparse.epoch_ms_to_iso(head["minTime"]) if "minTime" in head else None,
            "maxTime": timeparse.epoch_ms_to_iso(head["maxTime"]) if "maxTime" in head else None,
        },
        "topMetricsBySeriesCount": _top("seriesCountByMetricName"),
        "topLabelsByValueCount": _top("labelValueCountByLabelName"),
        "topLabelsByMemoryUsage": [
            {
                "name": entry.get("name"),
                "bytes": entry.get("value"),
                "humanReadable": format_bytes(entry.get("value") or 0),
            }
            for entry in _top("memoryInBytesByLabelName")
        ],
        "topLabelValuePairs": _top("seriesCountByLabelValuePair"),
    }


TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="get_prometheus_status",
        description=(
            "Get Prometheus server status including version, runtime info, configuration and flags. "
            "Configuration longer than 2000 characters is truncated."
        ),
        input_model=StatusInput,
        handler=get_prometheus_status,
    ),
    ToolSpec(
        name="get_tsdb_status",
        description=(
            "Get Prometheus TSDB (Time Series Database) statistics including cardinality and memory usage."
        ),
        input_model=TsdbStatusInput,
        handler=get_tsdb_status,
    ),
]
