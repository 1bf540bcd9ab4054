"""
Metric discovery tools: metric names, metadata, label values, series search.
"""
from __future__ import annotations

from typing import Any

from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.models import (
    FindSeriesInput,
    LabelValuesInput,
    ListMetricsInput,
    MetricMetadataInput,
    ToolSpec,
)

METADATA_SAMPLE_SIZE = 50
LABEL_VALUES_LIMIT = 500
SERIES_LIMIT = 100

METRIC_TYPES = ("counter", "gauge", "histogram", "summary", "unknown")


async def list_metrics(client: PrometheusClient, args: ListMetricsInput) -> dict[str, Any]:
    names = await client.list_metric_names()
    matching = names
    if args.search:
        needle = args.search.lower()
        matching = [n for n in names if needle in n.lower()]
    returned = matching[: args.limit]
    return {
        "total": len(names),
        "matchingCount": len(matching),
        "returnedCount": len(returned),
        "metrics": returned,
    }


async def get_metric_metadata(client: PrometheusClient, args: MetricMetadataInput) -> dict[str, Any]:
    metadata = await client.get_metric_metadata(args.metric)

    if args.metric:
        entries = metadata.get(args.metric) or []
        if not entries:
            return {"found": False, "message": f"No metadata found for metric: {args.metric}"}
        return {"found": True, "metric": args.metric, "metadata": entries[0]}

    by_type = dict.fromkeys(METRIC_TYPES, 0)
    for entries in metadata.values():
        if entries:
            kind = entries[0].get("type") or "unknown"
            by_type[kind] = by_type.get(kind, 0) + 1

    sample = []
    for name, entries in list(metadata.items())[:METADATA_SAMPLE_SIZE]:
        first = entries[0] if entries else {}
        sample.append({"name": name, "type": first.get("type"), "help": first.get("help")})

    return {
        "summary": {"total": len(metadata), "byType": by_type},
        "metrics": sample,
    }


async def get_label_values(client: PrometheusClient, args: LabelValuesInput) -> dict[str, Any]:
    values = await client.get_label_values(args.label)
    return {
        "label": args.label,
        "count": len(values),
        "values": values[:LABEL_VALUES_LIMIT],
    }


async def find_series(client: PrometheusClient, args: FindSeriesInput) -> dict[str, Any]:
    series = await client.find_series([args.match], args.start, args.end)
    return {
        "selector": args.match,
        "count": len(series),
        "series": [
            {"metric": s.get("__name__"), "labels": dict(s)}
            for s in series[:SERIES_LIMIT]
        ],
    }


TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="list_metrics",
        description="List available metric names in Prometheus, optionally filtered by a case-insensitive substring.",
        input_model=ListMetricsInput,
        handler=list_metrics,
    ),
    ToolSpec(
        name="get_metric_metadata",
        description=(
            "Get metadata (type, help text) for a specific metric, or a type summary "
            "and sample listing when no metric is given."
        ),
        input_model=MetricMetadataInput,
        handler=get_metric_metadata,
    ),
    ToolSpec(
        name="get_label_values",
        description="Get all values for a specific label (e.g. all job names, all instances). Capped at 500.",
        input_model=LabelValuesInput,
        handler=get_label_values,
    ),
    ToolSpec(
        name="find_series",
        description="Find time series matching a series selector. Capped at 100 results.",
        input_model=FindSeriesInput,
        handler=find_series,
    ),
]
