"""
Connectivity and scrape-target tools.

  test_connection    — probe Prometheus (build info, falling back to ``up``)
  list_targets       — per-health summary plus the filtered target list
  get_target_health  — look up targets by job and/or instance
"""
from __future__ import annotations

from typing import Any

from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.exceptions import MissingFilter
from prometheus_mcp.models import (
    EmptyInput,
    ListTargetsInput,
    TargetHealthInput,
    ToolSpec,
)

HEALTH_STATES = ("up", "down", "unknown")


def _target_summary(target: dict[str, Any]) -> dict[str, Any]:
    labels = target.get("labels") or {}
    return {
        "job": labels.get("job"),
        "instance": labels.get("instance"),
        "health": target.get("health"),
        "lastScrape": target.get("lastScrape"),
        "lastScrapeDuration": target.get("lastScrapeDuration"),
        "lastError": target.get("lastError") or None,
        "scrapeUrl": target.get("scrapeUrl"),
        "scrapePool": target.get("scrapePool"),
    }


async def test_connection(client: PrometheusClient, args: EmptyInput) -> dict[str, Any]:
    result = await client.test_connection()
    return {**result, "url": client.base_url}


async def list_targets(client: PrometheusClient, args: ListTargetsInput) -> dict[str, Any]:
    targets = await client.get_targets()
    active = targets.get("activeTargets") or []
    dropped = targets.get("droppedTargets") or []

    # Summary counts always cover every active target, whatever the filter.
    summary: dict[str, int] = {"total": len(active)}
    for state in HEALTH_STATES:
        summary[state] = sum(1 for t in active if t.get("health") == state)
    summary["dropped"] = len(dropped)

    if args.health != "all":
        active = [t for t in active if t.get("health") == args.health]

    return {
        "summary": summary,
        "activeTargets": [_target_summary(t) for t in active],
    }


async def get_target_health(client: PrometheusClient, args: TargetHealthInput) -> dict[str, Any]:
    if not args.job and not args.instance:
        raise MissingFilter("job", "instance")

    targets = await client.get_targets()

    def _matches(target: dict[str, Any]) -> bool:
        labels = target.get("labels") or {}
        if args.job and labels.get("job") != args.job:
            return False
        if args.instance and labels.get("instance") != args.instance:
            return False
        return True

    matched = [t for t in targets.get("activeTargets") or [] if _matches(t)]
    if not matched:
        return {"found": False, "message": "No matching targets found"}

    return {
        "found": True,
        "targets": [
            {
                **_target_summary(t),
                "scrapeInterval": t.get("scrapeInterval"),
                "labels": dict(t.get("labels") or {}),
            }
            for t in matched
        ],
    }


TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="test_connection",
        description=(
            "Test connection to Prometheus and verify it is accessible. "
            "Returns the Prometheus version; reports 'degraded' when only the query API answers."
        ),
        input_model=EmptyInput,
        handler=test_connection,
    ),
    ToolSpec(
        name="list_targets",
        description="List all scrape targets and their health status (up/down/unknown), with a per-status summary.",
        input_model=ListTargetsInput,
        handler=list_targets,
    ),
    ToolSpec(
        name="get_target_health",
        description="Get health status of a specific target by job name and/or instance.",
        input_model=TargetHealthInput,
        handler=get_target_health,
    ),
]
