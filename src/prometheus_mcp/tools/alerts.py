"""
Alerting tools: active alerts, alerting rules, recording rules and alert history.

Alert history runs a range query over the synthetic ``ALERTS`` series; the
look-back window is parsed with ``timeparse`` and the step coarsens with it.
"""
from __future__ import annotations

from typing import Any, Optional

from prometheus_mcp import timeparse
from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.models import (
    AlertHistoryInput,
    AlertRulesInput,
    ListAlertsInput,
    RecordingRulesInput,
    ToolSpec,
)

RULE_STATES = ("firing", "pending", "inactive")


def _groups(rules: dict[str, Any], name: Optional[str]) -> list[dict[str, Any]]:
    groups = rules.get("groups") or []
    if name:
        groups = [g for g in groups if g.get("name") == name]
    return groups


def _group_header(group: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": group.get("name"),
        "file": group.get("file"),
        "interval": group.get("interval"),
    }


async def list_alerts(client: PrometheusClient, args: ListAlertsInput) -> dict[str, Any]:
    alerts = await client.get_alerts()
    selected = alerts if args.state == "all" else [a for a in alerts if a.get("state") == args.state]

    reshaped = []
    for alert in selected:
        labels = alert.get("labels") or {}
        annotations = alert.get("annotations") or {}
        reshaped.append({
            "alertname": labels.get("alertname"),
            "state": alert.get("state"),
            "severity": labels.get("severity"),
            "instance": labels.get("instance"),
            "job": labels.get("job"),
            "summary": annotations.get("summary"),
            "description": annotations.get("description"),
            "activeAt": alert.get("activeAt"),
            "value": alert.get("value"),
            "labels": dict(labels),
        })

    return {
        "summary": {
            "total": len(alerts),
            "firing": sum(1 for a in alerts if a.get("state") == "firing"),
            "pending": sum(1 for a in alerts if a.get("state") == "pending"),
        },
        "alerts": reshaped,
    }


async def get_alert_rules(client: PrometheusClient, args: AlertRulesInput) -> dict[str, Any]:
    groups = _groups(await client.get_rules(), args.group)
    counts = dict.fromkeys(RULE_STATES, 0)

    formatted = []
    for group in groups:
        rules = [r for r in group.get("rules") or [] if r.get("type") == "alerting"]
        if args.state != "all":
            rules = [r for r in rules if r.get("state") == args.state]

        for rule in rules:
            if rule.get("state") in counts:
                counts[rule["state"]] += 1

        formatted.append({
            **_group_header(group),
            "rules": [
                {
                    "name": r.get("name"),
                    "state": r.get("state"),
                    "health": r.get("health"),
                    "query": r.get("query"),
                    "duration": r.get("duration"),
                    "labels": dict(r.get("labels") or {}),
                    "annotations": dict(r.get("annotations") or {}),
                    "lastEvaluation": r.get("lastEvaluation"),
                    "evaluationTime": r.get("evaluationTime"),
                    "lastError": r.get("lastError") or None,
                    "activeAlerts": len(r.get("alerts") or []),
                }
                for r in rules
            ],
        })

    return {
        "summary": {"groups": len(groups), "rules": sum(counts.values()), **counts},
        "groups": formatted,
    }


async def get_recording_rules(client: PrometheusClient, args: RecordingRulesInput) -> dict[str, Any]:
    groups = _groups(await client.get_rules(), args.group)

    formatted = []
    healthy = unhealthy = 0
    for group in groups:
        rules = [r for r in group.get("rules") or [] if r.get("type") != "alerting"]
        if not rules:
            continue
        for rule in rules:
            if rule.get("health") == "ok":
                healthy += 1
            else:
                unhealthy += 1
        formatted.append({
            **_group_header(group),
            "rules": [
                {
                    "name": r.get("name"),
                    "query": r.get("query"),
                    "labels": dict(r.get("labels") or {}),
                    "health": r.get("health"),
                    "lastEvaluation": r.get("lastEvaluation"),
                    "evaluationTime": r.get("evaluationTime"),
                    "lastError": r.get("lastError") or None,
                }
                for r in rules
            ],
        })

    return {
        "summary": {
            "groups": len(formatted),
            "totalRules": healthy + unhealthy,
            "healthy": healthy,
            "unhealthy": unhealthy,
        },
        "groups": formatted,
    }


async def get_alert_history(client: PrometheusClient, args: AlertHistoryInput) -> dict[str, Any]:
    duration_ms = timeparse.parse_duration_ms(args.time_range)
    start_at, end_at = timeparse.lookback(duration_ms, timeparse.now_utc())
    start, end = timeparse.to_iso(start_at), timeparse.to_iso(end_at)
    step = timeparse.step_for_lookback(duration_ms)

    query = f'ALERTS{{alertname="{args.alertname}"}}' if args.alertname else "ALERTS"
    data = await client.query_range(query, start, end, step)
    series_list = data.get("result") or []

    alerts = []
    for series in series_list:
        metric = series.get("metric") or {}
        values = series.get("values") or []
        alerts.append({
            "alertname": metric.get("alertname"),
            "severity": metric.get("severity"),
            "instance": metric.get("instance"),
            "job": metric.get("job"),
            "stateChanges": len(values),
            "firstSeen": timeparse.epoch_seconds_to_iso(values[0][0]) if values else None,
            "lastSeen": timeparse.epoch_seconds_to_iso(values[-1][0]) if values else None,
            "labels": dict(metric),
        })

    return {
        "timeRange": {"start": start, "end": end, "step": step},
        "alertCount": len(series_list),
        "alerts": alerts,
    }


TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="list_alerts",
        description="List currently firing or pending alerts, with counts by state.",
        input_model=ListAlertsInput,
        handler=list_alerts,
    ),
    ToolSpec(
        name="get_alert_rules",
        description="Get alerting rules grouped by rule group, with their current states.",
        input_model=AlertRulesInput,
        handler=get_alert_rules,
    ),
    ToolSpec(
        name="get_recording_rules",
        description="Get recording rules (pre-computed queries) grouped by rule group, with health counts.",
        input_model=RecordingRulesInput,
        handler=get_recording_rules,
    ),
    ToolSpec(
        name="get_alert_history",
        description=(
            'Query alert state changes over time using the ALERTS metric. timeRange such as "1h", "24h", "7d".'
        ),
        input_model=AlertHistoryInput,
        handler=get_alert_history,
    ),
]
