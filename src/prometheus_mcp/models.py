"""
Pydantic models for MCP tool inputs, plus the ``ToolSpec`` operation descriptor.

The JSON schema advertised in ``tools/list`` is generated from these models,
and the dispatcher validates every call against the same model, so a
handler only ever sees validated, defaulted arguments.

Values that get templated into PromQL label matchers are checked so they
cannot close the quoted string they are placed in.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

_UNSAFE_LABEL_VALUE_RE = re.compile(r'["\\{}\n\r]')

# PromQL range durations: 30s, 5m, 1h30m, 500ms, 1y
_PROMQL_DURATION_RE = re.compile(r"(?:[0-9]+(?:ms|[smhdwy]))+")


def _require_safe_label_value(v: Optional[str]) -> Optional[str]:
    if v is not None and _UNSAFE_LABEL_VALUE_RE.search(v):
        raise ValueError("value must not contain quotes, backslashes, braces or newlines")
    return v


def _require_promql_duration(v: str) -> str:
    if not _PROMQL_DURATION_RE.fullmatch(v):
        raise ValueError('must be a PromQL duration such as "5m", "1h" or "1h30m"')
    return v


class ToolInput(BaseModel):
    """Base class: accepts both wire aliases (``timeRange``) and field names."""

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Connectivity / targets
# ---------------------------------------------------------------------------


class EmptyInput(ToolInput):
    """Input for tools that take no arguments."""


class ListTargetsInput(ToolInput):
    health: Literal["up", "down", "unknown", "all"] = Field(
        default="all", description="Filter by health status"
    )


class TargetHealthInput(ToolInput):
    job: Optional[str] = Field(default=None, description="Job name to filter")
    instance: Optional[str] = Field(default=None, description="Instance (host:port) to filter")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class InstantQueryInput(ToolInput):
    query: str = Field(..., min_length=1, description="PromQL query expression")
    time: Optional[str] = Field(
        default=None,
        description="Evaluation timestamp (RFC3339 or Unix timestamp). Default: current time",
    )


class RangeQueryInput(ToolInput):
    query: str = Field(..., min_length=1, description="PromQL query expression")
    start: str = Field(
        ...,
        min_length=1,
        description='Start time (RFC3339 or Unix timestamp, or relative like "1h" for 1 hour ago)',
    )
    end: Optional[str] = Field(default=None, description="End time (RFC3339 or Unix timestamp). Default: now")
    step: str = Field(default="1m", description='Query resolution step (e.g., "15s", "1m", "5m")')


class _ExporterInput(ToolInput):
    instance: str = Field(..., min_length=1, max_length=255, description="Server instance (hostname:port)")
    time_range: str = Field(
        default="5m",
        alias="timeRange",
        description='Time range for rate/averaging windows (e.g., "5m", "1h")',
    )

    @field_validator("instance")
    @classmethod
    def sanitize_instance(cls, v: str) -> str:
        return _require_safe_label_value(v)

    @field_validator("time_range")
    @classmethod
    def check_time_range(cls, v: str) -> str:
        return _require_promql_duration(v)


class WindowsExporterInput(_ExporterInput):
    metric: Literal["cpu", "memory", "disk", "network", "services", "all"] = Field(
        ..., description="Type of metrics to query"
    )


class NodeExporterInput(_ExporterInput):
    metric: Literal["cpu", "memory", "disk", "network", "load", "filesystem", "all"] = Field(
        ..., description="Type of metrics to query"
    )


class BlackboxInput(ToolInput):
    target: Optional[str] = Field(default=None, description="Filter by target URL")
    module: Optional[str] = Field(default=None, description="Filter by probe module (http, tcp, icmp, etc.)")

    @field_validator("target", "module")
    @classmethod
    def sanitize_filters(cls, v: Optional[str]) -> Optional[str]:
        return _require_safe_label_value(v)


# ---------------------------------------------------------------------------
# Metric discovery
# ---------------------------------------------------------------------------


class ListMetricsInput(ToolInput):
    search: Optional[str] = Field(default=None, description="Filter metrics by substring (case-insensitive)")
    limit: int = Field(default=100, ge=1, description="Maximum number of metrics to return")


class MetricMetadataInput(ToolInput):
    metric: Optional[str] = Field(
        default=None,
        description="Metric name to get metadata for. If not specified, returns all metadata",
    )


class LabelValuesInput(ToolInput):
    label: str = Field(..., min_length=1, description='Label name (e.g., "job", "instance", "__name__")')


class FindSeriesInput(ToolInput):
    match: str = Field(
        ...,
        min_length=1,
        description="Series selector (e.g., 'up{job=\"prometheus\"}', '{__name__=~\"http_.*\"}')",
    )
    start: Optional[str] = Field(default=None, description="Start time for the search")
    end: Optional[str] = Field(default=None, description="End time for the search")


# ---------------------------------------------------------------------------
# Alerting
# ---------------------------------------------------------------------------


class ListAlertsInput(ToolInput):
    state: Literal["firing", "pending", "all"] = Field(default="all", description="Filter by alert state")


class AlertRulesInput(ToolInput):
    group: Optional[str] = Field(default=None, description="Filter by rule group name")
    state: Literal["firing", "pending", "inactive", "all"] = Field(
        default="all", description="Filter by rule state"
    )


class RecordingRulesInput(ToolInput):
    group: Optional[str] = Field(default=None, description="Filter by rule group name")


class AlertHistoryInput(ToolInput):
    alertname: Optional[str] = Field(default=None, description="Filter by alert name")
    time_range: str = Field(
        default="1h",
        alias="timeRange",
        description='Time range to look back (e.g., "1h", "24h", "7d")',
    )

    @field_validator("alertname")
    @classmethod
    def sanitize_alertname(cls, v: Optional[str]) -> Optional[str]:
        return _require_safe_label_value(v)


# ---------------------------------------------------------------------------
# Server status
# ---------------------------------------------------------------------------


class StatusInput(ToolInput):
    include: Literal["all", "build", "runtime", "config", "flags"] = Field(
        default="all", description="What information to include"
    )


class TsdbStatusInput(ToolInput):
    limit: int = Field(default=10, ge=1, description="Limit for top series/labels lists")


# ---------------------------------------------------------------------------
# Operation descriptor
# ---------------------------------------------------------------------------

Handler = Callable[[Any, Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    """One catalog entry: name, description, input model and async handler.

    The handler is called as ``await handler(client, validated_input)``.
    """

    name: str
    description: str
    input_model: type[BaseModel]
    handler: Handler

    def input_schema(self) -> dict[str, Any]:
        schema = self.input_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema
