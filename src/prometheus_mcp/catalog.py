"""
Tool catalog: the five tool groups merged into one name -> ToolSpec map.

Built once at import time. A duplicate name, or an entry without a handler
or input model, fails the import instead of surfacing on the first call.
"""
from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel

from prometheus_mcp.models import ToolSpec
from prometheus_mcp.tools import alerts, health, metrics, queries, status

GROUPS: tuple[list[ToolSpec], ...] = (
    health.TOOLS,
    queries.TOOLS,
    metrics.TOOLS,
    alerts.TOOLS,
    status.TOOLS,
)


def build_catalog(*groups: Iterable[ToolSpec]) -> dict[str, ToolSpec]:
    catalog: dict[str, ToolSpec] = {}
    for group in groups:
        for spec in group:
            if spec.name in catalog:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            if not callable(spec.handler):
                raise ValueError(f"Tool {spec.name} has no handler")
            if not (isinstance(spec.input_model, type) and issubclass(spec.input_model, BaseModel)):
                raise ValueError(f"Tool {spec.name} has no input model")
            catalog[spec.name] = spec
    return catalog


CATALOG: dict[str, ToolSpec] = build_catalog(*GROUPS)
