"""
Tool dispatcher: catalog lookup, argument validation, handler invocation.

``Dispatcher.call`` never raises. Every outcome becomes a ``CallToolResult``
holding one JSON text payload; failures set ``isError`` and carry
``{"error", "errorType", "tool"}``.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import structlog
from mcp import types
from pydantic import ValidationError

from prometheus_mcp.catalog import CATALOG
from prometheus_mcp.client import PrometheusClient
from prometheus_mcp.exceptions import PrometheusMCPError, UnknownOperation
from prometheus_mcp.models import ToolSpec

log = structlog.get_logger(__name__)


def _ok(data: Any) -> types.CallToolResult:
    """Wrap a result as a JSON TextContent response."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(data, indent=2, default=str))],
        isError=False,
    )


def _err(tool: str, message: str, error_type: str) -> types.CallToolResult:
    """Wrap an error message as an isError TextContent response."""
    payload = {"error": message, "errorType": error_type, "tool": tool}
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(payload, indent=2))],
        isError=True,
    )


def format_validation_error(exc: ValidationError) -> str:
    """``Invalid arguments: limit: Input should be ...; query: Field required``"""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {error.get('msg')}")
    return "Invalid arguments: " + "; ".join(parts)


class Dispatcher:
    """Routes ``tools/list`` and ``tools/call`` to the catalog."""

    def __init__(self, client: PrometheusClient, catalog: Optional[dict[str, ToolSpec]] = None) -> None:
        self._client = client
        self._catalog = CATALOG if catalog is None else catalog

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema())
            for spec in self._catalog.values()
        ]

    async def call(self, name: str, arguments: Optional[dict[str, Any]]) -> types.CallToolResult:
        log.info("tool.called", tool=name)

        spec = self._catalog.get(name)
        if spec is None:
            exc = UnknownOperation(name)
            log.warning("tool.unknown", tool=name)
            return _err(name, str(exc), type(exc).__name__)

        try:
            args = spec.input_model.model_validate(arguments or {})
        except ValidationError as e:
            log.warning("tool.validation_error", tool=name, errors=e.errors(include_url=False))
            return _err(name, format_validation_error(e), "ValidationError")

        try:
            result = await spec.handler(self._client, args)
        except PrometheusMCPError as e:
            log.warning("tool.failed", tool=name, error_type=type(e).__name__, error=str(e))
            return _err(name, f"Error executing {name}: {e}", type(e).__name__)
        except Exception as e:
            log.exception("tool.unexpected_error", tool=name)
            return _err(name, f"Error executing {name}: {e}", type(e).__name__)

        return _ok(result)
