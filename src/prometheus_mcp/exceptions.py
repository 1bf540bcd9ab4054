"""
Error taxonomy for Prometheus MCP.

Every failure a tool handler can raise derives from ``PrometheusMCPError`` so
the dispatcher can report it by class name. Input validation failures are
``pydantic.ValidationError`` and are not part of this hierarchy.
"""
from __future__ import annotations

from typing import Optional


class PrometheusMCPError(Exception):
    """Base class for all Prometheus MCP errors."""


class InvalidTimeExpression(PrometheusMCPError, ValueError):
    """A relative duration string does not match ``<int><s|m|h|d|w>``."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        super().__init__(
            f"Invalid time range format: {expression!r}. "
            'Use formats like "30s", "5m", "1h", "24h", "7d", "2w"'
        )


class MissingFilter(PrometheusMCPError):
    """An operation requiring at least one of several filters received none."""

    def __init__(self, *names: str) -> None:
        self.names = names
        super().__init__(f"At least one of {' or '.join(names)} must be specified")


class BackendUnreachable(PrometheusMCPError):
    """No HTTP response could be obtained from Prometheus."""

    def __init__(self, base_url: str, cause: str) -> None:
        self.base_url = base_url
        self.cause = cause
        super().__init__(f"Cannot connect to Prometheus at {base_url}: {cause}")


class BackendQueryError(PrometheusMCPError):
    """Prometheus answered but reported a failure (``status: "error"`` or non-2xx)."""

    def __init__(
        self,
        error: str,
        error_type: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.error = error
        self.error_type = error_type
        self.status_code = status_code
        kind = error_type or (str(status_code) if status_code is not None else "unknown")
        super().__init__(f"Prometheus API error: {error} ({kind})")


class UnknownOperation(PrometheusMCPError):
    """The caller named a tool that is not in the catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")
