"""
Async client for the Prometheus HTTP API (read-only endpoints under /api/v1).

Authentication: optional HTTP basic auth (username + password).

Every Prometheus endpoint answers with the envelope
  {"status": "success" | "error", "data": ..., "errorType": ..., "error": ..., "warnings": [...]}
This client unwraps ``data`` and raises:
  * ``BackendUnreachable`` when no response arrives (refused, DNS, timeout)
  * ``BackendQueryError`` when the envelope reports ``status: "error"``
    (even on HTTP 200) or on a non-2xx response without an envelope.
Each call is a single attempt; there is no retry.
"""
from __future__ import annotations

import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from prometheus_mcp.config import Settings
from prometheus_mcp.exceptions import (
    BackendQueryError,
    BackendUnreachable,
    PrometheusMCPError,
)

log = structlog.get_logger(__name__)


def _cause(exc: Exception) -> str:
    if isinstance(exc, BackendUnreachable):
        return exc.cause
    return str(exc) or type(exc).__name__


class PrometheusClient:
    """Async context-manager wrapper around the Prometheus HTTP API.

    One instance owns one ``httpx.AsyncClient`` connection pool and may be
    shared by concurrent tool calls.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.prometheus_url + "/api/v1/"
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._settings.prometheus_url

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "PrometheusClient":
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json"},
            auth=self._settings.basic_auth,
            verify=self._settings.ssl_verify,
            timeout=self._settings.timeout,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *_: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client_or_raise(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("PrometheusClient must be used as an async context manager")
        return self._client

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET *path* and return the unwrapped ``data`` field."""
        client = self._client_or_raise()
        t0 = time.monotonic()
        try:
            response = await client.get(path, params=params)
        except httpx.RequestError as exc:
            log.warning("prometheus.unreachable", path=path, error=_cause(exc))
            raise BackendUnreachable(self.base_url, _cause(exc)) from exc
        elapsed = round((time.monotonic() - t0) * 1000)

        log.info(
            "prometheus.api_call",
            path=path,
            status=response.status_code,
            elapsed_ms=elapsed,
        )
        return self._unwrap(path, response)

    def _unwrap(self, path: str, response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = None

        # The envelope wins over the HTTP status line when both are present.
        if isinstance(body, dict) and body.get("status") == "error":
            raise BackendQueryError(
                str(body.get("error") or "unknown error"),
                body.get("errorType"),
                response.status_code,
            )
        if not response.is_success:
            detail = response.text[:500] or response.reason_phrase
            raise BackendQueryError(detail, status_code=response.status_code)
        if not isinstance(body, dict) or body.get("status") != "success":
            raise BackendQueryError(
                f"unexpected response from {path}",
                "bad_response",
                response.status_code,
            )

        for warning in body.get("warnings") or []:
            log.warning("prometheus.warnings", path=path, warning=warning)
        return body.get("data")

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    async def test_connection(self) -> dict[str, Any]:
        """Probe build info, falling back to an ``up`` instant query.

        Some deployments restrict the status endpoints while leaving the query
        API open; that case is reported as connected but ``degraded``.
        """
        try:
            build = await self.get_build_info()
        except PrometheusMCPError as build_exc:
            log.warning("prometheus.buildinfo_unavailable", error=str(build_exc))
            try:
                await self.query("up")
            except PrometheusMCPError as query_exc:
                raise BackendUnreachable(
                    self.base_url,
                    f"build info: {_cause(build_exc)}; fallback query: {_cause(query_exc)}",
                ) from query_exc
            return {
                "status": "connected",
                "version": None,
                "degraded": True,
                "buildInfoError": str(build_exc),
            }
        return {
            "status": "connected",
            "version": (build or {}).get("version"),
            "degraded": False,
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query(self, query: str, eval_time: Optional[str] = None) -> dict[str, Any]:
        """Instant query. ``eval_time`` is RFC 3339 or a Unix timestamp."""
        params: dict[str, Any] = {"query": query}
        if eval_time:
            params["time"] = eval_time
        return await self._get("query", params) or {}

    async def query_range(self, query: str, start: str, end: str, step: str) -> dict[str, Any]:
        """Range query sampled every *step* between *start* and *end*."""
        params = {"query": query, "start": start, "end": end, "step": step}
        return await self._get("query_range", params) or {}

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    async def get_targets(self) -> dict[str, Any]:
        """Return ``{"activeTargets": [...], "droppedTargets": [...]}``."""
        return await self._get("targets") or {}

    # ------------------------------------------------------------------
    # Metric discovery
    # ------------------------------------------------------------------

    async def list_metric_names(self) -> list[str]:
        return await self._get("label/__name__/values") or []

    async def get_metric_metadata(self, metric: Optional[str] = None) -> dict[str, list[dict[str, Any]]]:
        """Return metadata keyed by metric name (all metrics when *metric* is None)."""
        params = {"metric": metric} if metric else None
        return await self._get("metadata", params) or {}

    async def get_label_values(self, label: str) -> list[str]:
        return await self._get(f"label/{quote(label, safe='')}/values") or []

    async def find_series(
        self,
        match: list[str],
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> list[dict[str, str]]:
        params: dict[str, Any] = {"match[]": match}
        if start:
            params["start"] = start
        if end:
            params["end"] = end
        return await self._get("series", params) or []

    # ------------------------------------------------------------------
    # Alerting
    # ------------------------------------------------------------------

    async def get_alerts(self) -> list[dict[str, Any]]:
        data = await self._get("alerts") or {}
        return data.get("alerts") or []

    async def get_rules(self) -> dict[str, Any]:
        """Return ``{"groups": [...]}`` with both alerting and recording rules."""
        return await self._get("rules") or {}

    # ------------------------------------------------------------------
    # Server status
    # ------------------------------------------------------------------

    async def get_build_info(self) -> dict[str, Any]:
        return await self._get("status/buildinfo") or {}

    async def get_runtime_info(self) -> dict[str, Any]:
        return await self._get("status/runtimeinfo") or {}

    async def get_config(self) -> str:
        """Return the loaded configuration as YAML text."""
        data = await self._get("status/config") or {}
        return data.get("yaml") or ""

    async def get_flags(self) -> dict[str, str]:
        return await self._get("status/flags") or {}

    async def get_tsdb_status(self) -> dict[str, Any]:
        return await self._get("status/tsdb") or {}
