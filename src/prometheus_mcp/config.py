"""
Configuration loading for Prometheus MCP.

Priority order (highest → lowest), resolved per setting:
  1. Environment variables (PROMETHEUS_URL, PROMETHEUS_USERNAME, PROMETHEUS_PASSWORD, …)
  2. macOS Keychain (prometheus-mcp / prometheus-url, prometheus-username, prometheus-password)
  3. ~/.config/prometheus-mcp/config.yaml

Basic auth is only sent when both username and password resolve.
Never write secrets back to any file from this module.
"""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import httpx
import structlog
import yaml

from prometheus_mcp.keychain import (
    ACCOUNT_PASSWORD,
    ACCOUNT_URL,
    ACCOUNT_USERNAME,
    retrieve_secret,
)

log = structlog.get_logger(__name__)

_CONFIG_FILE = Path.home() / ".config" / "prometheus-mcp" / "config.yaml"

DEFAULT_TIMEOUT = 30.0


def _validate_url(url: str) -> str:
    url = url.strip().rstrip("/")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValueError(f"PROMETHEUS_URL must be a valid URL: {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValueError(
            f"PROMETHEUS_URL must be a valid http(s) URL, got {url!r} "
            "(e.g. http://prometheus:9090)"
        )
    # API paths are appended to the base URL, so it must end in a path.
    if parsed.query or parsed.fragment:
        raise ValueError(f"PROMETHEUS_URL must not carry a query string or fragment, got {url!r}")
    return url


class Settings:
    """Connection descriptor for the Prometheus HTTP API. Read-only once built."""

    __slots__ = ("_prometheus_url", "_username", "_password", "_ssl_verify", "_timeout")

    def __init__(
        self,
        prometheus_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        ssl_verify: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._prometheus_url = _validate_url(prometheus_url)
        self._username = username or None
        self._password = password or None
        self._ssl_verify = ssl_verify
        self._timeout = timeout

    @property
    def prometheus_url(self) -> str:
        return self._prometheus_url

    @property
    def username(self) -> Optional[str]:
        return self._username

    @property
    def password(self) -> Optional[str]:
        return self._password

    @property
    def ssl_verify(self) -> bool:
        return self._ssl_verify

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def basic_auth(self) -> Optional[tuple[str, str]]:
        if self.username and self.password:
            return (self.username, self.password)
        return None

    def __repr__(self) -> str:
        return (
            f"Settings(url={self.prometheus_url!r}, "
            f"basic_auth={self.basic_auth is not None}, "
            f"ssl_verify={self.ssl_verify}, timeout={self.timeout})"
        )


def _load_yaml_config() -> dict[str, Any]:
    """Load optional YAML config file, returning an empty dict if absent."""
    if _CONFIG_FILE.exists():
        with _CONFIG_FILE.open() as f:
            data = yaml.safe_load(f) or {}
        log.info("config.yaml_loaded", path=str(_CONFIG_FILE))
        return data
    return {}


def _resolve(env_var: str, account: Optional[str], yaml_cfg: dict[str, Any], key: str) -> Optional[str]:
    value = os.environ.get(env_var) or (retrieve_secret(account) if account else None) or yaml_cfg.get(key)
    return str(value) if value not in (None, "") else None


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() not in ("false", "0", "no", "off")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Resolve and return the global Settings singleton.

    Raises ``RuntimeError`` when no URL is configured and ``ValueError`` when
    the configured URL is malformed.
    """
    yaml_cfg = _load_yaml_config()

    url = _resolve("PROMETHEUS_URL", ACCOUNT_URL, yaml_cfg, "prometheus_url")
    if not url:
        raise RuntimeError(
            "Prometheus URL not found. Set PROMETHEUS_URL env var "
            "(e.g. http://prometheus:9090), store it in Keychain "
            f"(account '{ACCOUNT_URL}'), or add 'prometheus_url' to {_CONFIG_FILE}"
        )

    username = _resolve("PROMETHEUS_USERNAME", ACCOUNT_USERNAME, yaml_cfg, "username")
    password = _resolve("PROMETHEUS_PASSWORD", ACCOUNT_PASSWORD, yaml_cfg, "password")
    if bool(username) != bool(password):
        log.warning("config.partial_credentials", hint="basic auth needs both username and password")

    ssl_verify = _as_bool(os.environ.get("PROMETHEUS_SSL_VERIFY") or yaml_cfg.get("ssl_verify", True))
    timeout = float(os.environ.get("PROMETHEUS_TIMEOUT") or yaml_cfg.get("timeout", DEFAULT_TIMEOUT))

    settings = Settings(
        prometheus_url=url,
        username=username,
        password=password,
        ssl_verify=ssl_verify,
        timeout=timeout,
    )
    log.info("config.resolved", settings=repr(settings))
    return settings
