"""
macOS Keychain storage for the Prometheus URL and basic-auth credentials.

Wraps the ``security`` CLI that ships with macOS. On other platforms (or when
the binary is missing) lookups simply return ``None`` so configuration falls
through to the YAML file.
"""
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

import structlog

log = structlog.get_logger(__name__)

SERVICE = "prometheus-mcp"
SECURITY_BIN = Path("/usr/bin/security")

ACCOUNT_URL = "prometheus-url"
ACCOUNT_USERNAME = "prometheus-username"
ACCOUNT_PASSWORD = "prometheus-password"


def keychain_available() -> bool:
    return SECURITY_BIN.exists()


def _run_security(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [str(SECURITY_BIN), *args],
        capture_output=True,
        text=True,
        check=False,
    )


def store_secret(account: str, value: str) -> None:
    """Create or replace the generic password stored under *account*."""
    # -U updates the item in place when it already exists.
    result = _run_security(
        "add-generic-password", "-U",
        "-s", SERVICE,
        "-a", account,
        "-w", value,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"Keychain store failed for account '{account}': {result.stderr.strip()}"
        )
    log.info("keychain.stored", account=account)


def retrieve_secret(account: str) -> Optional[str]:
    """Return the secret for *account*, or ``None`` if absent or unsupported."""
    if not keychain_available():
        return None
    result = _run_security("find-generic-password", "-s", SERVICE, "-a", account, "-w")
    if result.returncode != 0:
        log.debug("keychain.not_found", account=account)
        return None
    value = result.stdout.strip()
    return value or None


def delete_secret(account: str) -> bool:
    """Remove *account* from the Keychain. Returns False if nothing was deleted."""
    result = _run_security("delete-generic-password", "-s", SERVICE, "-a", account)
    deleted = result.returncode == 0
    log.info("keychain.deleted", account=account, success=deleted)
    return deleted
