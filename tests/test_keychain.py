"""Tests for macOS Keychain integration."""
from __future__ import annotations

from unittest.mock import MagicMock, patch
import subprocess

import pytest

from prometheus_mcp.keychain import (
    ACCOUNT_PASSWORD,
    ACCOUNT_URL,
    SERVICE,
    delete_secret,
    retrieve_secret,
    store_secret,
)


# ---------------------------------------------------------------------------
# Helper: mock a security CLI response
# ---------------------------------------------------------------------------

def _mock_proc(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    m = MagicMock(spec=subprocess.CompletedProcess)
    m.returncode = returncode
    m.stdout = stdout
    m.stderr = stderr
    return m


@pytest.fixture
def keychain_present():
    with patch("prometheus_mcp.keychain.keychain_available", return_value=True):
        yield


# ---------------------------------------------------------------------------
# store_secret
# ---------------------------------------------------------------------------

class TestStoreSecret:
    def test_stores_with_update_flag(self):
        with patch("prometheus_mcp.keychain._run_security") as mock_sec:
            mock_sec.return_value = _mock_proc(returncode=0)
            store_secret(ACCOUNT_PASSWORD, "s3cret")
        args = mock_sec.call_args.args
        assert args[:2] == ("add-generic-password", "-U")
        assert SERVICE in args and ACCOUNT_PASSWORD in args and "s3cret" in args

    def test_raises_on_failure(self):
        with patch("prometheus_mcp.keychain._run_security") as mock_sec:
            mock_sec.return_value = _mock_proc(returncode=1, stderr="denied")
            with pytest.raises(RuntimeError, match="Keychain store failed"):
                store_secret(ACCOUNT_PASSWORD, "s3cret")


# ---------------------------------------------------------------------------
# retrieve_secret
# ---------------------------------------------------------------------------

class TestRetrieveSecret:
    def test_returns_value(self, keychain_present):
        with patch("prometheus_mcp.keychain._run_security") as mock_sec:
            mock_sec.return_value = _mock_proc(returncode=0, stdout="http://prom:9090\n")
            assert retrieve_secret(ACCOUNT_URL) == "http://prom:9090"

    def test_returns_none_when_not_found(self, keychain_present):
        with patch("prometheus_mcp.keychain._run_security") as mock_sec:
            mock_sec.return_value = _mock_proc(returncode=44)
            assert retrieve_secret(ACCOUNT_URL) is None

    def test_returns_none_for_empty_value(self, keychain_present):
        with patch("prometheus_mcp.keychain._run_security") as mock_sec:
            mock_sec.return_value = _mock_proc(returncode=0, stdout="   ")
            assert retrieve_secret(ACCOUNT_URL) is None

    def test_returns_none_without_security_binary(self):
        with patch("prometheus_mcp.keychain.keychain_available", return_value=False), \
                patch("prometheus_mcp.keychain._run_security") as mock_sec:
            assert retrieve_secret(ACCOUNT_URL) is None
            mock_sec.assert_not_called()


# ---------------------------------------------------------------------------
# delete_secret
# ---------------------------------------------------------------------------

class TestDeleteSecret:
    def test_returns_true_on_success(self):
        with patch("prometheus_mcp.keychain._run_security") as mock_sec:
            mock_sec.return_value = _mock_proc(returncode=0)
            assert delete_secret(ACCOUNT_URL) is True

    def test_returns_false_when_not_found(self):
        with patch("prometheus_mcp.keychain._run_security") as mock_sec:
            mock_sec.return_value = _mock_proc(returncode=44)
            assert delete_secret(ACCOUNT_URL) is False
