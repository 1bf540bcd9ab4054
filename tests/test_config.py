"""Tests for settings resolution."""
from __future__ import annotations

import pytest

from prometheus_mcp import config
from prometheus_mcp.config import Settings, get_settings

ENV_VARS = (
    "PROMETHEUS_URL",
    "PROMETHEUS_USERNAME",
    "PROMETHEUS_PASSWORD",
    "PROMETHEUS_SSL_VERIFY",
    "PROMETHEUS_TIMEOUT",
)


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    """No real env, Keychain or config file leaks into these tests."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config, "_CONFIG_FILE", tmp_path / "config.yaml")
    monkeypatch.setattr(config, "retrieve_secret", lambda account: None)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestSettings:
    def test_strips_trailing_slash(self):
        assert Settings("http://prom:9090/").prometheus_url == "http://prom:9090"

    def test_keeps_path_prefix(self):
        assert Settings("https://example.com/prometheus/").prometheus_url == "https://example.com/prometheus"

    @pytest.mark.parametrize("url", ["prom:9090", "ftp://prom", "http://", "not a url", ""])
    def test_rejects_malformed_url(self, url):
        with pytest.raises(ValueError):
            Settings(url)

    @pytest.mark.parametrize("url", ["http://prom:9090/?tenant=a", "http://prom:9090#frag"])
    def test_rejects_query_or_fragment(self, url):
        with pytest.raises(ValueError, match="query string or fragment"):
            Settings(url)

    def test_is_read_only(self):
        s = Settings("http://prom:9090", username="u", password="p")
        with pytest.raises(AttributeError):
            s.prometheus_url = "http://elsewhere:9090"
        with pytest.raises(AttributeError):
            s.password = "other"
        assert s.prometheus_url == "http://prom:9090"

    def test_basic_auth_needs_both(self):
        assert Settings("http://p", username="u").basic_auth is None
        assert Settings("http://p", password="p").basic_auth is None
        assert Settings("http://p", username="u", password="p").basic_auth == ("u", "p")

    def test_repr_hides_password(self):
        text = repr(Settings("http://p", username="u", password="hunter2"))
        assert "hunter2" not in text
        assert "basic_auth=True" in text


class TestGetSettings:
    def test_missing_url_raises(self):
        with pytest.raises(RuntimeError, match="PROMETHEUS_URL"):
            get_settings()

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("PROMETHEUS_URL", "http://prom:9090/")
        monkeypatch.setenv("PROMETHEUS_USERNAME", "admin")
        monkeypatch.setenv("PROMETHEUS_PASSWORD", "secret")
        monkeypatch.setenv("PROMETHEUS_SSL_VERIFY", "false")
        monkeypatch.setenv("PROMETHEUS_TIMEOUT", "10")
        s = get_settings()
        assert s.prometheus_url == "http://prom:9090"
        assert s.basic_auth == ("admin", "secret")
        assert s.ssl_verify is False
        assert s.timeout == 10.0

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("PROMETHEUS_URL", "http://prom:9090")
        s = get_settings()
        assert s.basic_auth is None
        assert s.ssl_verify is True
        assert s.timeout == 30.0

    def test_yaml_file(self, isolated):
        (isolated / "config.yaml").write_text(
            "prometheus_url: https://prom.internal\n"
            "username: reader\n"
            "password: pw\n"
            "ssl_verify: false\n"
            "timeout: 5\n"
        )
        s = get_settings()
        assert s.prometheus_url == "https://prom.internal"
        assert s.basic_auth == ("reader", "pw")
        assert s.ssl_verify is False
        assert s.timeout == 5.0

    def test_env_beats_keychain_beats_yaml(self, monkeypatch, isolated):
        (isolated / "config.yaml").write_text("prometheus_url: http://from-yaml:9090\nusername: yaml-user\n")
        secrets = {"prometheus-url": "http://from-keychain:9090", "prometheus-username": "kc-user"}
        monkeypatch.setattr(config, "retrieve_secret", secrets.get)
        monkeypatch.setenv("PROMETHEUS_URL", "http://from-env:9090")

        s = get_settings()
        assert s.prometheus_url == "http://from-env:9090"
        assert s.username == "kc-user"

    def test_malformed_url_raises_value_error(self, monkeypatch):
        monkeypatch.setenv("PROMETHEUS_URL", "prometheus")
        with pytest.raises(ValueError):
            get_settings()

    def test_cached(self, monkeypatch):
        monkeypatch.setenv("PROMETHEUS_URL", "http://prom:9090")
        assert get_settings() is get_settings()
