"""
Unit tests for ServerConfig.
"""

import dataclasses
import logging

import pytest

from restserver.config import ServerConfig
from restserver.errors import InvalidConfig, RestServerError


class TestServerConfig:
    """Tests for construction-time validation."""

    def test_defaults(self):
        config = ServerConfig(name="sample-server")

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.max_workers == 8
        assert config.log_level_number == logging.INFO

    def test_empty_name_rejected(self):
        with pytest.raises(InvalidConfig, match="empty name"):
            ServerConfig(name="")

    def test_invalid_config_is_value_error(self):
        with pytest.raises(ValueError):
            ServerConfig(name="")
        assert issubclass(InvalidConfig, RestServerError)

    @pytest.mark.parametrize("name", ["a", "sample-server", " "])
    def test_any_non_empty_name_accepted(self, name):
        assert ServerConfig(name=name).name == name

    @pytest.mark.parametrize("port", [0, 1, 8080, 65535])
    def test_valid_ports(self, port):
        assert ServerConfig(name="s", port=port).port == port

    @pytest.mark.parametrize("port", [-1, 65536, 100000])
    def test_invalid_ports(self, port):
        with pytest.raises(InvalidConfig, match="invalid port"):
            ServerConfig(name="s", port=port)

    @pytest.mark.parametrize("field,value", [
        ("backlog", 0),
        ("timeout", 0),
        ("max_request_size", 10),
        ("max_workers", -1),
        ("queue_size", 0),
        ("log_level", "LOUD"),
    ])
    def test_invalid_settings(self, field, value):
        with pytest.raises(InvalidConfig):
            ServerConfig(name="s", **{field: value})

    def test_sequential_and_blocking_allowed(self):
        config = ServerConfig(name="s", max_workers=0, timeout=None)

        assert config.max_workers == 0
        assert config.timeout is None

    def test_frozen(self):
        config = ServerConfig(name="s")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.name = ""


class TestFromEnv:
    """Tests for environment-variable configuration."""

    def test_defaults_without_env(self, monkeypatch):
        for var in ("NAME", "HOST", "PORT", "WORKERS", "TIMEOUT", "LOG_LEVEL"):
            monkeypatch.delenv(f"REST_SERVER_{var}", raising=False)

        config = ServerConfig.from_env()

        assert config.name == "sample-server"
        assert config.host == "127.0.0.1"
        assert config.port == 8080

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("REST_SERVER_NAME", "edge")
        monkeypatch.setenv("REST_SERVER_HOST", "0.0.0.0")
        monkeypatch.setenv("REST_SERVER_PORT", "3000")
        monkeypatch.setenv("REST_SERVER_WORKERS", "0")
        monkeypatch.setenv("REST_SERVER_TIMEOUT", "2.5")
        monkeypatch.setenv("REST_SERVER_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.name == "edge"
        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.max_workers == 0
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_overrides_win_and_none_ignored(self, monkeypatch):
        monkeypatch.setenv("REST_SERVER_PORT", "3000")

        config = ServerConfig.from_env(port=4000, host=None)

        assert config.port == 4000
        assert config.host == "127.0.0.1"

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("REST_SERVER_PORT", "eighty")

        with pytest.raises(InvalidConfig, match="environment"):
            ServerConfig.from_env()

    def test_empty_name_from_env(self, monkeypatch):
        monkeypatch.setenv("REST_SERVER_NAME", "")

        with pytest.raises(InvalidConfig):
            ServerConfig.from_env()
