"""
Unit tests for ServerConfig.
"""

import pytest

from httpresponder.config import ServerConfig


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.buffer_size == 2048
        assert config.timeout is None
        assert config.compression_level == 6
        assert config.log_format == "text"
        config.validate()

    @pytest.mark.parametrize("kwargs", [
        {"port": -1},
        {"port": 70000},
        {"backlog": 0},
        {"buffer_size": 10},
        {"timeout": 0},
        {"timeout": -5.0},
        {"accept_timeout": 0},
        {"compression_level": 10},
        {"compression_level": -1},
        {"log_format": "xml"},
    ])
    def test_validate_rejects(self, kwargs):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()


class TestFromEnv:

    def test_reads_variables(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "9090")
        monkeypatch.setenv("HTTP_BUFFER_SIZE", "4096")
        monkeypatch.setenv("HTTP_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTP_COMPRESSION_LEVEL", "1")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9090
        assert config.buffer_size == 4096
        assert config.timeout == 2.5
        assert config.compression_level == 1
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_defaults_when_unset(self, monkeypatch):
        for name in ("HTTP_HOST", "HTTP_PORT", "HTTP_BUFFER_SIZE", "HTTP_TIMEOUT",
                     "HTTP_COMPRESSION_LEVEL", "HTTP_LOG_LEVEL", "HTTP_LOG_FORMAT"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "eighty")

        with pytest.raises(ValueError):
            ServerConfig.from_env()
