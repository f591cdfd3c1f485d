"""
Unit tests for ServerConfig.
"""

import dataclasses
import os

import pytest

from tinyhttpd.config import ConfigError, ServerConfig


class TestDefaults:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.root == "."
        assert config.workers == (os.cpu_count() or 1)
        assert config.deadline == 5.0
        assert config.log_format == "text"

    def test_config_is_immutable(self):
        config = ServerConfig()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.port = 9090

    def test_resolved_root_is_canonical(self, served_root, tmp_path):
        alias = tmp_path / "alias"
        alias.symlink_to(served_root, target_is_directory=True)

        config = ServerConfig(root=str(alias))

        assert config.resolved_root == os.path.realpath(served_root)
        assert os.path.isabs(config.resolved_root)


class TestValidate:

    def test_valid_config(self, config: ServerConfig):
        config.validate()

    @pytest.mark.parametrize("changes", [
        {"port": -1},
        {"port": 65536},
        {"workers": 0},
        {"deadline": 0},
        {"deadline": -1.5},
        {"backlog": 0},
        {"buffer_size": 512},
        {"max_request_line": 8},
        {"log_level": "CHATTY"},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, config: ServerConfig, changes: dict):
        with pytest.raises(ConfigError):
            dataclasses.replace(config, **changes).validate()

    def test_port_zero_allowed(self, config: ServerConfig):
        dataclasses.replace(config, port=0).validate()

    def test_missing_root(self, config: ServerConfig, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            dataclasses.replace(config, root=str(tmp_path / "nope")).validate()

        assert "not a directory" in str(exc_info.value)

    def test_root_must_be_directory(self, config: ServerConfig, served_root):
        with pytest.raises(ConfigError):
            dataclasses.replace(config, root=str(served_root / "index.html")).validate()

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestFromEnv:

    def test_reads_environment(self, served_root):
        config = ServerConfig.from_env({
            "TINYHTTPD_HOST": "127.0.0.1",
            "TINYHTTPD_PORT": "3000",
            "TINYHTTPD_ROOT": str(served_root),
            "TINYHTTPD_WORKERS": "7",
            "TINYHTTPD_DEADLINE": "2.5",
            "TINYHTTPD_LOG_LEVEL": "debug",
            "TINYHTTPD_LOG_FORMAT": "JSON",
        })

        assert config.host == "127.0.0.1"
        assert config.port == 3000
        assert config.root == str(served_root)
        assert config.workers == 7
        assert config.deadline == 2.5
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_empty_environment_gives_defaults(self):
        config = ServerConfig.from_env({})

        assert config.port == 8080
        assert config.root == "."

    def test_unparsable_number(self):
        with pytest.raises(ConfigError):
            ServerConfig.from_env({"TINYHTTPD_PORT": "eighty"})

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("TINYHTTPD_PORT", "4321")

        assert ServerConfig.from_env().port == 4321
