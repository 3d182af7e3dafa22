"""Tests for server configuration.

1. Default values
2. Environment variable loading
3. Validation rules
4. Singleton handling
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from lending_library.config import LibraryConfig, get_config, reset_config


class TestLibraryConfig:
    def test_default_configuration(self, monkeypatch, tmp_path):
        monkeypatch.delenv("LENDING_LIBRARY_DATABASE_PATH")
        monkeypatch.chdir(tmp_path)

        config = LibraryConfig(_env_file=None)

        assert config.server_name == "lending-library"
        assert config.server_version == "0.1.0"
        assert config.transport == "stdio"
        assert config.database_path == (tmp_path / "data" / "library.db").absolute()
        assert config.borrow_limit == 5
        assert config.loan_period_days == 14
        assert config.debug is False
        assert config.log_level == "INFO"

    def test_environment_variable_loading(self, tmp_path):
        env_vars = {
            "LENDING_LIBRARY_SERVER_NAME": "branch-library",
            "LENDING_LIBRARY_SERVER_VERSION": "2.0.0",
            "LENDING_LIBRARY_DATABASE_PATH": str(tmp_path / "branch.db"),
            "LENDING_LIBRARY_BORROW_LIMIT": "3",
            "LENDING_LIBRARY_LOAN_PERIOD_DAYS": "21",
            "LENDING_LIBRARY_DEBUG": "true",
            "LENDING_LIBRARY_LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars):
            config = LibraryConfig(_env_file=None)

        assert config.server_name == "branch-library"
        assert config.server_version == "2.0.0"
        assert config.database_path == tmp_path / "branch.db"
        assert config.borrow_limit == 3
        assert config.loan_period_days == 21
        assert config.debug is True
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("name", ["lending-library", "test-123", "abc"])
    def test_valid_server_names(self, name):
        assert LibraryConfig(server_name=name).server_name == name

    @pytest.mark.parametrize("name", ["Lending_Library", "lending library", "ab", "a" * 51])
    def test_invalid_server_names(self, name):
        with pytest.raises(ValidationError):
            LibraryConfig(server_name=name)

    def test_transport_validation(self):
        assert LibraryConfig(transport="streamable_http").transport == "streamable_http"
        with pytest.raises(ValidationError):
            LibraryConfig(transport="websocket")

    @pytest.mark.parametrize("field", ["borrow_limit", "loan_period_days"])
    def test_circulation_policy_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            LibraryConfig(**{field: 0})

    def test_http_port_range(self):
        with pytest.raises(ValidationError):
            LibraryConfig(http_port=80)

    def test_database_path_directory_is_created(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "library.db"

        config = LibraryConfig(database_path=db_path)

        assert config.database_path.parent.is_dir()

    def test_relative_database_path_becomes_absolute(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)

        config = LibraryConfig(database_path=Path("library.db"))

        assert config.database_path.is_absolute()


class TestConfigSingleton:
    def test_get_config_returns_same_instance(self):
        assert get_config() is get_config()

    def test_reset_config_rebuilds_from_environment(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("LENDING_LIBRARY_BORROW_LIMIT", "2")

        reset_config()
        second = get_config()

        assert second is not first
        assert second.borrow_limit == 2
