"""Tests for IssuerConfig."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from natsjwt import IssuerConfig, LogLevel, load_config_from_env


class TestIssuerConfig:
    """Tests for IssuerConfig model."""

    def test_create_default_config(self) -> None:
        """Test creating an IssuerConfig with defaults."""
        config = IssuerConfig()
        assert config.log_level == LogLevel.INFO
        assert config.log_json is False
        assert config.redact_secrets is True
        assert config.service_name is None
        assert config.system_account_name == "SYS"
        assert config.default_credential_bearer is False

    def test_create_custom_config(self) -> None:
        """Test creating an IssuerConfig with custom values."""
        config = IssuerConfig(
            log_level=LogLevel.DEBUG,
            log_json=True,
            redact_secrets=False,
            service_name="issuer",
            system_account_name="SYSTEM",
            default_credential_bearer=True,
        )
        assert config.log_level == LogLevel.DEBUG
        assert config.log_json is True
        assert config.redact_secrets is False
        assert config.service_name == "issuer"
        assert config.system_account_name == "SYSTEM"
        assert config.default_credential_bearer is True

    def test_log_level_from_string(self) -> None:
        """Test creating config with log level as string."""
        config = IssuerConfig(log_level="debug")
        assert config.log_level == LogLevel.DEBUG

    def test_log_level_invalid(self) -> None:
        """Test creating config with invalid log level."""
        with pytest.raises(ValueError, match="Invalid log level"):
            IssuerConfig(log_level="INVALID")

    def test_system_account_name_stripped(self) -> None:
        """Test that the system tenant name is trimmed."""
        assert IssuerConfig(system_account_name="  SYS  ").system_account_name == "SYS"

    def test_system_account_name_empty(self) -> None:
        """Test that a blank system tenant name is rejected."""
        with pytest.raises(ValueError, match="must not be empty"):
            IssuerConfig(system_account_name="   ")

    def test_extra_fields_forbidden(self) -> None:
        """Test that extra fields are forbidden."""
        with pytest.raises(Exception):  # Pydantic validation error
            IssuerConfig(seed="SOAAA")  # type: ignore[call-arg]


class TestLoadConfigFromEnv:
    """Tests for load_config_from_env function."""

    @patch.dict(os.environ, {}, clear=True)
    def test_load_defaults(self) -> None:
        """Test loading config with no environment variables."""
        config = load_config_from_env()
        assert config.log_level == LogLevel.INFO
        assert config.log_json is False
        assert config.redact_secrets is True
        assert config.system_account_name == "SYS"

    @patch.dict(
        os.environ,
        {
            "NATSJWT_LOG_LEVEL": "DEBUG",
            "NATSJWT_LOG_JSON": "true",
            "NATSJWT_REDACT": "false",
            "NATSJWT_SERVICE_NAME": "issuer",
            "NATSJWT_SYSTEM_ACCOUNT_NAME": "SYSTEM",
            "NATSJWT_BEARER_DEFAULT": "yes",
        },
        clear=True,
    )
    def test_load_from_env(self) -> None:
        """Test loading config from environment variables."""
        config = load_config_from_env()
        assert config.log_level == LogLevel.DEBUG
        assert config.log_json is True
        assert config.redact_secrets is False
        assert config.service_name == "issuer"
        assert config.system_account_name == "SYSTEM"
        assert config.default_credential_bearer is True

    def test_bool_variants(self) -> None:
        """Test that boolean variables accept various true values."""
        for value in ("true", "1", "yes", "on", "TRUE"):
            with patch.dict(os.environ, {"NATSJWT_LOG_JSON": value}, clear=True):
                assert load_config_from_env().log_json is True
        with patch.dict(os.environ, {"NATSJWT_LOG_JSON": "off"}, clear=True):
            assert load_config_from_env().log_json is False
