"""Configuration for natsjwt.

Pydantic-validated settings shared by the issuer facade and logging setup.
Key material is never part of configuration: seeds are passed to each build
call by the caller.

``load_config_from_env`` is the only place that reads the environment.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class IssuerConfig(BaseModel):
    """Settings for TokenIssuer and logging.

    Environment variables:
        NATSJWT_LOG_LEVEL logging level
        NATSJWT_LOG_JSON JSON log format (true/false)
        NATSJWT_REDACT redact seeds/tokens in logs (true/false)
        NATSJWT_SERVICE_NAME logger name used by setup_logging
        NATSJWT_SYSTEM_ACCOUNT_NAME name of the bootstrapped system tenant
        NATSJWT_BEARER_DEFAULT default bearer flag for credentials
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )
    redact_secrets: bool = Field(
        default=True,
        description="Redact nkey seeds and tokens from log output",
    )
    service_name: Optional[str] = Field(
        default=None,
        description="Service name for logger identification",
    )

    # Issuance defaults
    system_account_name: str = Field(
        default="SYS",
        description="Name given to the system tenant created by bootstrap_root",
    )
    default_credential_bearer: bool = Field(
        default=False,
        description="Bearer flag applied to credentials when the caller does not set one",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("system_account_name")
    @classmethod
    def validate_system_account_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("System account name must not be empty")
        return v.strip()

    model_config = {
        "extra": "forbid",  # Prevent accidental extra fields
    }


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def load_config_from_env() -> IssuerConfig:
    """Load configuration from environment variables.

    Returns:
        IssuerConfig instance with values from environment or defaults.
    """
    import os

    return IssuerConfig(
        log_level=os.getenv("NATSJWT_LOG_LEVEL", "INFO"),
        log_json=_env_bool(os.getenv("NATSJWT_LOG_JSON", "false")),
        redact_secrets=_env_bool(os.getenv("NATSJWT_REDACT", "true")),
        service_name=os.getenv("NATSJWT_SERVICE_NAME"),
        system_account_name=os.getenv("NATSJWT_SYSTEM_ACCOUNT_NAME", "SYS"),
        default_credential_bearer=_env_bool(os.getenv("NATSJWT_BEARER_DEFAULT", "false")),
    )


__all__ = [
    "IssuerConfig",
    "LogLevel",
    "load_config_from_env",
]
