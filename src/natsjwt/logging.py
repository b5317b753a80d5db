"""Logging utilities for natsjwt.

This module provides:
- Logging configuration from IssuerConfig
- Safe preview utilities for sensitive data
- Secret redaction (nkey seeds, signed tokens, credential blobs)
- Structured logging with subject/issuer context
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import IssuerConfig, LogLevel


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|seed|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=]+)',
    r'S[OAUNCXP][A-Z2-7]{56}',  # nkey seeds
    r'eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*',  # JWTs
    r'(?:-----BEGIN\s+[A-Z ]+-----).*?(?:------END\s+[A-Z ]+------)',  # credential blob sections
]

_SECRET_RE = [re.compile(p, re.DOTALL) for p in SECRET_PATTERNS]


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Converts any value to a single-line string, normalizes whitespace and
    truncates to ``limit`` characters.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns from text.

    Removes nkey seeds, signed tokens, credential blob sections and common
    credential assignments (``seed=...``, ``token: ...``). Public keys are
    left intact.

    Args:
        text: The text to redact
        replacement: String to replace secrets with (default: "[REDACTED]")

    Returns:
        Text with secrets redacted
    """
    if not isinstance(text, str):
        return text

    result = text
    for pattern in _SECRET_RE:
        result = pattern.sub(replacement, result)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Create a safe log value with preview and optional redaction.

    Redaction runs before truncation so that a secret cut in half by the
    length limit is still removed.
    """
    text = value if isinstance(value, str) else safe_preview(value, limit=10 * limit)
    if redact:
        text = redact_secrets(text)
    return safe_preview(text, limit=limit)


_STANDARD_RECORD_KEYS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "subject", "issuer",
})


class IssuerLogFormatter(logging.Formatter):
    """Formatter that includes subject/issuer context and optional JSON output.

    This formatter:
    - Extracts subject and issuer public keys from log records (if available)
    - Formats logs as JSON or plain text
    - Redacts seeds and tokens automatically
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record."""
        subject = getattr(record, "subject", None)
        issuer = getattr(record, "issuer", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            if subject:
                log_data["subject"] = subject
            if issuer:
                log_data["issuer"] = issuer

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_KEYS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = redact_secrets(log_data["exception"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if self.include_context and subject:
            parts.append(f"subject={subject}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class IssuerLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds subject and issuer public keys to log records.

    Usage:
        logger = get_issuer_logger(__name__)
        logger.info("Issued token", claims=claims)
    """

    def __init__(
        self,
        logger: logging.Logger,
        subject: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.subject = subject
        self.issuer = issuer

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Process log message and add subject/issuer context."""
        subject = kwargs.pop("subject", self.subject)
        issuer = kwargs.pop("issuer", self.issuer)

        claims = kwargs.pop("claims", None)
        if claims is not None:
            subject = subject or getattr(claims, "subject", None)
            issuer = issuer or getattr(claims, "issuer", None)

        extra = dict(kwargs.get("extra") or {})
        if subject:
            extra["subject"] = subject
        if issuer:
            extra["issuer"] = issuer
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[IssuerConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: Optional[bool] = None,
    service_name: Optional[str] = None,
) -> None:
    """Configure root logging from IssuerConfig.

    Args:
        config: IssuerConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Override ``config.redact_secrets``
        service_name: Override ``config.service_name``
    """
    if config is None:
        from .config import load_config_from_env
        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        IssuerLogFormatter(
            include_context=True,
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=config.redact_secrets if redact_secrets is None else redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    name = service_name or config.service_name
    if name:
        logging.getLogger(name).setLevel(log_level)


def get_issuer_logger(
    name: str,
    subject: Optional[str] = None,
    issuer: Optional[str] = None,
) -> IssuerLoggerAdapter:
    """Get a logger adapter carrying subject/issuer context.

    Example:
        logger = get_issuer_logger(__name__)
        logger.info("Issued tenant token", claims=claims)
    """
    return IssuerLoggerAdapter(logging.getLogger(name), subject=subject, issuer=issuer)


__all__ = [
    "SECRET_PATTERNS",
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "IssuerLogFormatter",
    "IssuerLoggerAdapter",
    "setup_logging",
    "get_issuer_logger",
]
