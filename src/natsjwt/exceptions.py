"""Unified exception hierarchy for natsjwt.

All errors raised by the claims engine inherit from NatsJwtError. This module
provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for mapping codes back to exception types

Usage:
    from natsjwt.exceptions import NatsJwtError, RoleMismatch

    try:
        issuer.issue_tenant(...)
    except NatsJwtError as e:
        report(e.code, e.message, e.details.get("field"))

Every build error carries ``details["field"]`` naming the offending input.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "NatsJwtError",
    "ConfigurationError",
    "RoleMismatch",
    "InvalidSeed",
    "ConflictingBounds",
    "MissingTenantBackReference",
    "SigningFailure",
    "InvalidDeclaration",
    "TokenDecodeError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
]


# ---- Exception Hierarchy ----------------------------------------------------


class NatsJwtError(Exception):
    """Base exception for all natsjwt errors.

    Attributes:
        code: Stable error code string (e.g. "ROLE_MISMATCH").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)

    @property
    def field(self) -> str | None:
        """Name of the offending input, if the error is tied to one."""
        return self.details.get("field")


class ConfigurationError(NatsJwtError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class RoleMismatch(NatsJwtError):
    """Public key prefix does not match the expected role."""

    code: str = "ROLE_MISMATCH"
    message: str = "Public key does not match the expected role"


class InvalidSeed(NatsJwtError):
    """Seed does not parse or cannot regenerate a key."""

    code: str = "INVALID_SEED"
    message: str = "Invalid seed"


class ConflictingBounds(NatsJwtError):
    """Both a relative and an absolute form were given for one validity bound."""

    code: str = "CONFLICTING_BOUNDS"
    message: str = "Relative and absolute validity bounds are mutually exclusive"


class MissingTenantBackReference(NatsJwtError):
    """Credential signed by a delegated tenant key without an explicit tenant."""

    code: str = "MISSING_TENANT_BACK_REFERENCE"
    message: str = "Delegated signer used without an explicit tenant back-reference"


class SigningFailure(NatsJwtError):
    """Underlying signature operation failed."""

    code: str = "SIGNING_FAILURE"
    message: str = "Signing failed"


class InvalidDeclaration(NatsJwtError):
    """Attachment bundle (permission, limit, export, import) failed validation."""

    code: str = "INVALID_DECLARATION"
    message: str = "Invalid declaration"


class TokenDecodeError(NatsJwtError):
    """Serialized token is malformed or its signature does not verify."""

    code: str = "TOKEN_DECODE_ERROR"
    message: str = "Token could not be decoded"


# ---- Error Registry ---------------------------------------------------------

_E = TypeVar("_E", bound=type[NatsJwtError])


class ErrorRegistry:
    """Registry for mapping stable error codes to exception types."""

    def __init__(self) -> None:
        self._errors: dict[str, type[NatsJwtError]] = {}

    def register(self, code: str, error_cls: type[NatsJwtError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[NatsJwtError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[NatsJwtError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("MY_CUSTOM_ERROR")
        class MyCustomError(NatsJwtError):
            code = "MY_CUSTOM_ERROR"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("INTERNAL_ERROR", NatsJwtError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("ROLE_MISMATCH", RoleMismatch)
error_registry.register("INVALID_SEED", InvalidSeed)
error_registry.register("CONFLICTING_BOUNDS", ConflictingBounds)
error_registry.register("MISSING_TENANT_BACK_REFERENCE", MissingTenantBackReference)
error_registry.register("SIGNING_FAILURE", SigningFailure)
error_registry.register("INVALID_DECLARATION", InvalidDeclaration)
error_registry.register("TOKEN_DECODE_ERROR", TokenDecodeError)
