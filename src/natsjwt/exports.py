"""Cross-tenant export and import declarations.

An export exposes a subject space of one tenant; an import consumes a
subject space another tenant exports. Imports name the source tenant by
public key only, never by its claims or token. Two tenants that import from
each other can therefore be built independently and in any order: each build
only needs the other's public key, which is known as soon as its key
material exists.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import field_validator, model_validator

from .keys import KeyRole, validate_role
from .models import Bundle, coerce_bundle, duration_nanos
from .validity import parse_duration


class ExportKind(str, Enum):
    """What an export carries: a message stream or a request/reply service."""

    STREAM = "stream"
    SERVICE = "service"


class ResponseType(str, Enum):
    """How many replies a service export sends per request."""

    SINGLETON = "Singleton"
    STREAM = "Stream"
    CHUNKED = "Chunked"


class ExportDeclaration(Bundle):
    """A subject space this tenant exposes to other tenants."""

    subject: str
    kind: ExportKind
    name: str = ""
    token_required: bool = False
    response_type: Optional[ResponseType] = None
    response_threshold: Optional[timedelta] = None
    account_token_position: Optional[int] = None
    advertise: bool = False
    allow_trace: bool = False
    description: str = ""
    info_url: str = ""

    @field_validator("response_threshold", mode="before")
    @classmethod
    def validate_threshold(cls, v: Any) -> Any:
        """Accept Go-style duration strings ("5s")."""
        if isinstance(v, str):
            return parse_duration(v)
        return v

    @model_validator(mode="after")
    def check_service_fields(self) -> ExportDeclaration:
        if self.kind is ExportKind.STREAM and (self.response_type or self.response_threshold):
            raise ValueError("response_type and response_threshold apply to service exports only")
        return self


class ImportDeclaration(Bundle):
    """A subject space this tenant consumes from another tenant.

    ``source_tenant`` is the exporting tenant's public key. It is a plain
    reference: the source does not have to be built yet.
    """

    subject: str
    source_tenant: str
    kind: ExportKind
    name: str = ""
    activation_token: Optional[str] = None
    local_subject: Optional[str] = None
    share: bool = False
    allow_trace: bool = False


def compose_export(export: ExportDeclaration) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if export.name:
        out["name"] = export.name
    out["subject"] = export.subject
    out["type"] = export.kind.value
    if export.token_required:
        out["token_req"] = True
    if export.response_type is not None:
        out["response_type"] = export.response_type.value
    if export.response_threshold:
        out["response_threshold"] = duration_nanos(export.response_threshold)
    if export.account_token_position:
        out["account_token_position"] = export.account_token_position
    if export.advertise:
        out["advertise"] = True
    if export.allow_trace:
        out["allow_trace"] = True
    if export.description:
        out["description"] = export.description
    if export.info_url:
        out["info_url"] = export.info_url
    return out


def compose_import(imp: ImportDeclaration) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if imp.name:
        out["name"] = imp.name
    out["subject"] = imp.subject
    out["account"] = imp.source_tenant
    if imp.activation_token:
        out["token"] = imp.activation_token
    if imp.local_subject:
        out["local_subject"] = imp.local_subject
    out["type"] = imp.kind.value
    if imp.share:
        out["share"] = True
    if imp.allow_trace:
        out["allow_trace"] = True
    return out


def coerce_exports(exports: Iterable[ExportDeclaration | dict[str, Any]] | None) -> tuple[ExportDeclaration, ...]:
    """Validate export declarations, preserving order.

    Raises:
        InvalidDeclaration: For the first declaration that fails validation.
    """
    return tuple(
        coerce_bundle(ExportDeclaration, export, field=f"exports[{i}]")
        for i, export in enumerate(exports or ())
    )


def coerce_imports(imports: Iterable[ImportDeclaration | dict[str, Any]] | None) -> tuple[ImportDeclaration, ...]:
    """Validate import declarations, preserving order.

    Each ``source_tenant`` must be a tenant-role public key.

    Raises:
        InvalidDeclaration: For the first declaration that fails validation.
        RoleMismatch: If a source is not a tenant public key.
    """
    out = []
    for i, imp in enumerate(imports or ()):
        declaration = coerce_bundle(ImportDeclaration, imp, field=f"imports[{i}]")
        validate_role(declaration.source_tenant, KeyRole.TENANT, field=f"imports[{i}].source_tenant")
        out.append(declaration)
    return tuple(out)


__all__ = [
    "ExportDeclaration",
    "ExportKind",
    "ImportDeclaration",
    "ResponseType",
    "coerce_exports",
    "coerce_imports",
    "compose_export",
    "compose_import",
]
