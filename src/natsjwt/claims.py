"""Role-specific claim variants.

Claims are a closed set of three frozen dataclasses, one per role, each
carrying only the fields that role may hold:

- RootClaims: self-signed trust anchor (NATS operator)
- TenantClaims: signed by a root (NATS account)
- CredentialClaims: signed by a tenant (NATS user)

``payload()`` renders the JWT body without ``jti``/``iat``/``iss`` signing
metadata, which the encoder adds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from .exports import ExportDeclaration, ImportDeclaration, compose_export, compose_import
from .keys import KeyRole
from .validity import ValiditySchedule

JWT_VERSION = 2


@dataclass(frozen=True)
class _ClaimsBase:
    role: ClassVar[KeyRole]
    nats_type: ClassVar[str]

    subject: str = ""
    issuer: str = ""
    name: str = ""
    validity: ValiditySchedule = field(default_factory=ValiditySchedule)
    tags: tuple[str, ...] = ()

    def payload(self) -> dict[str, Any]:
        """JWT body: standard claims plus the ``nats`` section."""
        body: dict[str, Any] = {}
        body.update(self.validity.claims())
        body["iss"] = self.issuer
        body["name"] = self.name
        body["sub"] = self.subject
        nats = self.nats_section()
        if self.tags:
            nats["tags"] = list(self.tags)
        nats["type"] = self.nats_type
        nats["version"] = JWT_VERSION
        body["nats"] = nats
        return body

    def nats_section(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class RootClaims(_ClaimsBase):
    """Claims about a root principal. Issuer equals subject."""

    role: ClassVar[KeyRole] = KeyRole.ROOT
    nats_type: ClassVar[str] = "operator"

    signing_keys: tuple[str, ...] = ()
    system_account: str | None = None
    account_server_url: str | None = None
    service_urls: tuple[str, ...] = ()
    strict_signing_key_usage: bool = False

    def nats_section(self) -> dict[str, Any]:
        nats: dict[str, Any] = {}
        if self.signing_keys:
            nats["signing_keys"] = list(self.signing_keys)
        if self.account_server_url:
            nats["account_server_url"] = self.account_server_url
        if self.service_urls:
            nats["operator_service_urls"] = list(self.service_urls)
        if self.system_account:
            nats["system_account"] = self.system_account
        if self.strict_signing_key_usage:
            nats["strict_signing_key_usage"] = True
        return nats


@dataclass(frozen=True)
class TenantClaims(_ClaimsBase):
    """Claims about a tenant principal, signed by a root key.

    ``permissions`` are the default permissions the fabric applies to the
    tenant's credentials; ``limits`` is the composed wire structure.
    """

    role: ClassVar[KeyRole] = KeyRole.TENANT
    nats_type: ClassVar[str] = "account"

    permissions: dict[str, Any] = field(default_factory=dict)
    limits: dict[str, Any] = field(default_factory=dict)
    exports: tuple[ExportDeclaration, ...] = ()
    imports: tuple[ImportDeclaration, ...] = ()
    signing_keys: tuple[str, ...] = ()
    description: str = ""
    info_url: str = ""

    @property
    def imported_tenants(self) -> tuple[str, ...]:
        """Public keys of tenants this tenant imports from, in order."""
        return tuple(imp.source_tenant for imp in self.imports)

    def nats_section(self) -> dict[str, Any]:
        nats: dict[str, Any] = {}
        if self.exports:
            nats["exports"] = [compose_export(e) for e in self.exports]
        if self.imports:
            nats["imports"] = [compose_import(i) for i in self.imports]
        nats["limits"] = dict(self.limits)
        if self.signing_keys:
            nats["signing_keys"] = list(self.signing_keys)
        nats["default_permissions"] = {
            "pub": dict(self.permissions.get("pub", {})),
            "sub": dict(self.permissions.get("sub", {})),
        }
        if "resp" in self.permissions:
            nats["default_permissions"]["resp"] = dict(self.permissions["resp"])
        if self.description:
            nats["description"] = self.description
        if self.info_url:
            nats["info_url"] = self.info_url
        return nats


@dataclass(frozen=True)
class CredentialClaims(_ClaimsBase):
    """Claims about a credential principal, signed by a tenant key.

    ``issuer_account`` is the tenant's primary public key. It differs from
    ``issuer`` when a delegated tenant signing key signed the token.
    """

    role: ClassVar[KeyRole] = KeyRole.CREDENTIAL
    nats_type: ClassVar[str] = "user"

    issuer_account: str = ""
    permissions: dict[str, Any] = field(default_factory=dict)
    limits: dict[str, Any] = field(default_factory=dict)
    bearer_token: bool = False
    source_networks: tuple[str, ...] = ()

    def nats_section(self) -> dict[str, Any]:
        nats: dict[str, Any] = {}
        for section in ("pub", "sub", "resp"):
            if section in self.permissions:
                nats[section] = dict(self.permissions[section])
        if self.source_networks:
            nats["src"] = list(self.source_networks)
        nats.update(self.limits)
        if self.bearer_token:
            nats["bearer_token"] = True
        nats["issuer_account"] = self.issuer_account
        return nats


Claims = Union[RootClaims, TenantClaims, CredentialClaims]

__all__ = [
    "JWT_VERSION",
    "Claims",
    "CredentialClaims",
    "RootClaims",
    "TenantClaims",
]
