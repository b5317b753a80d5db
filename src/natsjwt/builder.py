"""Per-role claims assembly.

ClaimsBuilder composes role-specific claims from a subject public key, the
signer's key material and plain attachment bundles. Every build validates
roles first and either returns complete claims or raises; it never returns
a partial result.

Builds are pure functions of their arguments. The builder holds no mutable
state, so independent builds may run concurrently.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from .claims import CredentialClaims, RootClaims, TenantClaims
from .exceptions import ConflictingBounds, InvalidDeclaration, RoleMismatch
from .exports import ExportDeclaration, ImportDeclaration, coerce_exports, coerce_imports
from .keys import KeyMaterial, KeyRole, validate_role
from .limits import CredentialLimits, TenantLimits, compose_credential_limits, compose_tenant_limits
from .permissions import PermissionSet, compose_permissions
from .signing import resolve_signer
from .validity import DurationLike, InstantLike, ValiditySchedule, resolve_validity

logger = logging.getLogger(__name__)


def _validated_keys(keys: Iterable[str] | None, role: KeyRole, field: str) -> tuple[str, ...]:
    out = tuple(keys or ())
    for i, key in enumerate(out):
        validate_role(key, role, field=f"{field}[{i}]")
    return out


_VALIDITY_ARGS = frozenset(
    {"start", "start_at", "expiry", "expires_at", "now", "previous_start_at", "previous_expires_at"}
)


def _schedule(validity: ValiditySchedule | None, validity_args: dict[str, Any]) -> ValiditySchedule:
    """Use a resolved schedule or resolve one from keyword bounds, never both."""
    for key in sorted(validity_args):
        if key not in _VALIDITY_ARGS:
            raise InvalidDeclaration(f"Unknown validity argument: {key}", field=key)
    if validity is None:
        return resolve_validity(**validity_args)
    given = sorted(key for key, value in validity_args.items() if value is not None)
    if given:
        raise ConflictingBounds(
            f"validity: a resolved schedule was given together with {', '.join(given)}",
            field="validity",
            arguments=given,
        )
    return validity


class ClaimsBuilder:
    """Builds root, tenant and credential claims.

    Validity for each build is given either as ``validity`` (an already
    resolved schedule) or as the keyword arguments of ``resolve_validity``
    (``start``, ``start_at``, ``expiry``, ``expires_at``, ``now``,
    ``previous_start_at``, ``previous_expires_at``). Passing ``validity``
    together with any of those is ConflictingBounds; any other keyword is
    InvalidDeclaration.
    """

    def build_root(
        self,
        subject: str,
        signer: KeyMaterial | str,
        *,
        name: str,
        signing_keys: Iterable[str] | None = None,
        system_account: str | None = None,
        account_server_url: str | None = None,
        service_urls: Iterable[str] | None = None,
        strict_signing_key_usage: bool = False,
        tags: Iterable[str] | None = None,
        validity: ValiditySchedule | None = None,
        **validity_args: DurationLike | InstantLike | datetime | None,
    ) -> RootClaims:
        """Build self-signed root claims.

        Raises:
            RoleMismatch: If subject/signer are not root keys, the signer is
                not the subject, or a declared signing key is not root-role.
            InvalidSeed: If the signer seed does not parse.
            ConflictingBounds: If validity bounds conflict.
            InvalidDeclaration: If a validity keyword is unknown.
        """
        validate_role(subject, KeyRole.ROOT, field="subject")
        resolution = resolve_signer(signer, expected_role=KeyRole.ROOT)
        if resolution.issuer != subject:
            raise RoleMismatch(
                "Root claims must be self-signed: signer does not match subject",
                field="signer",
                expected=subject,
                actual=resolution.issuer,
            )
        keys = _validated_keys(signing_keys, KeyRole.ROOT, "signing_keys")
        if system_account is not None:
            validate_role(system_account, KeyRole.TENANT, field="system_account")

        claims = RootClaims(
            subject=subject,
            issuer=resolution.issuer,
            name=name,
            validity=_schedule(validity, validity_args),
            tags=tuple(tags or ()),
            signing_keys=keys,
            system_account=system_account,
            account_server_url=account_server_url,
            service_urls=tuple(service_urls or ()),
            strict_signing_key_usage=strict_signing_key_usage,
        )
        logger.debug("Built root claims for %s", subject)
        return claims

    def build_tenant(
        self,
        subject: str,
        signer: KeyMaterial | str,
        *,
        name: str,
        permissions: PermissionSet | dict[str, Any] | None = None,
        limits: TenantLimits | dict[str, Any] | None = None,
        exports: Iterable[ExportDeclaration | dict[str, Any]] | None = None,
        imports: Iterable[ImportDeclaration | dict[str, Any]] | None = None,
        signing_keys: Iterable[str] | None = None,
        description: str = "",
        info_url: str = "",
        tags: Iterable[str] | None = None,
        validity: ValiditySchedule | None = None,
        **validity_args: DurationLike | InstantLike | datetime | None,
    ) -> TenantClaims:
        """Build tenant claims signed by a root (or root signing) key.

        Imports name their source tenants by public key; the sources do not
        need to have been built.

        Raises:
            RoleMismatch: If subject is not a tenant key, the signer is not
                root-role, or a declared signing key / import source has the
                wrong role.
            InvalidSeed: If the signer seed does not parse.
            InvalidDeclaration: If a bundle fails validation or a validity
                keyword is unknown.
            ConflictingBounds: If validity bounds conflict.
        """
        validate_role(subject, KeyRole.TENANT, field="subject")
        resolution = resolve_signer(signer, expected_role=KeyRole.ROOT)
        keys = _validated_keys(signing_keys, KeyRole.TENANT, "signing_keys")

        claims = TenantClaims(
            subject=subject,
            issuer=resolution.issuer,
            name=name,
            validity=_schedule(validity, validity_args),
            tags=tuple(tags or ()),
            permissions=compose_permissions(permissions),
            limits=compose_tenant_limits(limits),
            exports=coerce_exports(exports),
            imports=coerce_imports(imports),
            signing_keys=keys,
            description=description,
            info_url=info_url,
        )
        logger.debug(
            "Built tenant claims for %s (%d exports, %d imports)",
            subject,
            len(claims.exports),
            len(claims.imports),
        )
        return claims

    def build_credential(
        self,
        subject: str,
        signer: KeyMaterial | str,
        *,
        name: str,
        tenant_back_reference: str | None = None,
        tenant_signing_keys: Iterable[str] | None = None,
        permissions: PermissionSet | dict[str, Any] | None = None,
        limits: CredentialLimits | dict[str, Any] | None = None,
        bearer: bool = False,
        source_networks: Iterable[str] | None = None,
        tags: Iterable[str] | None = None,
        validity: ValiditySchedule | None = None,
        **validity_args: DurationLike | InstantLike | datetime | None,
    ) -> CredentialClaims:
        """Build credential claims signed by a tenant (or tenant signing) key.

        Args:
            tenant_back_reference: The tenant's primary public key. Required
                when ``signer`` is a delegated signing key.
            tenant_signing_keys: Delegated signing keys the tenant declared;
                used to tell a delegated signer from the primary key. When
                neither this nor ``tenant_back_reference`` is given, the
                signer is taken to be the tenant's primary key and a warning
                is logged; pass an empty list to declare that the tenant has
                no delegates.

        Raises:
            RoleMismatch: If subject is not a credential key, the signer is
                not tenant-role, or the back-reference is not a tenant key.
            MissingTenantBackReference: If a delegated signer is used
                without ``tenant_back_reference``.
            InvalidSeed: If the signer seed does not parse.
            InvalidDeclaration: If a bundle fails validation or a validity
                keyword is unknown.
            ConflictingBounds: If validity bounds conflict.
        """
        validate_role(subject, KeyRole.CREDENTIAL, field="subject")
        resolution = resolve_signer(
            signer,
            expected_role=KeyRole.TENANT,
            delegated_signers=_validated_keys(tenant_signing_keys, KeyRole.TENANT, "tenant_signing_keys"),
            back_reference=tenant_back_reference,
            needs_back_reference=True,
        )
        if tenant_signing_keys is None and tenant_back_reference is None:
            logger.warning(
                "Credential %s: no tenant signing keys or back-reference given; "
                "assuming signer %s is the tenant's primary key",
                subject,
                resolution.issuer,
            )

        claims = CredentialClaims(
            subject=subject,
            issuer=resolution.issuer,
            name=name,
            validity=_schedule(validity, validity_args),
            tags=tuple(tags or ()),
            issuer_account=resolution.back_reference or resolution.issuer,
            permissions=compose_permissions(permissions),
            limits=compose_credential_limits(limits),
            bearer_token=bearer,
            source_networks=tuple(source_networks or ()),
        )
        logger.debug(
            "Built credential claims for %s (issuer %s, tenant %s)",
            subject,
            claims.issuer,
            claims.issuer_account,
        )
        return claims


__all__ = ["ClaimsBuilder"]
