"""Token issuance facade.

TokenIssuer wires ClaimsBuilder and TokenEncoder together: each ``issue_*``
call builds the claims for one role, signs them, and returns a SignedToken.
Credential issuance can also return the combined credentials blob.

``bootstrap_root`` creates a complete root principal: root keys, an
optional root signing key, and an optional system tenant signed by the root.

The issuer holds only immutable configuration and may be shared across
threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from .builder import ClaimsBuilder
from .claims import Claims, CredentialClaims, TenantClaims
from .config import IssuerConfig
from .encoder import TokenEncoder
from .exceptions import InvalidSeed
from .exports import ExportDeclaration, ImportDeclaration
from .keys import KeyMaterial, KeyRole, create_key_material
from .limits import CredentialLimits, TenantLimits
from .logging import get_issuer_logger
from .permissions import PermissionSet
from .validity import ValiditySchedule

logger = get_issuer_logger(__name__)


@dataclass(frozen=True)
class SignedToken:
    """Result of one issuance.

    Attributes:
        token: Serialized, signed token.
        claims: Claims that were signed.
        credential_blob: Credentials file content (credential role only, and
            only when the credential seed was supplied).
    """

    token: str
    claims: Claims
    credential_blob: str | None = None

    @property
    def validity(self) -> ValiditySchedule:
        """Resolved bounds; persist them to detect no-op rebuilds."""
        return self.claims.validity

    @property
    def subject(self) -> str:
        return self.claims.subject

    @property
    def issuer(self) -> str:
        return self.claims.issuer


@dataclass(frozen=True)
class RootBootstrap:
    """Everything created by ``TokenIssuer.bootstrap_root``."""

    root_key: KeyMaterial
    root: SignedToken
    signing_key: KeyMaterial | None = None
    system_account_key: KeyMaterial | None = None
    system_account: SignedToken | None = None


class TokenIssuer:
    """Builds and signs tokens for all three roles."""

    def __init__(
        self,
        config: IssuerConfig | None = None,
        *,
        builder: ClaimsBuilder | None = None,
        encoder: TokenEncoder | None = None,
    ) -> None:
        self._config = config or IssuerConfig()
        self._builder = builder or ClaimsBuilder()
        self._encoder = encoder or TokenEncoder()

    @property
    def config(self) -> IssuerConfig:
        return self._config

    def _sign(self, claims: Claims, signer: KeyMaterial | str, issued_at: datetime | int | None) -> str:
        token = self._encoder.encode(claims, signer, issued_at=issued_at)
        logger.info("Issued %s token %s", claims.role.value, claims.name, claims=claims)
        return token

    def issue_root(
        self,
        root: KeyMaterial | str,
        *,
        name: str,
        signing_keys: Iterable[str] | None = None,
        system_account: str | None = None,
        account_server_url: str | None = None,
        service_urls: Iterable[str] | None = None,
        strict_signing_key_usage: bool = False,
        tags: Iterable[str] | None = None,
        issued_at: datetime | int | None = None,
        **validity_args: Any,
    ) -> SignedToken:
        """Issue a self-signed root token.

        Args:
            root: Root key material or seed; signs its own claims.
            signing_keys: Root-role keys allowed to sign tenant tokens.
            system_account: Public key of the system tenant.
            **validity_args: ``validity`` or ``resolve_validity`` arguments.
        """
        key = root if isinstance(root, KeyMaterial) else KeyMaterial.from_seed(root, KeyRole.ROOT)
        claims = self._builder.build_root(
            key.public_key,
            key,
            name=name,
            signing_keys=signing_keys,
            system_account=system_account,
            account_server_url=account_server_url,
            service_urls=service_urls,
            strict_signing_key_usage=strict_signing_key_usage,
            tags=tags,
            **validity_args,
        )
        return SignedToken(token=self._sign(claims, key, issued_at), claims=claims)

    def issue_tenant(
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
        issued_at: datetime | int | None = None,
        **validity_args: Any,
    ) -> SignedToken:
        """Issue a tenant token signed by a root key or root signing key.

        Args:
            subject: Tenant public key.
            signer: Root key material or seed.
            imports: Import declarations; sources are named by public key.
            signing_keys: Tenant-role keys allowed to sign credentials.
            **validity_args: ``validity`` or ``resolve_validity`` arguments.
        """
        claims: TenantClaims = self._builder.build_tenant(
            subject,
            signer,
            name=name,
            permissions=permissions,
            limits=limits,
            exports=exports,
            imports=imports,
            signing_keys=signing_keys,
            description=description,
            info_url=info_url,
            tags=tags,
            **validity_args,
        )
        return SignedToken(token=self._sign(claims, signer, issued_at), claims=claims)

    def issue_credential(
        self,
        subject: str,
        signer: KeyMaterial | str,
        *,
        name: str,
        tenant_back_reference: str | None = None,
        tenant_signing_keys: Iterable[str] | None = None,
        permissions: PermissionSet | dict[str, Any] | None = None,
        limits: CredentialLimits | dict[str, Any] | None = None,
        bearer: bool | None = None,
        source_networks: Iterable[str] | None = None,
        tags: Iterable[str] | None = None,
        credential_seed: str | None = None,
        issued_at: datetime | int | None = None,
        **validity_args: Any,
    ) -> SignedToken:
        """Issue a credential token signed by a tenant key or tenant signing key.

        Args:
            subject: Credential public key.
            signer: Tenant key material or seed.
            tenant_back_reference: Tenant primary public key; required when
                ``signer`` is a delegated signing key.
            tenant_signing_keys: The tenant's declared delegated signers
                (pass an empty list when it has none).
            bearer: Bearer flag (default from configuration).
            credential_seed: Credential seed; when given, the result carries
                the credentials blob.
            **validity_args: ``validity`` or ``resolve_validity`` arguments.
        """
        claims: CredentialClaims = self._builder.build_credential(
            subject,
            signer,
            name=name,
            tenant_back_reference=tenant_back_reference,
            tenant_signing_keys=tenant_signing_keys,
            permissions=permissions,
            limits=limits,
            bearer=self._config.default_credential_bearer if bearer is None else bearer,
            source_networks=source_networks,
            tags=tags,
            **validity_args,
        )
        token = self._sign(claims, signer, issued_at)
        blob = None
        if credential_seed is not None:
            if KeyMaterial.from_seed(credential_seed, KeyRole.CREDENTIAL).public_key != subject:
                raise InvalidSeed("Credential seed does not match the credential subject", field="credential_seed")
            blob = self._encoder.build_credential_blob(token, credential_seed)
        return SignedToken(token=token, claims=claims, credential_blob=blob)

    def bootstrap_root(
        self,
        name: str,
        *,
        root_key: KeyMaterial | None = None,
        generate_signing_key: bool = False,
        create_system_account: bool = False,
        issued_at: datetime | int | None = None,
        **validity_args: Any,
    ) -> RootBootstrap:
        """Create a root principal with its token.

        Args:
            name: Root name.
            root_key: Existing root key material (default: generate one).
            generate_signing_key: Also create a root signing key and list it
                in the root's signing keys.
            create_system_account: Also create a system tenant, named from
                configuration, signed by the root key.
            **validity_args: Validity for the root token.
        """
        key = root_key or create_key_material(KeyRole.ROOT)
        signing_key = create_key_material(KeyRole.ROOT) if generate_signing_key else None

        system_key = None
        system_token = None
        if create_system_account:
            system_key = create_key_material(KeyRole.TENANT)
            system_token = self.issue_tenant(
                system_key.public_key,
                key,
                name=self._config.system_account_name,
                issued_at=issued_at,
            )

        root_token = self.issue_root(
            key,
            name=name,
            signing_keys=[signing_key.public_key] if signing_key else None,
            system_account=system_key.public_key if system_key else None,
            issued_at=issued_at,
            **validity_args,
        )
        logger.info(
            "Bootstrapped root %s (signing key: %s, system tenant: %s)",
            name,
            signing_key is not None,
            system_key is not None,
            subject=key.public_key,
        )
        return RootBootstrap(
            root_key=key,
            root=root_token,
            signing_key=signing_key,
            system_account_key=system_key,
            system_account=system_token,
        )


__all__ = [
    "RootBootstrap",
    "SignedToken",
    "TokenIssuer",
]
