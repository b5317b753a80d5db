"""Signer resolution and the signing backend.

Provides:
- SigningBackend Protocol: the interface signing implementations satisfy
- NkeySigningBackend: Ed25519 signing with a role-tagged nkey seed
- resolve_signer(): picks the issuer identity and the tenant back-reference

The issuer embedded in a token is always the public key of the seed that
actually signs it. When a tenant signs credentials with a delegated signing
key, the credential must still point back at the tenant's primary key, and
that reference cannot be derived from the delegate's seed. It has to be
supplied explicitly.

Whether a delegate is authorized is checked by the message fabric when the
token is verified, not here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from .exceptions import InvalidSeed, MissingTenantBackReference, SigningFailure
from .keys import KeyMaterial, KeyRole, decode_public_key, validate_role

logger = logging.getLogger(__name__)

ALGORITHM = "ed25519-nkey"


# =========================================
# Protocol
# =========================================


@runtime_checkable
class SigningBackend(Protocol):
    """Protocol for signing backends.

    Implementations must provide:
    - algorithm: JWT ``alg`` identifier
    - public_key: encoded public key of the signing identity
    - sign(): raw signature over the given bytes
    """

    @property
    def algorithm(self) -> str: ...

    @property
    def public_key(self) -> str: ...

    def sign(self, data: bytes) -> bytes: ...


class NkeySigningBackend:
    """Ed25519 signing backend bound to one nkey seed."""

    def __init__(self, key: KeyMaterial):
        self._key = key
        try:
            self._private = ed25519.Ed25519PrivateKey.from_private_bytes(key.raw_private_bytes())
        except ValueError as e:
            raise InvalidSeed(f"Signing seed does not load: {e}", field="signer") from e

    @property
    def algorithm(self) -> str:
        return ALGORITHM

    @property
    def public_key(self) -> str:
        return self._key.public_key

    @property
    def role(self) -> KeyRole:
        return self._key.role

    def sign(self, data: bytes) -> bytes:
        try:
            return self._private.sign(data)
        except Exception as e:
            logger.error("Ed25519 signing failed for %s: %s", self._key.public_key, e)
            raise SigningFailure(f"Ed25519 signing failed: {e}", field="signer") from e


def verify_signature(public_key: str, data: bytes, signature: bytes) -> bool:
    """Check an Ed25519 signature against an encoded public key."""
    _, raw = decode_public_key(public_key)
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(raw).verify(signature, data)
    except InvalidSignature:
        return False
    return True


# =========================================
# Signer resolution
# =========================================


@dataclass(frozen=True)
class SignerResolution:
    """Outcome of signer resolution.

    Attributes:
        issuer: Public key embedded as the token issuer (the signing key).
        back_reference: Tenant primary key for credential tokens, else None.
        delegated: True when the signer is one of the declared delegates.
    """

    issuer: str
    back_reference: str | None = None
    delegated: bool = False


def coerce_signer(signer: KeyMaterial | str, expected_role: KeyRole) -> KeyMaterial:
    """Turn a seed or key material into key material of ``expected_role``.

    Raises:
        InvalidSeed: If a seed string does not parse.
        RoleMismatch: If the signer carries another role.
    """
    key = signer if isinstance(signer, KeyMaterial) else KeyMaterial.from_seed(signer)
    validate_role(key.public_key, expected_role, field="signer")
    return key


def resolve_signer(
    signer: KeyMaterial | str,
    *,
    expected_role: KeyRole,
    delegated_signers: Iterable[str] = (),
    back_reference: str | None = None,
    needs_back_reference: bool = False,
) -> SignerResolution:
    """Resolve the issuer and, for credential tokens, the tenant back-reference.

    Args:
        signer: Signing key material or seed.
        expected_role: Role the signer must carry.
        delegated_signers: Public keys the owning principal declared as
            delegated signers.
        back_reference: Explicit tenant primary key (credential tokens).
        needs_back_reference: Whether the token embeds a back-reference.

    Returns:
        SignerResolution.

    Raises:
        RoleMismatch: If the signer or back-reference has the wrong role.
        MissingTenantBackReference: If a delegated signer is used without an
            explicit back-reference.
    """
    key = coerce_signer(signer, expected_role)
    delegated = key.public_key in set(delegated_signers)

    if not needs_back_reference:
        return SignerResolution(issuer=key.public_key, delegated=delegated)

    if back_reference is not None:
        validate_role(back_reference, KeyRole.TENANT, field="tenant_back_reference")
        return SignerResolution(issuer=key.public_key, back_reference=back_reference, delegated=delegated)

    if delegated:
        raise MissingTenantBackReference(
            f"Signer {key.public_key} is a delegated signing key; "
            "the tenant's primary public key must be supplied explicitly",
            field="tenant_back_reference",
            signer=key.public_key,
        )

    return SignerResolution(issuer=key.public_key, back_reference=key.public_key, delegated=False)


__all__ = [
    "ALGORITHM",
    "NkeySigningBackend",
    "SignerResolution",
    "SigningBackend",
    "coerce_signer",
    "resolve_signer",
    "verify_signature",
]
