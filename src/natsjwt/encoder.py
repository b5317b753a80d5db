"""Token serialization, signing and credential blobs.

Wire format (JWT, NATS version 2):

    base64url(header) . base64url(payload) . base64url(signature)

- header: ``{"typ":"JWT","alg":"ed25519-nkey"}``
- payload: ``{"jti", "iat", "iss", "name", "sub", "exp"?, "nbf"?, "nats"}``
- signature: Ed25519 over ``header.payload`` by the issuer's seed

All base64url segments are unpadded. ``jti`` is the base32 SHA-256 of the
payload serialized without it, so the payload is deterministic for
identical claims and ``issued_at``.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any

from .claims import Claims
from .exceptions import RoleMismatch, SigningFailure, TokenDecodeError
from .keys import KeyMaterial
from .signing import ALGORITHM, NkeySigningBackend, SigningBackend, verify_signature
from .validity import parse_instant, to_unix

logger = logging.getLogger(__name__)

JWT_HEADER = {"typ": "JWT", "alg": ALGORITHM}

CREDENTIAL_BLOB_TEMPLATE = (
    "-----BEGIN NATS USER JWT-----\n"
    "{token}\n"
    "------END NATS USER JWT------\n"
    "\n"
    "-----BEGIN USER NKEY SEED-----\n"
    "{seed}\n"
    "------END USER NKEY SEED------"
)


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _json(data: dict[str, Any]) -> bytes:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def claims_id(payload: dict[str, Any]) -> str:
    """Content hash used as ``jti``."""
    digest = hashlib.sha256(_json(payload)).digest()
    return base64.b32encode(digest).decode("ascii").rstrip("=")


class TokenEncoder:
    """Serializes and signs claims."""

    def encode(
        self,
        claims: Claims,
        signing_key: KeyMaterial | str | SigningBackend,
        *,
        issued_at: datetime | int | None = None,
    ) -> str:
        """Sign ``claims`` and return the serialized token.

        Args:
            claims: Claims from ClaimsBuilder.
            signing_key: Key material, seed, or a SigningBackend for the
                claims issuer.
            issued_at: ``iat`` value (default: now).

        Raises:
            SigningFailure: If the key does not match the claims issuer or the
                signature operation fails.
        """
        backend = self._backend(signing_key)
        if backend.public_key != claims.issuer:
            raise SigningFailure(
                f"Signing key {backend.public_key} does not match claims issuer {claims.issuer}",
                field="signing_key",
            )

        when = datetime.now(timezone.utc) if issued_at is None else parse_instant(issued_at)
        body = claims.payload()
        payload: dict[str, Any] = {"iat": to_unix(when)}
        payload.update(body)
        payload = {"jti": claims_id(payload), **payload}

        signing_input = f"{_b64url(_json(JWT_HEADER))}.{_b64url(_json(payload))}"
        signature = backend.sign(signing_input.encode("ascii"))
        token = f"{signing_input}.{_b64url(signature)}"
        logger.debug("Encoded %s token for %s", claims.nats_type, claims.subject)
        return token

    @staticmethod
    def _backend(signing_key: KeyMaterial | str | SigningBackend) -> SigningBackend:
        if isinstance(signing_key, KeyMaterial):
            return NkeySigningBackend(signing_key)
        if isinstance(signing_key, str):
            return NkeySigningBackend(KeyMaterial.from_seed(signing_key))
        if isinstance(signing_key, SigningBackend):
            return signing_key
        raise SigningFailure(f"Unsupported signing key type: {type(signing_key).__name__}", field="signing_key")

    @staticmethod
    def build_credential_blob(token: str, seed: str) -> str:
        """Combine a credential token and its seed into a credentials file.

        Pure string composition; the markers (including the uneven dash
        counts) are what message-fabric clients parse.
        """
        return CREDENTIAL_BLOB_TEMPLATE.format(token=token, seed=seed)


def decode_token(token: str, *, verify: bool = True) -> dict[str, Any]:
    """Decode a serialized token and return its payload.

    Args:
        token: Serialized token.
        verify: Check the signature against the payload's ``iss``.

    Raises:
        TokenDecodeError: If the token is malformed, uses another algorithm,
            or (with ``verify``) its signature does not match the issuer.
    """
    parts = token.strip().split(".") if isinstance(token, str) else []
    if len(parts) != 3:
        raise TokenDecodeError("Token must have three segments", field="token")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64url_decode(header_b64))
        payload = json.loads(_b64url_decode(payload_b64))
        signature = _b64url_decode(signature_b64)
    except (binascii.Error, ValueError) as e:
        raise TokenDecodeError(f"Token segment does not decode: {e}", field="token") from e

    if not isinstance(header, dict) or header.get("alg") != ALGORITHM:
        raise TokenDecodeError(f"Unsupported token algorithm: {header!r}", field="header")
    if not isinstance(payload, dict):
        raise TokenDecodeError("Token payload is not an object", field="payload")

    if verify:
        issuer = payload.get("iss", "")
        try:
            valid = verify_signature(issuer, f"{header_b64}.{payload_b64}".encode("ascii"), signature)
        except RoleMismatch as e:
            raise TokenDecodeError(f"Token issuer is not a public key: {e.message}", field="iss") from e
        if not valid:
            raise TokenDecodeError("Token signature does not verify", field="signature")
    return payload


__all__ = [
    "CREDENTIAL_BLOB_TEMPLATE",
    "JWT_HEADER",
    "TokenEncoder",
    "claims_id",
    "decode_token",
]
