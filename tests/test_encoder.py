"""Tests for natsjwt.encoder."""

from __future__ import annotations

import base64
import json
from datetime import datetime

import pytest

from natsjwt import (
    ClaimsBuilder,
    KeyMaterial,
    KeyRole,
    SigningFailure,
    TokenDecodeError,
    TokenEncoder,
    create_key_material,
    decode_token,
)
from natsjwt.encoder import claims_id
from natsjwt.signing import NkeySigningBackend


@pytest.fixture
def encoder() -> TokenEncoder:
    return TokenEncoder()


@pytest.fixture
def tenant_claims(root_key: KeyMaterial, tenant_key: KeyMaterial, now: datetime):
    return ClaimsBuilder().build_tenant(tenant_key.public_key, root_key, name="T", expiry="1h", now=now)


def _segment(token: str, index: int) -> dict:
    part = token.split(".")[index]
    return json.loads(base64.urlsafe_b64decode(part + "=" * (-len(part) % 4)))


class TestEncode:
    """Tests for TokenEncoder.encode."""

    def test_header(self, encoder: TokenEncoder, tenant_claims, root_key: KeyMaterial, now: datetime) -> None:
        """Test the token header."""
        token = encoder.encode(tenant_claims, root_key, issued_at=now)
        assert _segment(token, 0) == {"typ": "JWT", "alg": "ed25519-nkey"}
        assert "=" not in token

    def test_payload_round_trip(
        self, encoder: TokenEncoder, tenant_claims, root_key: KeyMaterial, tenant_key: KeyMaterial, now: datetime
    ) -> None:
        """Test that the decoded payload carries the standard claims."""
        token = encoder.encode(tenant_claims, root_key, issued_at=now)
        payload = decode_token(token)
        assert payload["iss"] == root_key.public_key
        assert payload["sub"] == tenant_key.public_key
        assert payload["name"] == "T"
        assert payload["iat"] == int(now.timestamp())
        assert payload["exp"] == int(now.timestamp()) + 3600
        assert payload["nats"]["type"] == "account"

    def test_jti_is_content_hash(self, encoder: TokenEncoder, tenant_claims, root_key: KeyMaterial, now: datetime) -> None:
        """Test that jti hashes the rest of the payload."""
        payload = decode_token(encoder.encode(tenant_claims, root_key, issued_at=now))
        rest = {k: v for k, v in payload.items() if k != "jti"}
        assert payload["jti"] == claims_id(rest)

    def test_deterministic(self, encoder: TokenEncoder, tenant_claims, root_key: KeyMaterial, now: datetime) -> None:
        """Test that identical claims and issue time give identical tokens."""
        assert encoder.encode(tenant_claims, root_key, issued_at=now) == encoder.encode(
            tenant_claims, root_key.seed, issued_at=now
        )

    def test_signing_backend(self, encoder: TokenEncoder, tenant_claims, root_key: KeyMaterial, now: datetime) -> None:
        """Test signing through an explicit backend."""
        token = encoder.encode(tenant_claims, NkeySigningBackend(root_key), issued_at=now)
        assert decode_token(token)["iss"] == root_key.public_key

    def test_key_must_match_issuer(self, encoder: TokenEncoder, tenant_claims) -> None:
        """Test that a different key cannot sign the claims."""
        other = create_key_material(KeyRole.ROOT)
        with pytest.raises(SigningFailure) as exc_info:
            encoder.encode(tenant_claims, other)
        assert exc_info.value.field == "signing_key"

    def test_unsupported_key_type(self, encoder: TokenEncoder, tenant_claims) -> None:
        """Test that an unknown signing key type fails."""
        with pytest.raises(SigningFailure):
            encoder.encode(tenant_claims, 42)  # type: ignore[arg-type]


class TestDecode:
    """Tests for decode_token."""

    def test_garbage(self) -> None:
        """Test that non-tokens are rejected."""
        with pytest.raises(TokenDecodeError) as exc_info:
            decode_token("not-a-token")
        assert exc_info.value.field == "token"

    def test_swapped_payload(self, encoder: TokenEncoder, root_key: KeyMaterial, now: datetime) -> None:
        """Test that a payload from another token fails verification."""
        builder = ClaimsBuilder()
        first = encoder.encode(
            builder.build_tenant(create_key_material(KeyRole.TENANT).public_key, root_key, name="a"),
            root_key,
            issued_at=now,
        )
        second = encoder.encode(
            builder.build_tenant(create_key_material(KeyRole.TENANT).public_key, root_key, name="b"),
            root_key,
            issued_at=now,
        )
        h, _, sig = first.split(".")
        _, p, _ = second.split(".")
        forged = f"{h}.{p}.{sig}"

        with pytest.raises(TokenDecodeError) as exc_info:
            decode_token(forged)
        assert exc_info.value.field == "signature"
        assert decode_token(forged, verify=False)["name"] == "b"


class TestCredentialBlob:
    """Tests for build_credential_blob."""

    def test_exact_format(self) -> None:
        """Test the exact credentials file layout."""
        assert TokenEncoder.build_credential_blob("T", "S") == (
            "-----BEGIN NATS USER JWT-----\n"
            "T\n"
            "------END NATS USER JWT------\n"
            "\n"
            "-----BEGIN USER NKEY SEED-----\n"
            "S\n"
            "------END USER NKEY SEED------"
        )

