"""Tests for natsjwt.builder."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import pytest

from natsjwt import (
    ClaimsBuilder,
    ConflictingBounds,
    InvalidDeclaration,
    InvalidSeed,
    KeyMaterial,
    KeyRole,
    MissingTenantBackReference,
    RoleMismatch,
    ValiditySchedule,
    create_key_material,
    resolve_validity,
)


@pytest.fixture
def builder() -> ClaimsBuilder:
    return ClaimsBuilder()


class TestBuildRoot:
    """Tests for root claims."""

    def test_self_signed(self, builder: ClaimsBuilder, root_key: KeyMaterial) -> None:
        """Test that root claims are issued by their own subject."""
        claims = builder.build_root(root_key.public_key, root_key, name="root")
        assert claims.issuer == claims.subject == root_key.public_key
        body = claims.payload()
        assert body["nats"]["type"] == "operator"
        assert body["nats"]["version"] == 2
        assert "exp" not in body

    def test_signing_keys_and_system_account(
        self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial
    ) -> None:
        """Test root-level declarations."""
        signing = create_key_material(KeyRole.ROOT)
        claims = builder.build_root(
            root_key.public_key,
            root_key.seed,
            name="root",
            signing_keys=[signing.public_key],
            system_account=tenant_key.public_key,
            service_urls=["nats://localhost:4222"],
        )
        nats = claims.payload()["nats"]
        assert nats["signing_keys"] == [signing.public_key]
        assert nats["system_account"] == tenant_key.public_key
        assert nats["operator_service_urls"] == ["nats://localhost:4222"]

    def test_not_self_signed(self, builder: ClaimsBuilder, root_key: KeyMaterial) -> None:
        """Test that another root key cannot sign root claims."""
        other = create_key_material(KeyRole.ROOT)
        with pytest.raises(RoleMismatch) as exc_info:
            builder.build_root(root_key.public_key, other, name="root")
        assert exc_info.value.field == "signer"

    def test_wrong_subject_role(self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial) -> None:
        """Test that a tenant subject is rejected."""
        with pytest.raises(RoleMismatch) as exc_info:
            builder.build_root(tenant_key.public_key, root_key, name="root")
        assert exc_info.value.field == "subject"

    def test_signing_key_role(self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial) -> None:
        """Test that root signing keys must be root-role."""
        with pytest.raises(RoleMismatch) as exc_info:
            builder.build_root(root_key.public_key, root_key, name="root", signing_keys=[tenant_key.public_key])
        assert exc_info.value.field == "signing_keys[0]"


class TestBuildTenant:
    """Tests for tenant claims."""

    def test_permissions_and_limits(self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial) -> None:
        """Test a tenant with publish permission and a connection limit."""
        claims = builder.build_tenant(
            tenant_key.public_key,
            root_key,
            name="T",
            permissions={"allow_publish": ["app.>"]},
            limits={"max_connections": 10},
        )
        assert claims.issuer == root_key.public_key
        nats = claims.payload()["nats"]
        assert nats["type"] == "account"
        assert nats["limits"]["conn"] == 10
        assert nats["default_permissions"]["pub"] == {"allow": ["app.>"]}
        assert nats["default_permissions"]["sub"] == {}

    def test_signed_by_root_signing_key(self, builder: ClaimsBuilder, tenant_key: KeyMaterial) -> None:
        """Test that any root-role key may sign a tenant."""
        signing = create_key_material(KeyRole.ROOT)
        claims = builder.build_tenant(tenant_key.public_key, signing, name="T")
        assert claims.issuer == signing.public_key

    def test_signer_must_be_root(self, builder: ClaimsBuilder, tenant_key: KeyMaterial) -> None:
        """Test that a tenant key cannot sign a tenant."""
        with pytest.raises(RoleMismatch) as exc_info:
            builder.build_tenant(tenant_key.public_key, tenant_key, name="T")
        assert exc_info.value.field == "signer"

    def test_subject_must_be_tenant(self, builder: ClaimsBuilder, root_key: KeyMaterial, credential_key: KeyMaterial) -> None:
        """Test that a credential key is not a tenant subject."""
        with pytest.raises(RoleMismatch) as exc_info:
            builder.build_tenant(credential_key.public_key, root_key, name="T")
        assert exc_info.value.field == "subject"

    def test_bad_seed(self, builder: ClaimsBuilder, tenant_key: KeyMaterial) -> None:
        """Test that an unparsable signer seed raises InvalidSeed."""
        with pytest.raises(InvalidSeed):
            builder.build_tenant(tenant_key.public_key, "SOBROKEN", name="T")

    def test_mutual_imports(self, builder: ClaimsBuilder, root_key: KeyMaterial) -> None:
        """Test that two tenants importing from each other build independently."""
        a = create_key_material(KeyRole.TENANT)
        b = create_key_material(KeyRole.TENANT)

        claims_a = builder.build_tenant(
            a.public_key,
            root_key,
            name="A",
            exports=[{"subject": "a.svc", "kind": "service"}],
            imports=[{"subject": "b.events", "source_tenant": b.public_key, "kind": "stream"}],
        )
        claims_b = builder.build_tenant(
            b.public_key,
            root_key,
            name="B",
            exports=[{"subject": "b.events", "kind": "stream"}],
            imports=[{"subject": "a.svc", "source_tenant": a.public_key, "kind": "service"}],
        )

        assert claims_a.imported_tenants == (b.public_key,)
        assert claims_b.imported_tenants == (a.public_key,)
        assert claims_a.payload()["nats"]["imports"][0]["account"] == b.public_key
        assert claims_b.payload()["nats"]["exports"] == [{"subject": "b.events", "type": "stream"}]

    def test_invalid_export(self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial) -> None:
        """Test that a bad export fails the whole build."""
        with pytest.raises(InvalidDeclaration):
            builder.build_tenant(tenant_key.public_key, root_key, name="T", exports=[{"subject": "x"}])

    def test_tags_and_description(self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial) -> None:
        """Test optional descriptive fields."""
        claims = builder.build_tenant(
            tenant_key.public_key,
            root_key,
            name="T",
            tags=["env:prod", "team:a"],
            description="tenant T",
        )
        nats = claims.payload()["nats"]
        assert nats["tags"] == ["env:prod", "team:a"]
        assert nats["description"] == "tenant T"


class TestBuildCredential:
    """Tests for credential claims."""

    def test_primary_signer(
        self, builder: ClaimsBuilder, tenant_key: KeyMaterial, credential_key: KeyMaterial
    ) -> None:
        """Test that the primary tenant key is its own back-reference."""
        claims = builder.build_credential(
            credential_key.public_key,
            tenant_key,
            name="alice",
            permissions={"allow_subscribe": ["app.>"]},
            limits={"max_subscriptions": 5},
        )
        assert claims.issuer == tenant_key.public_key
        assert claims.issuer_account == tenant_key.public_key
        nats = claims.payload()["nats"]
        assert nats["type"] == "user"
        assert nats["sub"] == {"allow": ["app.>"]}
        assert nats["subs"] == 5
        assert nats["issuer_account"] == tenant_key.public_key
        assert "bearer_token" not in nats

    def test_delegated_signer(
        self, builder: ClaimsBuilder, tenant_key: KeyMaterial, credential_key: KeyMaterial
    ) -> None:
        """Test that a delegated signer issues while pointing back at the tenant."""
        delegate = create_key_material(KeyRole.TENANT)
        claims = builder.build_credential(
            credential_key.public_key,
            delegate,
            name="alice",
            tenant_back_reference=tenant_key.public_key,
            tenant_signing_keys=[delegate.public_key],
        )
        assert claims.issuer == delegate.public_key
        assert claims.issuer_account == tenant_key.public_key

    def test_delegated_signer_without_back_reference(
        self, builder: ClaimsBuilder, credential_key: KeyMaterial
    ) -> None:
        """Test that a delegated signer alone cannot name its tenant."""
        delegate = create_key_material(KeyRole.TENANT)
        with pytest.raises(MissingTenantBackReference) as exc_info:
            builder.build_credential(
                credential_key.public_key,
                delegate,
                name="alice",
                tenant_signing_keys=[delegate.public_key],
            )
        assert exc_info.value.field == "tenant_back_reference"

    def test_back_reference_must_be_tenant(
        self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial, credential_key: KeyMaterial
    ) -> None:
        """Test that the back-reference is role-checked."""
        with pytest.raises(RoleMismatch) as exc_info:
            builder.build_credential(
                credential_key.public_key,
                tenant_key,
                name="alice",
                tenant_back_reference=root_key.public_key,
            )
        assert exc_info.value.field == "tenant_back_reference"

    def test_signer_must_be_tenant(
        self, builder: ClaimsBuilder, root_key: KeyMaterial, credential_key: KeyMaterial
    ) -> None:
        """Test that a root key cannot sign a credential."""
        with pytest.raises(RoleMismatch):
            builder.build_credential(credential_key.public_key, root_key, name="alice")

    def test_bearer_and_networks(
        self, builder: ClaimsBuilder, tenant_key: KeyMaterial, credential_key: KeyMaterial
    ) -> None:
        """Test bearer flag and source network restriction."""
        claims = builder.build_credential(
            credential_key.public_key,
            tenant_key,
            name="alice",
            bearer=True,
            source_networks=["10.0.0.0/8"],
        )
        nats = claims.payload()["nats"]
        assert nats["bearer_token"] is True
        assert nats["src"] == ["10.0.0.0/8"]


class TestValidity:
    """Tests for validity handling across roles."""

    @pytest.mark.parametrize("role", ["root", "tenant", "credential"])
    def test_conflicting_bounds(
        self,
        role: str,
        builder: ClaimsBuilder,
        root_key: KeyMaterial,
        tenant_key: KeyMaterial,
        credential_key: KeyMaterial,
        now: datetime,
    ) -> None:
        """Test that every role rejects relative plus absolute expiry."""
        bounds = {"expiry": "1h", "expires_at": now + timedelta(days=1), "now": now}
        with pytest.raises(ConflictingBounds):
            if role == "root":
                builder.build_root(root_key.public_key, root_key, name="r", **bounds)
            elif role == "tenant":
                builder.build_tenant(tenant_key.public_key, root_key, name="t", **bounds)
            else:
                builder.build_credential(credential_key.public_key, tenant_key, name="c", **bounds)

    def test_resolved_expiry(
        self, builder: ClaimsBuilder, tenant_key: KeyMaterial, credential_key: KeyMaterial, now: datetime
    ) -> None:
        """Test that a relative expiry becomes an absolute exp claim."""
        claims = builder.build_credential(
            credential_key.public_key, tenant_key, name="c", expiry="24h", now=now
        )
        assert claims.validity.expires == now + timedelta(hours=24)
        assert claims.payload()["exp"] == int((now + timedelta(hours=24)).timestamp())

    def test_zero_expiry_is_no_expiry(
        self, builder: ClaimsBuilder, tenant_key: KeyMaterial, credential_key: KeyMaterial, now: datetime
    ) -> None:
        """Test that a zero duration leaves the claim out like an absent bound."""
        zero = builder.build_credential(credential_key.public_key, tenant_key, name="c", expiry=0, now=now)
        absent = builder.build_credential(credential_key.public_key, tenant_key, name="c", now=now)
        assert zero.payload() == absent.payload()
        assert "exp" not in zero.payload()

    def test_prebuilt_schedule(
        self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial, now: datetime
    ) -> None:
        """Test that a resolved schedule is used as is."""
        schedule = ValiditySchedule(not_before=now, expires=now + timedelta(days=1))
        claims = builder.build_tenant(tenant_key.public_key, root_key, name="t", validity=schedule)
        assert claims.validity is schedule

    def test_schedule_with_bound_keywords(
        self, builder: ClaimsBuilder, root_key: KeyMaterial, tenant_key: KeyMaterial, now: datetime
    ) -> None:
        """Test that a resolved schedule plus bound keywords is a conflict, not a silent drop."""
        schedule = resolve_validity(expiry="1h", now=now)
        with pytest.raises(ConflictingBounds) as exc_info:
            builder.build_tenant(
                tenant_key.public_key,
                root_key,
                name="t",
                validity=schedule,
                expires_at="2031-01-01T00:00:00Z",
            )
        assert exc_info.value.field == "validity"
        assert exc_info.value.details["arguments"] == ["expires_at"]

    @pytest.mark.parametrize("role", ["root", "tenant", "credential"])
    def test_unknown_validity_keyword(
        self,
        role: str,
        builder: ClaimsBuilder,
        root_key: KeyMaterial,
        tenant_key: KeyMaterial,
        credential_key: KeyMaterial,
    ) -> None:
        """Test that a misspelled bound keyword names itself in a structured error."""
        with pytest.raises(InvalidDeclaration) as exc_info:
            if role == "root":
                builder.build_root(root_key.public_key, root_key, name="r", expires_in="1h")
            elif role == "tenant":
                builder.build_tenant(tenant_key.public_key, root_key, name="t", expires_in="1h")
            else:
                builder.build_credential(credential_key.public_key, tenant_key, name="c", expires_in="1h")
        assert exc_info.value.field == "expires_in"


class TestSignerListWarning:
    """Tests for the primary-key assumption on credentials."""

    def test_warns_without_signer_list(
        self,
        caplog: pytest.LogCaptureFixture,
        builder: ClaimsBuilder,
        tenant_key: KeyMaterial,
        credential_key: KeyMaterial,
    ) -> None:
        """Test that an undeclared signer list is logged as an assumption."""
        with caplog.at_level(logging.WARNING, logger="natsjwt.builder"):
            claims = builder.build_credential(credential_key.public_key, tenant_key, name="c")
        assert claims.issuer_account == tenant_key.public_key
        assert any("primary key" in r.getMessage() for r in caplog.records)

    def test_quiet_with_declared_signers(
        self,
        caplog: pytest.LogCaptureFixture,
        builder: ClaimsBuilder,
        tenant_key: KeyMaterial,
        credential_key: KeyMaterial,
    ) -> None:
        """Test that an explicit, empty signer list suppresses the warning."""
        with caplog.at_level(logging.WARNING, logger="natsjwt.builder"):
            builder.build_credential(credential_key.public_key, tenant_key, name="c", tenant_signing_keys=[])
        assert not [r for r in caplog.records if r.name == "natsjwt.builder"]
