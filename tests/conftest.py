"""Shared fixtures: fresh key material for each role."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from natsjwt import KeyMaterial, KeyRole, create_key_material

NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def root_key() -> KeyMaterial:
    return create_key_material(KeyRole.ROOT)


@pytest.fixture
def tenant_key() -> KeyMaterial:
    return create_key_material(KeyRole.TENANT)


@pytest.fixture
def credential_key() -> KeyMaterial:
    return create_key_material(KeyRole.CREDENTIAL)


@pytest.fixture
def now() -> datetime:
    return NOW
