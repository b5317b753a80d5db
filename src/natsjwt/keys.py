"""Role-tagged key material and nkey text encoding.

Public keys and seeds use the NATS nkey text form: a role prefix, the 32 raw
Ed25519 bytes and a CRC-16 checksum, base32-encoded without padding.

    root        public "O..."   seed "SO..."
    tenant      public "A..."   seed "SA..."
    credential  public "U..."   seed "SU..."

The prefix is the only thing role validation looks at. Ed25519 itself is
provided by ``cryptography``.
"""

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass
from enum import Enum

from cryptography.hazmat.primitives.asymmetric import ed25519

from .exceptions import InvalidSeed, RoleMismatch

# Seed marker occupies the top five bits of the first seed byte ("S").
PREFIX_BYTE_SEED = 18 << 3

_RAW_KEY_LEN = 32


class KeyRole(str, Enum):
    """Principal roles in the trust hierarchy.

    - ROOT: trust anchor (NATS operator)
    - TENANT: namespace principal signed by a root (NATS account)
    - CREDENTIAL: leaf identity signed by a tenant (NATS user)
    """

    ROOT = "root"
    TENANT = "tenant"
    CREDENTIAL = "credential"

    @property
    def prefix_byte(self) -> int:
        return _PREFIX_BYTES[self]

    @property
    def public_prefix(self) -> str:
        """First character of an encoded public key for this role."""
        return _PUBLIC_PREFIXES[self]

    @property
    def seed_prefix(self) -> str:
        """First two characters of an encoded seed for this role."""
        return "S" + _PUBLIC_PREFIXES[self]


_PREFIX_BYTES = {
    KeyRole.ROOT: 14 << 3,
    KeyRole.TENANT: 0,
    KeyRole.CREDENTIAL: 20 << 3,
}

_PUBLIC_PREFIXES = {
    KeyRole.ROOT: "O",
    KeyRole.TENANT: "A",
    KeyRole.CREDENTIAL: "U",
}

_ROLES_BY_PREFIX_BYTE = {byte: role for role, byte in _PREFIX_BYTES.items()}


# =========================================
# Text encoding
# =========================================


def _crc16(data: bytes) -> int:
    # CRC-16/XMODEM (poly 0x1021, init 0), as used by nkeys.
    return binascii.crc_hqx(data, 0)


def _b32encode(raw: bytes) -> str:
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def _b32decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 8)
    return base64.b32decode(text + padding)


def _checked(raw: bytes) -> bytes:
    return raw + struct.pack("<H", _crc16(raw))


def _strip_checksum(raw: bytes) -> bytes | None:
    if len(raw) < 3:
        return None
    body, checksum = raw[:-2], raw[-2:]
    if struct.unpack("<H", checksum)[0] != _crc16(body):
        return None
    return body


def encode_public_key(role: KeyRole, raw_public: bytes) -> str:
    """Encode 32 raw Ed25519 public-key bytes for ``role``."""
    return _b32encode(_checked(bytes([role.prefix_byte]) + raw_public))


def encode_seed(role: KeyRole, raw_seed: bytes) -> str:
    """Encode 32 raw Ed25519 private-key bytes as a ``role`` seed."""
    prefix = role.prefix_byte
    b1 = PREFIX_BYTE_SEED | (prefix >> 5)
    b2 = (prefix & 31) << 3
    return _b32encode(_checked(bytes([b1, b2]) + raw_seed))


def decode_public_key(public_key: str) -> tuple[KeyRole, bytes]:
    """Decode an encoded public key into its role and raw bytes.

    Raises:
        RoleMismatch: If the text is not a well-formed public key.
    """
    if not isinstance(public_key, str) or not public_key:
        raise RoleMismatch("Public key is empty or not a string", reason="malformed")
    try:
        raw = _b32decode(public_key)
    except (binascii.Error, ValueError):
        raise RoleMismatch(f"Public key is not valid base32: {public_key[:8]}...", reason="malformed")

    body = _strip_checksum(raw)
    if body is None:
        raise RoleMismatch(f"Public key checksum mismatch: {public_key[:8]}...", reason="checksum")
    if len(body) != _RAW_KEY_LEN + 1:
        raise RoleMismatch(f"Public key has wrong length: {public_key[:8]}...", reason="length")

    role = _ROLES_BY_PREFIX_BYTE.get(body[0])
    if role is None:
        raise RoleMismatch(f"Unknown public key prefix: {public_key[:1]}", reason="prefix")
    return role, body[1:]


def decode_seed(seed: str) -> tuple[KeyRole, bytes]:
    """Decode an encoded seed into its role and raw private bytes.

    Raises:
        InvalidSeed: If the seed is malformed or carries an unknown role.
    """
    if isinstance(seed, bytes):
        seed = seed.decode("ascii", errors="replace")
    if not isinstance(seed, str) or not seed:
        raise InvalidSeed("Seed is empty or not a string")
    try:
        raw = _b32decode(seed.strip())
    except (binascii.Error, ValueError):
        raise InvalidSeed("Seed is not valid base32")

    body = _strip_checksum(raw)
    if body is None:
        raise InvalidSeed("Seed checksum mismatch")
    if len(body) != _RAW_KEY_LEN + 2:
        raise InvalidSeed("Seed has wrong length")

    if body[0] & 248 != PREFIX_BYTE_SEED:
        raise InvalidSeed("Value is not a seed")
    prefix = ((body[0] & 7) << 5) | ((body[1] & 248) >> 3)
    role = _ROLES_BY_PREFIX_BYTE.get(prefix)
    if role is None:
        raise InvalidSeed(f"Seed carries an unsupported key type: {seed[:2]}")
    return role, body[2:]


# =========================================
# Role validation
# =========================================


def role_of_public_key(public_key: str) -> KeyRole:
    """Return the role encoded in ``public_key``."""
    role, _ = decode_public_key(public_key)
    return role


def role_of_seed(seed: str) -> KeyRole:
    """Return the role encoded in ``seed``."""
    role, _ = decode_seed(seed)
    return role


def validate_role(public_key: str, expected_role: KeyRole, *, field: str = "public_key") -> None:
    """Check that ``public_key`` belongs to ``expected_role``.

    Args:
        public_key: Encoded public key.
        expected_role: Role the key must carry.
        field: Name reported in the error when validation fails.

    Raises:
        RoleMismatch: If the key is malformed or its prefix names another role.
    """
    try:
        actual = role_of_public_key(public_key)
    except RoleMismatch as e:
        raise RoleMismatch(
            f"{field}: {e.message}",
            field=field,
            expected=expected_role.value,
            reason=e.details.get("reason"),
        ) from e
    if actual is not expected_role:
        raise RoleMismatch(
            f"{field}: expected a {expected_role.value} key ({expected_role.public_prefix}...), "
            f"got a {actual.value} key ({public_key[:1]}...)",
            field=field,
            expected=expected_role.value,
            actual=actual.value,
        )


def derive_role_public_key(seed: str) -> str:
    """Regenerate the encoded public key for ``seed``.

    Deterministic: the same seed always yields the same public key.

    Raises:
        InvalidSeed: If the seed does not parse or regenerate a key.
    """
    role, raw_seed = decode_seed(seed)
    try:
        private = ed25519.Ed25519PrivateKey.from_private_bytes(raw_seed)
    except ValueError as e:
        raise InvalidSeed(f"Seed does not regenerate a key: {e}") from e
    return encode_public_key(role, private.public_key().public_bytes_raw())


# =========================================
# KeyMaterial
# =========================================


@dataclass(frozen=True)
class KeyMaterial:
    """Role-tagged keypair.

    Construction validates that the public key carries ``role`` and that the
    seed regenerates it.
    """

    role: KeyRole
    public_key: str
    seed: str

    def __post_init__(self) -> None:
        if not isinstance(self.role, KeyRole):
            object.__setattr__(self, "role", KeyRole(self.role))
        validate_role(self.public_key, self.role)
        seed_role = role_of_seed(self.seed)
        if seed_role is not self.role:
            raise InvalidSeed(
                f"Seed is a {seed_role.value} seed, expected {self.role.value}",
                field="seed",
            )
        if derive_role_public_key(self.seed) != self.public_key:
            raise InvalidSeed("Seed does not regenerate the public key", field="seed")

    @classmethod
    def from_seed(cls, seed: str, role: KeyRole | None = None) -> KeyMaterial:
        """Build key material from a seed, optionally asserting its role.

        Raises:
            InvalidSeed: If the seed is malformed or is not a ``role`` seed.
        """
        seed_role = role_of_seed(seed)
        if role is not None and seed_role is not role:
            raise InvalidSeed(
                f"Expected a {role.value} seed ({role.seed_prefix}...), got {seed[:2]}...",
                field="seed",
            )
        return cls(role=seed_role, public_key=derive_role_public_key(seed), seed=seed.strip())

    def raw_private_bytes(self) -> bytes:
        _, raw = decode_seed(self.seed)
        return raw

    def __repr__(self) -> str:
        return f"KeyMaterial(role={self.role.value!r}, public_key={self.public_key!r})"


def create_key_material(role: KeyRole) -> KeyMaterial:
    """Generate fresh key material for ``role``."""
    private = ed25519.Ed25519PrivateKey.generate()
    seed = encode_seed(role, private.private_bytes_raw())
    public_key = encode_public_key(role, private.public_key().public_bytes_raw())
    return KeyMaterial(role=role, public_key=public_key, seed=seed)


__all__ = [
    "KeyRole",
    "KeyMaterial",
    "create_key_material",
    "decode_public_key",
    "decode_seed",
    "derive_role_public_key",
    "encode_public_key",
    "encode_seed",
    "role_of_public_key",
    "role_of_seed",
    "validate_role",
]
