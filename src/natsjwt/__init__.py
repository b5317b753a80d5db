from .builder import ClaimsBuilder
from .claims import Claims, CredentialClaims, RootClaims, TenantClaims
from .config import IssuerConfig, LogLevel, load_config_from_env
from .encoder import TokenEncoder, decode_token
from .exceptions import (
    ConfigurationError,
    ConflictingBounds,
    InvalidDeclaration,
    InvalidSeed,
    MissingTenantBackReference,
    NatsJwtError,
    RoleMismatch,
    SigningFailure,
    TokenDecodeError,
)
from .exports import ExportDeclaration, ExportKind, ImportDeclaration, ResponseType
from .issuer import RootBootstrap, SignedToken, TokenIssuer
from .keys import (
    KeyMaterial,
    KeyRole,
    create_key_material,
    derive_role_public_key,
    role_of_public_key,
    role_of_seed,
    validate_role,
)
from .limits import CredentialLimits, TenantLimits
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    IssuerLogFormatter,
    IssuerLoggerAdapter,
    setup_logging,
    get_issuer_logger,
)
from .permissions import PermissionSet, ResponsePermission, compose_permissions
from .signing import SignerResolution, resolve_signer
from .validity import ValiditySchedule, parse_duration, resolve_validity

__all__ = [
    'ClaimsBuilder',
    'Claims',
    'RootClaims',
    'TenantClaims',
    'CredentialClaims',
    'TokenEncoder',
    'decode_token',
    'TokenIssuer',
    'SignedToken',
    'RootBootstrap',
    'KeyMaterial',
    'KeyRole',
    'create_key_material',
    'derive_role_public_key',
    'role_of_public_key',
    'role_of_seed',
    'validate_role',
    'PermissionSet',
    'ResponsePermission',
    'compose_permissions',
    'TenantLimits',
    'CredentialLimits',
    'ExportDeclaration',
    'ImportDeclaration',
    'ExportKind',
    'ResponseType',
    'ValiditySchedule',
    'parse_duration',
    'resolve_validity',
    'SignerResolution',
    'resolve_signer',
    'NatsJwtError',
    'ConfigurationError',
    'RoleMismatch',
    'InvalidSeed',
    'ConflictingBounds',
    'MissingTenantBackReference',
    'SigningFailure',
    'InvalidDeclaration',
    'TokenDecodeError',
    'IssuerConfig',
    'LogLevel',
    'load_config_from_env',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'IssuerLogFormatter',
    'IssuerLoggerAdapter',
    'setup_logging',
    'get_issuer_logger',
]
