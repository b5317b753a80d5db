"""Per-role resource limits.

Values are copied field by field with no validation: ``-1`` means unlimited
and ``0`` on a storage quota disables that storage feature, but the message
fabric enforces those meanings, not this module. Root principals carry no
limits.
"""

from __future__ import annotations

from typing import Any, Optional

from .models import Bundle, coerce_bundle

UNLIMITED = -1

# Transport kinds recognized by the message fabric.
CONNECTION_TYPES = (
    "STANDARD",
    "WEBSOCKET",
    "LEAFNODE",
    "LEAFNODE_WS",
    "MQTT",
    "MQTT_WS",
    "IN_PROCESS",
)


class TenantLimits(Bundle):
    """Limits applied to a tenant and everything connected through it."""

    # Connection and traffic
    max_connections: int = UNLIMITED
    max_leaf_nodes: int = UNLIMITED
    max_data: int = UNLIMITED
    max_payload: int = UNLIMITED
    max_subscriptions: int = UNLIMITED
    max_imports: int = UNLIMITED
    max_exports: int = UNLIMITED
    allow_wildcard_exports: bool = True
    disallow_bearer: bool = False

    # Stream storage (all 0 = stream storage disabled)
    mem_storage: int = 0
    disk_storage: int = 0
    max_streams: int = 0
    max_consumers: int = 0
    max_ack_pending: int = 0
    mem_max_stream_bytes: int = 0
    disk_max_stream_bytes: int = 0
    max_bytes_required: bool = False


class CredentialLimits(Bundle):
    """Limits applied to a single credential's connections."""

    max_subscriptions: int = UNLIMITED
    max_data: int = UNLIMITED
    max_payload: int = UNLIMITED
    allowed_connection_types: Optional[list[str]] = None


def compose_tenant_limits(limits: TenantLimits | dict[str, Any] | None) -> dict[str, Any]:
    """Wire form of tenant limits; defaults apply when ``limits`` is None."""
    lim = coerce_bundle(TenantLimits, limits if limits is not None else {}, field="limits")
    return {
        "subs": lim.max_subscriptions,
        "data": lim.max_data,
        "payload": lim.max_payload,
        "imports": lim.max_imports,
        "exports": lim.max_exports,
        "wildcards": lim.allow_wildcard_exports,
        "disallow_bearer": lim.disallow_bearer,
        "conn": lim.max_connections,
        "leaf": lim.max_leaf_nodes,
        "mem_storage": lim.mem_storage,
        "disk_storage": lim.disk_storage,
        "streams": lim.max_streams,
        "consumer": lim.max_consumers,
        "max_ack_pending": lim.max_ack_pending,
        "mem_max_stream_bytes": lim.mem_max_stream_bytes,
        "disk_max_stream_bytes": lim.disk_max_stream_bytes,
        "max_bytes_required": lim.max_bytes_required,
    }


def compose_credential_limits(limits: CredentialLimits | dict[str, Any] | None) -> dict[str, Any]:
    """Wire form of credential limits, merged flat into the credential claims."""
    lim = coerce_bundle(CredentialLimits, limits if limits is not None else {}, field="limits")
    out: dict[str, Any] = {
        "subs": lim.max_subscriptions,
        "data": lim.max_data,
        "payload": lim.max_payload,
    }
    if lim.allowed_connection_types:
        out["allowed_connection_types"] = list(lim.allowed_connection_types)
    return out


__all__ = [
    "CONNECTION_TYPES",
    "UNLIMITED",
    "CredentialLimits",
    "TenantLimits",
    "compose_credential_limits",
    "compose_tenant_limits",
]
