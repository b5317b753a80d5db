"""Publish/subscribe permission sets.

A PermissionSet holds allow/deny subject-pattern lists for publish and
subscribe plus an optional response permission. Composition copies lists
verbatim: order and duplicates are preserved, and an empty or absent list is
left out of the output entirely. Leaving a list out means "no restriction"
to the message fabric, not "deny all".

Wire format::

    {"pub": {"allow": [...], "deny": [...]},
     "sub": {"allow": [...], "deny": [...]},
     "resp": {"max": 1, "ttl": 5000000000}}
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from pydantic import Field, field_validator

from .models import Bundle, coerce_bundle, duration_nanos
from .validity import parse_duration


class ResponsePermission(Bundle):
    """Permission to publish replies to received requests.

    Attributes:
        max_replies: Replies allowed per request. Zero or less disables it.
        ttl: How long the reply subject stays usable (None = no limit).
    """

    max_replies: int = 0
    ttl: Optional[timedelta] = None

    @field_validator("ttl", mode="before")
    @classmethod
    def validate_ttl(cls, v: Any) -> Any:
        """Accept Go-style duration strings ("5s", "1m30s")."""
        if isinstance(v, str):
            return parse_duration(v)
        return v


class PermissionSet(Bundle):
    """Allow/deny subject patterns for publish and subscribe."""

    allow_publish: Optional[list[str]] = None
    deny_publish: Optional[list[str]] = None
    allow_subscribe: Optional[list[str]] = None
    deny_subscribe: Optional[list[str]] = None
    response: Optional[ResponsePermission] = Field(default=None)

    def is_empty(self) -> bool:
        return not compose_permissions(self)


def _direction(allow: list[str] | None, deny: list[str] | None) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    if allow:
        out["allow"] = list(allow)
    if deny:
        out["deny"] = list(deny)
    return out


def compose_response(response: ResponsePermission | None) -> dict[str, int] | None:
    """Wire form of a response permission, or None when it does not apply.

    The permission applies only when ``max_replies > 0``; ``ttl`` is ignored
    otherwise.
    """
    if response is None or response.max_replies <= 0:
        return None
    out = {"max": response.max_replies}
    if response.ttl:
        out["ttl"] = duration_nanos(response.ttl)
    return out


def compose_permissions(permissions: PermissionSet | dict[str, Any] | None) -> dict[str, Any]:
    """Compose a permission set into its wire structure.

    Args:
        permissions: PermissionSet, mapping with the same keys, or None.

    Returns:
        Dict with only the non-empty sections (may be empty).

    Raises:
        InvalidDeclaration: If a mapping does not validate.
    """
    if permissions is None:
        return {}
    perms = coerce_bundle(PermissionSet, permissions, field="permissions")

    out: dict[str, Any] = {}
    pub = _direction(perms.allow_publish, perms.deny_publish)
    if pub:
        out["pub"] = pub
    sub = _direction(perms.allow_subscribe, perms.deny_subscribe)
    if sub:
        out["sub"] = sub
    resp = compose_response(perms.response)
    if resp is not None:
        out["resp"] = resp
    return out


__all__ = [
    "PermissionSet",
    "ResponsePermission",
    "compose_permissions",
    "compose_response",
]
