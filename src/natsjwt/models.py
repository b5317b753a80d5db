"""Base model for attachment bundles.

Bundles are plain records supplied by the caller (permissions, limits,
exports, imports). They are Pydantic models so that dict input from a
configuration layer is validated the same way as typed input.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import InvalidDeclaration

_B = TypeVar("_B", bound="Bundle")


class Bundle(BaseModel):
    """Immutable, strict-keyed record."""

    model_config = ConfigDict(frozen=True, extra="forbid")


def coerce_bundle(model: type[_B], value: Any, *, field: str) -> _B:
    """Validate ``value`` as ``model``.

    Accepts an instance of ``model`` (returned as is) or a mapping.

    Raises:
        InvalidDeclaration: If validation fails; ``details["field"]`` names
            the offending input, including the nested location.
    """
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        where = f"{field}.{location}" if location else field
        raise InvalidDeclaration(f"{where}: {first.get('msg', 'invalid value')}", field=where) from e


def duration_nanos(value: timedelta) -> int:
    """Duration as integer nanoseconds (wire format for durations)."""
    return (value // timedelta(microseconds=1)) * 1000


__all__ = ["Bundle", "coerce_bundle", "duration_nanos"]
