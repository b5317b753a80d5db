"""Validity windows for issued tokens.

Each bound (start, expiry) is given either as a relative duration or as an
absolute instant, never both:

- relative bounds roll: they resolve to ``now + duration`` on every build
- absolute bounds are fixed: they resolve to the same instant on every build

A missing bound, or a zero-length duration, means the token has no floor or
ceiling on that side. The resolver is stateless; previously persisted bounds
are only compared against, never reused.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

from .exceptions import ConflictingBounds, InvalidDeclaration

DurationLike = Union[timedelta, str, int, float]
InstantLike = Union[datetime, str, int, float]

_DURATION_UNITS = {
    "ns": timedelta(microseconds=1) / 1000,
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: DurationLike) -> timedelta:
    """Parse a duration.

    Accepts a ``timedelta``, a number of seconds, or a Go-style duration
    string such as ``"720h"``, ``"1h30m"``, ``"1.5s"`` or ``"-10m"``.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")

    text = value.strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"Invalid duration: {value!r}")

    total = timedelta(0)
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"Invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return total * sign


def parse_instant(value: InstantLike) -> datetime:
    """Parse an absolute instant into an aware UTC datetime.

    Accepts a ``datetime`` (naive values are taken as UTC), an RFC 3339
    string, or Unix seconds.

    Raises:
        ValueError: If the value cannot be interpreted as an instant.
    """
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid instant: {value!r}")
    elif isinstance(value, (int, float)):
        instant = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        instant = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid instant: {value!r}")

    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_unix(instant: datetime) -> int:
    """Unix seconds for ``instant`` (fractional seconds truncated)."""
    return int(instant.timestamp())


@dataclass(frozen=True)
class ValiditySchedule:
    """Resolved absolute validity window.

    Attributes:
        not_before: Token is not valid before this instant (None = no floor).
        expires: Token is not valid at or after this instant (None = no ceiling).
        unchanged: True when previously persisted bounds were supplied and
            both resolved bounds equal them; callers use it to skip no-op
            rebuilds.
    """

    not_before: datetime | None = None
    expires: datetime | None = None
    unchanged: bool = False

    def claims(self) -> dict[str, int]:
        """Wire fields (``nbf``/``exp``) for the present bounds."""
        out: dict[str, int] = {}
        if self.expires is not None:
            out["exp"] = to_unix(self.expires)
        if self.not_before is not None:
            out["nbf"] = to_unix(self.not_before)
        return out


def _resolve_bound(
    bound: str,
    relative: DurationLike | None,
    absolute: InstantLike | None,
    now: datetime,
) -> datetime | None:
    if relative is not None and absolute is not None:
        raise ConflictingBounds(
            f"{bound}: a relative duration and an absolute instant were both given",
            field=bound,
        )
    if absolute is not None:
        try:
            return parse_instant(absolute)
        except ValueError as e:
            raise InvalidDeclaration(f"{bound}: {e}", field=bound) from e
    if relative is None:
        return None
    try:
        duration = parse_duration(relative)
    except ValueError as e:
        raise InvalidDeclaration(f"{bound}: {e}", field=bound) from e
    if not duration:
        return None
    return now + duration


def resolve_validity(
    *,
    start: DurationLike | None = None,
    start_at: InstantLike | None = None,
    expiry: DurationLike | None = None,
    expires_at: InstantLike | None = None,
    now: datetime | None = None,
    previous_start_at: InstantLike | None = None,
    previous_expires_at: InstantLike | None = None,
) -> ValiditySchedule:
    """Resolve relative/absolute validity inputs into absolute bounds.

    Args:
        start: Relative start (rolling), e.g. ``"1h"``.
        start_at: Absolute start (fixed).
        expiry: Relative expiry (rolling), e.g. ``"720h"``.
        expires_at: Absolute expiry (fixed).
        now: Reference instant (default: current UTC time).
        previous_start_at: Bound persisted by the caller from the last build.
        previous_expires_at: Bound persisted by the caller from the last build.

    Returns:
        ValiditySchedule with the resolved bounds.

    Raises:
        ConflictingBounds: If a bound is given in both forms.
        InvalidDeclaration: If a duration or instant cannot be parsed.
    """
    reference = parse_instant(now) if now is not None else datetime.now(timezone.utc)

    not_before = _resolve_bound("start", start, start_at, reference)
    expires = _resolve_bound("expiry", expiry, expires_at, reference)

    unchanged = False
    if previous_start_at is not None or previous_expires_at is not None:
        prev_nbf = parse_instant(previous_start_at) if previous_start_at is not None else None
        prev_exp = parse_instant(previous_expires_at) if previous_expires_at is not None else None
        unchanged = _same_second(prev_nbf, not_before) and _same_second(prev_exp, expires)

    return ValiditySchedule(not_before=not_before, expires=expires, unchanged=unchanged)


def _same_second(a: datetime | None, b: datetime | None) -> bool:
    if a is None or b is None:
        return a is b
    return to_unix(a) == to_unix(b)


__all__ = [
    "ValiditySchedule",
    "parse_duration",
    "parse_instant",
    "resolve_validity",
    "to_unix",
]
