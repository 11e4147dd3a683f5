"""Utility functions for paths, timestamps and timezone-local calendar keys."""

from datetime import UTC, date, datetime, time, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class InvalidTimezoneError(ValueError):
    """Raised when a timezone name cannot be resolved."""


def normalize_path(path: str | Path | None) -> str | None:
    """Return an absolute, user-expanded string form of ``path``."""
    if path is None:
        return None
    try:
        candidate = Path(path).expanduser()
    except (TypeError, ValueError, RuntimeError):
        return str(path) if isinstance(path, str) else None
    return str(candidate.absolute())


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Resolve an IANA timezone name.

    ``None``, an empty string and ``"system"`` all mean the local timezone of
    the host, represented as ``None``. Unknown names raise
    :class:`InvalidTimezoneError` since they are a configuration mistake, not a
    data problem.
    """
    if name is None or name == "" or name.lower() == "system":
        return None
    if name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        message = f"unknown timezone: {name!r}"
        raise InvalidTimezoneError(message) from exc


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 string into an aware datetime; naive values are UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_local(timestamp: datetime, tz: tzinfo | None) -> datetime:
    """Convert ``timestamp`` to ``tz`` (host local time when ``tz`` is None)."""
    if tz is None:
        return timestamp.astimezone()
    return timestamp.astimezone(tz)


def bucket_date(timestamp: datetime, tz: tzinfo | None) -> str:
    """Return the ``YYYY-MM-DD`` calendar day of ``timestamp`` in ``tz``."""
    return to_local(timestamp, tz).strftime("%Y-%m-%d")


def bucket_month(timestamp: datetime, tz: tzinfo | None) -> str:
    """Return the ``YYYY-MM`` calendar month of ``timestamp`` in ``tz``."""
    return to_local(timestamp, tz).strftime("%Y-%m")


def local_today(tz: tzinfo | None, now: datetime | None = None) -> date:
    """Return today's date in ``tz``, using the same conversion as the buckets."""
    current = now if now is not None else datetime.now(UTC)
    return to_local(current, tz).date()


def parse_date_bound(value: str, tz: tzinfo | None, *, end_of_day: bool) -> datetime:
    """Parse a ``YYYY-MM-DD`` or ISO-8601 bound for date filtering.

    A bare date is interpreted in ``tz`` and expands to the first (or, with
    ``end_of_day``, the last) instant of that local day.
    """
    try:
        day = date.fromisoformat(value)
    except ValueError:
        parsed = parse_timestamp(value)
        if parsed is None:
            message = f"invalid date: {value!r}"
            raise ValueError(message) from None
        return parsed
    moment = datetime.combine(day, time.max if end_of_day else time.min)
    if tz is None:
        return moment.astimezone()
    return moment.replace(tzinfo=tz)
