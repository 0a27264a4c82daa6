"""
Constrained parser for manifest time expressions.

Manifest time fields are never evaluated as code. Only these forms are
accepted:

Durations (visibleTime):
    "3 hours", "3.hours", "90 min", "2d"   integer + unit
    "PT3H", "P1W", "P1DT12H"               ISO 8601 duration (no years/months)
    10800                                  integer seconds

Instants (timeRangeMin, timeRangeMax):
    "now", "now - 1 week", "now + 2 days"  ("Time.now" is accepted for "now")
    "2026-01-15T00:00:00Z"                 ISO 8601 datetime (naive means UTC)
    TOML datetime values, integer epoch seconds

Anything else raises ConfigurationError naming the offending field.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from .errors import ConfigurationError


_UNIT_SECONDS = {
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "wk": 604800, "wks": 604800, "week": 604800, "weeks": 604800,
}

# 3 hours / 3.hours / 3h
_SIMPLE_DURATION_RE = re.compile(r"^(\d+)\s*\.?\s*([A-Za-z]+)$")

# P[n]W[n]D[T[n]H[n]M[n]S]
_ISO_DURATION_RE = re.compile(
    r"^P(?:(\d+)W)?(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$",
    re.IGNORECASE,
)

_NOW_RE = re.compile(r"^(?:Time\.)?now(?:\s*([+-])\s*(.+))?$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_iso_duration(text: str) -> Optional[timedelta]:
    match = _ISO_DURATION_RE.match(text)
    if not match or text.upper() in ("P", "PT") or text.upper().endswith("T"):
        return None
    weeks, days, hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return timedelta(weeks=weeks, days=days, hours=hours, minutes=minutes, seconds=seconds)


def _out_of_range(field: str, value: Any, e: Exception) -> ConfigurationError:
    return ConfigurationError(f"Invalid {field}: {value!r} is out of range ({e})")


def parse_duration(value: Any, field: str = "duration") -> timedelta:
    """
    Parse a duration expression.

    Args:
        value: Manifest value (string, integer seconds, or timedelta)
        field: Manifest field name, used in error messages

    Returns:
        The duration as a timedelta

    Raises:
        ConfigurationError: If the value is not in the accepted grammar
    """
    if isinstance(value, timedelta):
        return value
    try:
        return _parse_duration(value, field)
    except (OverflowError, ValueError) as e:
        raise _out_of_range(field, value, e) from e


def _parse_duration(value: Any, field: str) -> timedelta:
    if _is_number(value):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Invalid {field}: expected a duration, got {type(value).__name__}"
        )

    text = value.strip()
    if text.isdigit():
        return timedelta(seconds=int(text))

    match = _SIMPLE_DURATION_RE.match(text)
    if match:
        count, unit = int(match.group(1)), match.group(2).lower()
        if unit in _UNIT_SECONDS:
            return timedelta(seconds=count * _UNIT_SECONDS[unit])
        raise ConfigurationError(f"Invalid {field}: unknown time unit '{match.group(2)}'")

    delta = _parse_iso_duration(text)
    if delta is not None:
        return delta

    raise ConfigurationError(
        f"Invalid {field}: {value!r}. "
        "Use '<number> <unit>' (e.g. '3 hours') or an ISO duration (PT3H, P1W)"
    )


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_instant(value: Any, field: str = "instant", now: Optional[datetime] = None) -> datetime:
    """
    Parse an instant expression relative to ``now``.

    Args:
        value: Manifest value (string, datetime, or integer epoch seconds)
        field: Manifest field name, used in error messages
        now: Reference time for "now" expressions (default: current UTC time)

    Returns:
        A timezone-aware UTC datetime

    Raises:
        ConfigurationError: If the value is not in the accepted grammar
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if _is_number(value):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, ValueError, OSError) as e:
            raise _out_of_range(field, value, e) from e
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Invalid {field}: expected a time, got {type(value).__name__}"
        )

    if now is None:
        now = datetime.now(timezone.utc)
    text = value.strip()

    match = _NOW_RE.match(text)
    if match:
        sign, offset = match.groups()
        if sign is None:
            return _as_utc(now)
        delta = parse_duration(offset, field)
        try:
            return _as_utc(now + delta if sign == "+" else now - delta)
        except OverflowError as e:
            raise _out_of_range(field, value, e) from e

    try:
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    raise ConfigurationError(
        f"Invalid {field}: {value!r}. "
        "Use 'now', 'now - <duration>', 'now + <duration>' or an ISO datetime"
    )


def to_epoch(value: Any) -> float:
    """Epoch seconds for a datetime or number (naive datetimes are UTC)."""
    if isinstance(value, datetime):
        return _as_utc(value).timestamp()
    if _is_number(value):
        return value
    raise TypeError(f"Expected datetime or epoch seconds, got {type(value).__name__}")
