"""Datetime coercion helpers used at every input boundary."""

import math
from datetime import datetime, timezone
from typing import Any

MS_PER_SECOND = 1000
MS_PER_HOUR = 60 * 60 * MS_PER_SECOND
MS_PER_DAY = 24 * MS_PER_HOUR


def ensure_aware(value: datetime) -> datetime:
    """Attach the local timezone to naive datetimes; aware values pass through."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def now_local() -> datetime:
    return datetime.now().astimezone()


def from_epoch_ms(value: float) -> datetime | None:
    """Convert epoch milliseconds to a local aware datetime (None if out of range)."""
    if not math.isfinite(value):
        return None
    try:
        return datetime.fromtimestamp(value / MS_PER_SECOND, tz=timezone.utc).astimezone()
    except (OverflowError, OSError, ValueError):
        return None


def to_epoch_ms(value: datetime) -> int:
    return int(ensure_aware(value).timestamp() * MS_PER_SECOND)


def to_datetime(value: Any) -> datetime | None:
    """
    Coerce a raw store value into an aware datetime.

    Accepts datetimes, epoch milliseconds (int/float) and ISO 8601 strings
    (a trailing 'Z' is allowed). Anything else, including NaN and
    unparseable strings, becomes None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    if isinstance(value, (int, float)):
        return from_epoch_ms(float(value))

    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(text))
        except ValueError:
            return None

    return None


def to_finite_number(value: Any) -> float | None:
    """Return value as a float when it is a finite number, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None
