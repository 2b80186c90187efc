"""
Timestamp and interval utilities.

Analysis records carry the time the analysis refers to, supplied by the
producer. These helpers normalise such values to aware UTC datetimes and
ISO-8601 strings so that stored timestamps sort lexicographically.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

from ..errors import MalformedDataError

INTERVAL_PATTERN = re.compile(r"^(\d+)([mhd])$")
INTERVAL_UNITS = {"m": 60, "h": 3600, "d": 86400}
MIN_INTERVAL_SECONDS = 60
MAX_INTERVAL_SECONDS = 86400


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, int, float, datetime]) -> datetime:
    """
    Parse a timestamp into an aware UTC datetime.

    Args:
        value: ISO-8601 string (``Z`` suffix allowed), datetime, or epoch
            milliseconds

    Returns:
        Aware datetime in UTC. Naive inputs are assumed to be UTC.

    Raises:
        MalformedDataError: If the value cannot be interpreted
    """
    if isinstance(value, bool):
        raise MalformedDataError(
            f"Invalid timestamp: {value!r}",
            raw_data=str(value),
            expected_format="ISO-8601 or epoch milliseconds"
        )

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedDataError(
                f"Epoch timestamp out of range: {value}",
                raw_data=str(value),
                expected_format="epoch milliseconds"
            ) from e
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError as e:
            raise MalformedDataError(
                f"Invalid timestamp format: {value}",
                raw_data=value,
                expected_format="ISO-8601"
            ) from e
    else:
        raise MalformedDataError(
            f"Unsupported timestamp type: {type(value).__name__}",
            raw_data=repr(value),
            expected_format="ISO-8601 or epoch milliseconds"
        )

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """
    Format a datetime as an ISO-8601 UTC string.

    Args:
        dt: Datetime to format (naive values are treated as UTC)

    Returns:
        ISO8601 formatted string with ``+00:00`` offset
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def parse_interval(text: str) -> int:
    """
    Convert a strategy interval such as ``15m``, ``4h`` or ``1d`` to seconds.

    Raises:
        ValueError: If the format is wrong or the value falls outside 1m..1d
    """
    if not isinstance(text, str):
        raise ValueError(f"Interval must be a string, got {type(text).__name__}")

    match = INTERVAL_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Invalid interval format: {text!r} (expected e.g. '15m', '1h', '1d')")

    amount, unit = int(match.group(1)), match.group(2)
    seconds = amount * INTERVAL_UNITS[unit]

    if seconds < MIN_INTERVAL_SECONDS or seconds > MAX_INTERVAL_SECONDS:
        raise ValueError(f"Interval {text!r} must be between 1m and 1d")

    return seconds


def is_stale(ts: datetime, max_age_seconds: float, now: Optional[datetime] = None) -> bool:
    """Whether ``ts`` is older than ``max_age_seconds`` relative to ``now``."""
    if now is None:
        now = utc_now()

    return (now - ts).total_seconds() > max_age_seconds
