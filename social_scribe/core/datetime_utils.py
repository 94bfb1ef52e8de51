"""Datetime utilities for consistent timezone handling across the application."""

from datetime import datetime, timezone
from typing import Any, Optional, Union


def utc_now() -> datetime:
    """Get current UTC time - standardized across the application.

    Returns:
        Current datetime in UTC timezone.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare against ``utc_now()``."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso_datetime(value: Any) -> Optional[Union[datetime, str]]:
    """Parse an ISO 8601 string, keeping the raw string when it does not parse.

    Args:
        value: The raw value from the API.

    Returns:
        A datetime, the original string, or None for empty input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value


def parse_epoch_or_iso(value: Any) -> Optional[Union[datetime, str]]:
    """Parse a timestamp given as epoch milliseconds or an ISO 8601 string.

    Args:
        value: Integer milliseconds, a numeric string, an ISO string, or None.

    Returns:
        A UTC datetime, the original string when it cannot be parsed, or None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            return datetime.fromtimestamp(value // 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        if value.isdigit():
            return parse_epoch_or_iso(int(value))
        return parse_iso_datetime(value)
    return None
