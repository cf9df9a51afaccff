"""DateTime utilities for timezone-aware timestamp handling.

Cloud columns are TIMESTAMP WITHOUT TIME ZONE holding UTC values. The guest
store keeps ISO-8601 strings (usually with a trailing ``Z``). These helpers
convert between the two so both sides agree on instants and calendar dates.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """
    Get current UTC datetime without timezone info (offset-naive).

    Returns offset-naive datetime compatible with PostgreSQL TIMESTAMP WITHOUT TIME ZONE columns.

    Example:
        >>> now = utc_now()
        >>> print(now.tzinfo)
        None
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Lambda version for SQLAlchemy default/onupdate parameters
utc_now_lambda = lambda: datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[Union[datetime, str]]) -> Optional[datetime]:
    """
    Normalise a datetime or ISO-8601 string to an offset-naive UTC datetime.

    Naive inputs are assumed to already be UTC.

    Examples:
        >>> to_naive_utc("2024-03-01T20:00:00.000Z")
        datetime.datetime(2024, 3, 1, 20, 0)
        >>> to_naive_utc("2024-03-01T23:00:00+03:00")
        datetime.datetime(2024, 3, 1, 20, 0)
        >>> to_naive_utc(None) is None
        True
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_iso_z(value: datetime) -> str:
    """Render a naive-UTC (or aware) datetime the way the guest store writes it."""
    aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
