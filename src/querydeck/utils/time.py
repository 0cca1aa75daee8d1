"""Time utilities for UTC timestamp formatting."""

from datetime import datetime, timezone


def utc_now_z() -> str:
    """
    Get current UTC time as ISO 8601 string with Z suffix.
    
    Returns:
        ISO 8601 UTC timestamp ending with 'Z' (e.g., '2025-12-23T00:27:07.804867Z')
    """
    return to_utc_z(datetime.now(timezone.utc))


def to_utc_z(dt: datetime) -> str:
    """
    Convert datetime to ISO 8601 UTC string with Z suffix.

    Microseconds are always rendered so that stored timestamps compare
    lexicographically in the same order as they compare in time.
    
    Args:
        dt: Datetime object (must be timezone-aware)
        
    Returns:
        ISO 8601 UTC timestamp ending with 'Z' (e.g., '2025-12-23T00:27:07.000000Z')
        
    Raises:
        ValueError: If datetime is naive (not timezone-aware)
    """
    if dt.tzinfo is None:
        raise ValueError(
            f"Naive datetime not allowed. Got {dt}. "
            "Use datetime.now(timezone.utc) or dt.replace(tzinfo=timezone.utc)"
        )
    
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat(timespec="microseconds").replace("+00:00", "Z")


def normalize_utc_z(value: str | datetime) -> str:
    """
    Normalize an ISO 8601 string or aware datetime to the stored Z format.

    Strings without an offset are rejected rather than guessed.

    Example:
        >>> normalize_utc_z("2024-03-01T10:00:00+02:00")
        '2024-03-01T08:00:00.000000Z'
    """
    if isinstance(value, datetime):
        return to_utc_z(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"Invalid ISO 8601 timestamp: {value!r}") from e
    return to_utc_z(parsed)
