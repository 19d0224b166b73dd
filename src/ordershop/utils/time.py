"""Time utilities for UTC timestamp formatting."""

from datetime import datetime, timezone


def utc_now_z() -> str:
    """
    Get current UTC time as ISO 8601 string with Z suffix.

    Example:
        >>> utc_now_z()
        '2026-10-17T00:27:07.804867Z'
    """
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
