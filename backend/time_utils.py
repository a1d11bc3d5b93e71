"""
Time utilities for the To-Do backend.

Single source of truth for "now" so token expiry, health probes and tests agree.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """
    Get current UTC time.

    Returns:
        timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def expires_in(minutes: int) -> datetime:
    """Absolute UTC expiry time ``minutes`` from now."""
    return utc_now() + timedelta(minutes=minutes)
