"""
Utility functions shared across ledgersync.
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def is_older_than(timestamp: float, now: float, seconds: float) -> bool:
    """
    Check if a timestamp is older than a duration.

    ## Parameters
    - `timestamp`: Reference instant, same clock as `now`
    - `now`: Current instant
    - `seconds`: Maximum allowed age

    ## Returns
    - `True` if strictly more than `seconds` elapsed between `timestamp` and `now`
    """
    if seconds < 0:
        raise ValueError("seconds must be non-negative")
    return now - timestamp > seconds


def parse_iso_timestamp(value: str) -> float | None:
    """Parse an ISO timestamp (with optional trailing Z) into unix seconds."""
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError) as e:
        logger.error(f"Failed to parse timestamp '{value}': {e}")
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def shorten_id(value: str | None) -> str:
    """Shorten long identifiers (hashes, addresses) for log lines."""
    if not value:
        return ""
    if len(value) > 16:
        return f"{value[:8]}...{value[-8:]}"
    return value
