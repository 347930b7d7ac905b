"""Time and timestamp utilities."""

import time
from datetime import datetime, timezone


def now_ms() -> int:
    """Get current wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def from_ms(timestamp: int | float) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime.

    Args:
        timestamp: Epoch milliseconds

    Returns:
        datetime object with UTC timezone
    """
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
