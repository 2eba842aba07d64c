"""Time utilities for console-nav."""

import time
from datetime import datetime


def get_timestamp_ms() -> int:
    """
    Get current wall-clock timestamp in milliseconds.

    Returns:
        Timestamp in milliseconds since Unix epoch
    """
    return int(time.time() * 1000)


def get_monotonic_ms() -> float:
    """Monotonic clock in milliseconds, for deadlines and latency."""
    return time.monotonic() * 1000


def format_timestamp(ts_ms: int, format_str: str | None = None) -> str:
    """
    Format timestamp to string.

    Args:
        ts_ms: Timestamp in milliseconds
        format_str: Optional format string (default: ISO format)

    Returns:
        Formatted timestamp string
    """
    dt = datetime.fromtimestamp(ts_ms / 1000)
    if format_str:
        return dt.strftime(format_str)
    return dt.isoformat()


def ms_to_seconds(duration_ms: float) -> float:
    """Convert a millisecond duration to seconds, clamping negatives to zero."""
    return max(0.0, duration_ms) / 1000.0
