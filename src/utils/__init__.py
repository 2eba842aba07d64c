"""Utility modules for console-nav."""

from .logger import SessionLogger, get_logger
from .metrics import MetricsCollector
from .retry import retry_with_backoff
from .time import format_timestamp, get_monotonic_ms, get_timestamp_ms, ms_to_seconds

__all__ = [
    'SessionLogger',
    'get_logger',
    'MetricsCollector',
    'retry_with_backoff',
    'get_timestamp_ms',
    'get_monotonic_ms',
    'format_timestamp',
    'ms_to_seconds',
]
