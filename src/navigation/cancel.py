"""Cooperative cancellation for navigation sessions."""

import threading

from exceptions import SessionCancelled
from utils.time import ms_to_seconds


class CancellationToken:
    """
    Thread-safe cancellation flag checked at every suspension point.

    Another thread (a UI stop button, a signal handler) calls cancel();
    the navigation thread notices at its next wait or frame request.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Raise SessionCancelled if cancellation has fired."""
        if self._event.is_set():
            raise SessionCancelled("Navigation cancelled")

    def wait(self, duration_ms: float) -> None:
        """
        Sleep for duration_ms, waking early on cancellation.

        Raises:
            SessionCancelled: If cancelled before or during the wait
        """
        self.check()
        if duration_ms > 0 and self._event.wait(ms_to_seconds(duration_ms)):
            raise SessionCancelled("Navigation cancelled during wait")
