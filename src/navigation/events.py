"""Outbound diagnostic events for whatever display is attached.

The engine only ever puts events on the channel. Consumers (a GUI
overlay, the CLI's JSONL writer) drain it on their own schedule.
"""

import queue
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from utils.time import get_timestamp_ms


class EventKind(str, Enum):
    SESSION = "session"  # Session started/finished
    TRANSITION = "transition"  # State machine moved
    VERIFICATION = "verification"  # One gate result
    HIGHLIGHT = "highlight"  # Region to draw, with its outcome


@dataclass(frozen=True)
class DiagnosticEvent:
    """
    One advisory event.

    Attributes:
        kind: Event category
        checkpoint_id: Checkpoint concerned, if any
        message: Human-readable summary
        data: Extra fields (states, outcome, observed value, region)
        timestamp_ms: When the event was emitted
    """
    kind: EventKind
    checkpoint_id: str | None
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp_ms: int = field(default_factory=get_timestamp_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "checkpoint_id": self.checkpoint_id,
            "message": self.message,
            "data": self.data,
            "timestamp_ms": self.timestamp_ms,
        }


class EventChannel:
    """
    Bounded queue of diagnostic events.

    When full, the oldest event is dropped so a stalled consumer can
    never block navigation.
    """

    def __init__(self, maxsize: int = 1000):
        self._queue: queue.Queue[DiagnosticEvent] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def emit(self, event: DiagnosticEvent) -> None:
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except queue.Empty:
                    pass

    def get(self, timeout_s: float | None = None) -> DiagnosticEvent | None:
        """Next event, or None if none arrives within timeout_s."""
        try:
            return self._queue.get(timeout=timeout_s) if timeout_s else self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> list[DiagnosticEvent]:
        """Remove and return every queued event, oldest first."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
