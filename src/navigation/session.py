"""Navigation session: run checkpoints in order, stop at the first failure."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from exceptions import (
    DeviceBusyError,
    NavigationError,
    RecoveryExhausted,
    SessionCancelled,
    UnsupportedPrecondition,
)
from navigation.cancel import CancellationToken
from navigation.checkpoint import Checkpoint
from navigation.config import NavigationConfig
from navigation.events import DiagnosticEvent, EventChannel, EventKind
from navigation.gate import VerificationGate, VerificationOutcome
from navigation.recovery import CheckpointRunner, RecoveryState
from utils.logger import SessionLogger, get_logger
from utils.metrics import MetricsCollector
from utils.time import get_timestamp_ms

logger = get_logger(__name__)

Precondition = Callable[[], None]


class SessionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ABORTED = "ABORTED"


class AbortReason(str, Enum):
    RECOVERY_EXHAUSTED = "RecoveryExhausted"
    CANCELLED = "Cancelled"
    UNSUPPORTED_PRECONDITION = "UnsupportedPrecondition"


@dataclass(frozen=True)
class TrailEntry:
    """One verification, as it happened."""
    checkpoint_id: str
    outcome: VerificationOutcome
    observed: str
    timestamp_ms: int = field(default_factory=get_timestamp_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checkpoint_id": self.checkpoint_id,
            "outcome": self.outcome.value,
            "observed": self.observed,
            "timestamp_ms": self.timestamp_ms,
        }


@dataclass(frozen=True)
class SessionResult:
    """
    Final result of a session.

    Attributes:
        status: SUCCESS or ABORTED
        reason: Why the session aborted (None on success)
        trail: Every verification in order
        error: Exception that ended the session, if any
        failed_checkpoint: Checkpoint that could not be passed
        metrics: Counter and latency summary
    """
    status: SessionStatus
    reason: AbortReason | None = None
    trail: tuple[TrailEntry, ...] = ()
    error: NavigationError | None = None
    failed_checkpoint: str | None = None
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status is SessionStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "failed_checkpoint": self.failed_checkpoint,
            "error": self.error.to_json() if self.error else None,
            "trail": [entry.to_dict() for entry in self.trail],
            "metrics": self.metrics,
        }


class _DeviceLocks:
    """Process-wide registry of one lock per device id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, device_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(device_id, threading.Lock())


_device_locks = _DeviceLocks()


def validate_checkpoints(checkpoints: Sequence[Checkpoint]) -> None:
    """
    Reject empty lists and duplicate checkpoint ids.

    Raises:
        ValueError: On an empty list or a repeated id
    """
    if not checkpoints:
        raise ValueError("At least one checkpoint is required")
    seen = set()
    for checkpoint in checkpoints:
        if checkpoint.id in seen:
            raise ValueError(f"Duplicate checkpoint id: {checkpoint.id}")
        seen.add(checkpoint.id)


class NavigationSession:
    """
    Runs a checkpoint sequence against one device.

    Checkpoints run strictly in order; nothing for checkpoint N+1 is
    dispatched until N has matched. The first checkpoint that cannot be
    passed aborts the session and no further input is sent.
    """

    def __init__(
        self,
        config: NavigationConfig,
        controller,
        gate: VerificationGate,
        events: EventChannel | None = None,
        metrics: MetricsCollector | None = None,
        cancel: CancellationToken | None = None,
        preconditions: Iterable[Precondition] = (),
        session_logger: SessionLogger | None = None
    ):
        """
        Args:
            config: Frozen engine configuration
            controller: Controller transport (BaseController)
            gate: Verification gate bound to the frame source
            events: Outbound diagnostic channel
            metrics: Collector for this session; created if omitted
            cancel: Token another thread may fire to stop the session
            preconditions: Callables run before anything is dispatched;
                raise UnsupportedPrecondition to refuse the run
            session_logger: Optional JSONL writer for trail and events
        """
        self.config = config
        self.controller = controller
        self.gate = gate
        self.events = events
        self.metrics = metrics or MetricsCollector()
        self.cancel = cancel or CancellationToken()
        self.preconditions = tuple(preconditions)
        self.session_logger = session_logger
        self._trail: list[TrailEntry] = []

        if self.gate.metrics is None:
            self.gate.metrics = self.metrics

    @property
    def trail(self) -> tuple[TrailEntry, ...]:
        return tuple(self._trail)

    def run(self, checkpoints: Sequence[Checkpoint]) -> SessionResult:
        """
        Drive every checkpoint to DONE_OK, or abort.

        Args:
            checkpoints: Ordered checkpoints

        Returns:
            SessionResult with the full trail

        Raises:
            ValueError: If the list is empty or ids repeat
            DeviceBusyError: If another session holds the device
            ControllerError: If the controller transport fails
        """
        validate_checkpoints(checkpoints)

        lock = _device_locks.get(self.config.device_id)
        if not lock.acquire(blocking=False):
            raise DeviceBusyError(f"Device '{self.config.device_id}' is already in use")

        try:
            self._trail = []
            self._emit(EventKind.SESSION, None, "started", checkpoints=[c.id for c in checkpoints])
            logger.info(f"Session on '{self.config.device_id}' started with {len(checkpoints)} checkpoints")
            result = self._run(checkpoints)
        finally:
            lock.release()

        self._emit(
            EventKind.SESSION,
            result.failed_checkpoint,
            result.status.value,
            reason=result.reason.value if result.reason else None,
        )
        if result.succeeded:
            logger.info("Session finished: SUCCESS")
        else:
            logger.error(f"Session ABORTED ({result.reason.value}) at {result.failed_checkpoint}: {result.error}")
        if self.session_logger is not None:
            self.session_logger.log_result(result.to_dict())
            if result.error is not None:
                self.session_logger.log_error(f"Session aborted: {result.reason.value}", result.error)
        return result

    def _run(self, checkpoints: Sequence[Checkpoint]) -> SessionResult:
        try:
            self.cancel.check()
            for precondition in self.preconditions:
                precondition()
        except UnsupportedPrecondition as e:
            return self._aborted(AbortReason.UNSUPPORTED_PRECONDITION, e, e.checkpoint_id)
        except SessionCancelled as e:
            return self._aborted(AbortReason.CANCELLED, e, None)

        runner = CheckpointRunner(
            self.controller,
            self.gate,
            self.cancel,
            record=self._record,
            settle_ms=self.config.settle_ms,
            publish=self._publish,
            metrics=self.metrics,
        )

        for checkpoint in checkpoints:
            logger.info(f"Checkpoint '{checkpoint.id}': {checkpoint.expected.describe()}")
            try:
                state = runner.run(checkpoint)
            except SessionCancelled as e:
                e.checkpoint_id = e.checkpoint_id or checkpoint.id
                return self._aborted(AbortReason.CANCELLED, e, checkpoint.id)

            if state is RecoveryState.DONE_FAIL:
                error = runner.failure or RecoveryExhausted("Checkpoint failed", checkpoint_id=checkpoint.id)
                return self._aborted(AbortReason.RECOVERY_EXHAUSTED, error, checkpoint.id)

        return SessionResult(
            status=SessionStatus.SUCCESS,
            trail=self.trail,
            metrics=self.metrics.get_summary(),
        )

    def _aborted(
        self,
        reason: AbortReason,
        error: NavigationError,
        checkpoint_id: str | None
    ) -> SessionResult:
        return SessionResult(
            status=SessionStatus.ABORTED,
            reason=reason,
            trail=self.trail,
            error=error,
            failed_checkpoint=checkpoint_id,
            metrics=self.metrics.get_summary(),
        )

    def _record(self, trail_id: str, outcome: VerificationOutcome, observed: str) -> None:
        entry = TrailEntry(trail_id, outcome, observed)
        self._trail.append(entry)
        self._emit(EventKind.VERIFICATION, trail_id, outcome.value, observed=observed)
        if self.session_logger is not None:
            self.session_logger.log_trail_entry(entry.to_dict())

    def _emit(self, kind: EventKind, checkpoint_id: str | None, message: str, **data) -> None:
        self._publish(DiagnosticEvent(kind, checkpoint_id, message, data))

    def _publish(self, event: DiagnosticEvent) -> None:
        if self.events is not None:
            self.events.emit(event)
        if self.session_logger is not None:
            self.session_logger.log_event(event.to_dict())
