"""Checkpoint state machine and the recovery policy that backs it.

Each checkpoint is driven through named states::

    FORWARD -> VERIFY -> DONE_OK
                 |
                 +-> RECOVER -> FORWARD      (budget left)
                 +-> DONE_FAIL               (budget exhausted)
    RECOVER -> DONE_OK                       (sentinel not confirmed, recheck matches)
    RECOVER -> DONE_FAIL                     (sentinel not confirmed)

RECOVER backs out, overshoots toward a sentinel screen whose position is
known, confirms the sentinel, then re-enters FORWARD. A failed sentinel
never triggers another recovery.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable

from constants import DEFAULT_SETTLE_MS
from exceptions import NavigationError, RecoveryExhausted, VerificationMismatch
from navigation.actions import ControlAction, NavigationStep
from navigation.events import DiagnosticEvent, EventKind
from navigation.gate import VerificationGate, VerificationOutcome
from utils.logger import get_logger
from utils.metrics import ACTIONS_DISPATCHED, CHECKPOINTS_PASSED, RECOVERIES, MetricsCollector

if TYPE_CHECKING:
    from controller.base import BaseController
    from navigation.cancel import CancellationToken
    from navigation.checkpoint import Checkpoint

logger = get_logger(__name__)

# (trail id, outcome, observed value)
VerificationRecorder = Callable[[str, VerificationOutcome, str], None]
EventSink = Callable[[DiagnosticEvent], None]


class RecoveryState(str, Enum):
    FORWARD = "FORWARD"
    VERIFY = "VERIFY"
    RECOVER = "RECOVER"
    DONE_OK = "DONE_OK"
    DONE_FAIL = "DONE_FAIL"

    @property
    def terminal(self) -> bool:
        return self in (RecoveryState.DONE_OK, RecoveryState.DONE_FAIL)


@dataclass(frozen=True)
class RecoveryPolicy:
    """
    How to get from an unknown screen back to a known one.

    Attributes:
        sentinel: Checkpoint describing the known screen. Its action is
            never dispatched; its retry_budget is the number of extra
            looks allowed before giving up.
        back: Step that leaves the current (possibly wrong) screen
        scroll: Action repeated toward the sentinel
        overshoot: How many times ``scroll`` is sent; chosen larger than
            the menu so the cursor always ends on the sentinel
        approach: Step from the sentinel to where the checkpoint's own
            action starts
        recheck: When the sentinel is not confirmed, look at the checkpoint
            once more before failing; a match passes it with nothing sent
        settle_ms: Wait after the scroll burst before looking
        name: Label for logs
    """
    sentinel: Checkpoint
    back: NavigationStep = field(default_factory=NavigationStep)
    scroll: ControlAction | None = None
    overshoot: int = 0
    approach: NavigationStep = field(default_factory=NavigationStep)
    recheck: bool = False
    settle_ms: int = DEFAULT_SETTLE_MS
    name: str = "recovery"

    def __post_init__(self) -> None:
        if self.overshoot < 0:
            raise ValueError("Overshoot must be non-negative")
        if self.overshoot and self.scroll is None:
            raise ValueError("Overshoot needs a scroll action")
        if self.settle_ms < 0:
            raise ValueError("Settle delay must be non-negative")

    def scroll_step(self) -> NavigationStep:
        actions = (self.scroll,) * self.overshoot if self.scroll else ()
        return NavigationStep(actions=actions, settle_ms=self.settle_ms, name=f"{self.name}:scroll")


class CheckpointRunner:
    """
    Drives one checkpoint at a time to DONE_OK or DONE_FAIL.

    Every verification (sentinel looks included) is handed to ``record``
    in order. After DONE_FAIL, ``failure`` holds the reason.
    """

    def __init__(
        self,
        controller: BaseController,
        gate: VerificationGate,
        cancel: CancellationToken,
        record: VerificationRecorder,
        settle_ms: int = DEFAULT_SETTLE_MS,
        publish: EventSink | None = None,
        metrics: MetricsCollector | None = None
    ):
        self.controller = controller
        self.gate = gate
        self.cancel = cancel
        self.record = record
        self.settle_ms = settle_ms
        self.publish = publish
        self.metrics = metrics
        self.failure: NavigationError | None = None

    def run(self, checkpoint: Checkpoint) -> RecoveryState:
        """
        Drive a checkpoint to a terminal state.

        Returns:
            DONE_OK or DONE_FAIL

        Raises:
            SessionCancelled: If the token fires at any suspension point
        """
        self.failure = None
        budget = checkpoint.new_budget()
        step = checkpoint.action
        state = self._enter(checkpoint, None, RecoveryState.FORWARD)

        while not state.terminal:
            if state is RecoveryState.FORWARD:
                self._execute(step)
                state = self._enter(checkpoint, state, RecoveryState.VERIFY)

            elif state is RecoveryState.VERIFY:
                outcome, observed = self._verify(checkpoint.id, checkpoint)
                if outcome is VerificationOutcome.MATCH:
                    next_state = RecoveryState.DONE_OK
                elif budget.exhausted:
                    self.failure = RecoveryExhausted(
                        f"Retry budget exhausted ({outcome.value}, observed {observed!r})",
                        checkpoint_id=checkpoint.id,
                        context={"budget": budget.initial},
                    )
                    next_state = RecoveryState.DONE_FAIL
                else:
                    next_state = RecoveryState.RECOVER
                state = self._enter(checkpoint, state, next_state, outcome=outcome.value)

            elif state is RecoveryState.RECOVER:
                remaining = budget.consume()
                if self.metrics is not None:
                    self.metrics.increment(RECOVERIES)
                logger.warning(f"[{checkpoint.id}] Recovering, {remaining} retries left after this one")

                if checkpoint.recovery is None:
                    # Re-observe only; blind actions are never repeated.
                    step = NavigationStep(settle_ms=self.settle_ms, name=f"{checkpoint.id}:reobserve")
                    state = self._enter(checkpoint, state, RecoveryState.FORWARD)
                    continue

                try:
                    self._recover(checkpoint, checkpoint.recovery)
                except VerificationMismatch as e:
                    if checkpoint.recovery.recheck and self._recheck(checkpoint):
                        state = self._enter(checkpoint, state, RecoveryState.DONE_OK, recheck=True)
                        continue
                    self.failure = RecoveryExhausted(
                        "Sentinel not confirmed during recovery",
                        checkpoint_id=checkpoint.id,
                        context={"sentinel": checkpoint.recovery.sentinel.id},
                        cause=e,
                    )
                    state = self._enter(checkpoint, state, RecoveryState.DONE_FAIL)
                    continue
                step = checkpoint.action
                state = self._enter(checkpoint, state, RecoveryState.FORWARD)

            else:
                raise ValueError(f"Unhandled state: {state!r}")

        if state is RecoveryState.DONE_OK and self.metrics is not None:
            self.metrics.increment(CHECKPOINTS_PASSED)
        return state

    def _recover(self, checkpoint: Checkpoint, policy: RecoveryPolicy) -> None:
        """
        Back out, overshoot to the sentinel, confirm it and approach again.

        Raises:
            VerificationMismatch: If the sentinel is never confirmed
        """
        sentinel = policy.sentinel
        trail_id = f"{checkpoint.id}/sentinel:{sentinel.id}"

        self._execute(policy.back)
        self._execute(policy.scroll_step())

        outcome, observed = self._verify(trail_id, sentinel)
        for _ in range(sentinel.retry_budget):
            if outcome is VerificationOutcome.MATCH:
                break
            self.cancel.wait(self.settle_ms)
            outcome, observed = self._verify(trail_id, sentinel)

        if outcome is not VerificationOutcome.MATCH:
            logger.error(f"[{checkpoint.id}] Sentinel '{sentinel.id}' not confirmed, observed {observed!r}")
            raise VerificationMismatch(
                f"Sentinel '{sentinel.id}' not confirmed",
                checkpoint_id=checkpoint.id,
                outcome=outcome.value,
                observed=observed,
            )

        logger.info(f"[{checkpoint.id}] Sentinel '{sentinel.id}' confirmed")
        self._execute(policy.approach)

    def _recheck(self, checkpoint: Checkpoint) -> bool:
        self.cancel.wait(self.settle_ms)
        outcome, observed = self._verify(checkpoint.id, checkpoint)
        logger.info(f"[{checkpoint.id}] Recheck after unconfirmed sentinel: {outcome.value} ({observed!r})")
        return outcome is VerificationOutcome.MATCH

    def _execute(self, step: NavigationStep) -> None:
        dispatched = step.execute(self.controller, self.cancel)
        if self.metrics is not None and dispatched:
            self.metrics.increment(ACTIONS_DISPATCHED, dispatched)

    def _verify(self, trail_id: str, checkpoint: Checkpoint) -> tuple[VerificationOutcome, str]:
        outcome, observed = self.gate.verify(checkpoint, self.cancel)
        self.record(trail_id, outcome, observed)
        self._emit(
            EventKind.HIGHLIGHT,
            trail_id,
            f"{outcome.value} {checkpoint.expected.describe()}",
            region=checkpoint.region.as_tuple(),
            outcome=outcome.value,
            observed=observed,
        )
        return outcome, observed

    def _enter(
        self,
        checkpoint: Checkpoint,
        current: RecoveryState | None,
        target: RecoveryState,
        **data
    ) -> RecoveryState:
        source = current.value if current else "START"
        logger.debug(f"[{checkpoint.id}] {source} -> {target.value}")
        self._emit(
            EventKind.TRANSITION,
            checkpoint.id,
            f"{source} -> {target.value}",
            source=source,
            target=target.value,
            **data,
        )
        return target

    def _emit(self, kind: EventKind, checkpoint_id: str, message: str, **data) -> None:
        if self.publish is not None:
            self.publish(DiagnosticEvent(kind, checkpoint_id, message, data))
