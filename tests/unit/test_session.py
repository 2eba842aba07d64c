"""Tests for NavigationSession."""

import json
import threading

import pytest

from exceptions import (
    ControllerError,
    DeviceBusyError,
    RecoveryExhausted,
    SessionCancelled,
    UnsupportedPrecondition,
)
from navigation.cancel import CancellationToken
from navigation.events import EventChannel, EventKind
from navigation.gate import VerificationOutcome
from navigation.session import AbortReason, NavigationSession, SessionStatus, validate_checkpoints
from utils.metrics import RECOVERIES


@pytest.fixture
def make_session(nav_config, controller, make_gate):
    def _make(screen, **kwargs):
        kwargs.setdefault("controller", controller)
        return NavigationSession(
            nav_config,
            kwargs.pop("controller"),
            make_gate(screen),
            **kwargs,
        )
    return _make


class TestNavigationSession:
    """Tests for running checkpoint sequences."""

    def test_all_match(self, make_session, make_screen, make_checkpoint, controller):
        checkpoints = [make_checkpoint("one"), make_checkpoint("two"), make_checkpoint("three")]
        session = make_session(make_screen(["date and time"] * 3))

        result = session.run(checkpoints)

        assert result.status is SessionStatus.SUCCESS
        assert result.succeeded
        assert result.reason is None
        assert [e.checkpoint_id for e in result.trail] == ["one", "two", "three"]
        assert all(e.outcome is VerificationOutcome.MATCH for e in result.trail)
        assert result.metrics["counters"].get(RECOVERIES, 0) == 0
        assert controller.dispatched == 3

    def test_no_frames_then_match(self, make_session, make_screen, make_checkpoint):
        session = make_session(make_screen([None, None, "date and time"]))

        result = session.run([make_checkpoint(budget=3)])

        assert result.status is SessionStatus.SUCCESS
        assert [e.outcome for e in result.trail] == [
            VerificationOutcome.NO_FRAME,
            VerificationOutcome.NO_FRAME,
            VerificationOutcome.MATCH,
        ]

    def test_sentinel_failure_stops_session(
        self, make_session, make_screen, make_checkpoint, recovery_policy, controller
    ):
        checkpoints = [
            make_checkpoint("first", budget=2, recovery=recovery_policy),
            make_checkpoint("second"),
        ]
        screen = make_screen(["wrong", "home", "home", "date and time"])

        result = make_session(screen).run(checkpoints)

        assert result.status is SessionStatus.ABORTED
        assert result.reason is AbortReason.RECOVERY_EXHAUSTED
        assert result.failed_checkpoint == "first"
        assert isinstance(result.error, RecoveryExhausted)
        assert all(not e.checkpoint_id.startswith("second") for e in result.trail)
        assert controller.buttons.count("A") == 1

    def test_exhausted_budget_aborts(self, make_session, make_screen, make_checkpoint):
        result = make_session(make_screen(["nope"])).run([make_checkpoint(budget=0), make_checkpoint("next")])

        assert result.reason is AbortReason.RECOVERY_EXHAUSTED
        assert len(result.trail) == 1

    def test_cancel_during_dispatch(self, make_session, make_screen, make_checkpoint, make_controller):
        cancel = CancellationToken()
        controller = make_controller(on_dispatch=lambda action: cancel.cancel())
        session = make_session(make_screen(["date and time"] * 2), controller=controller, cancel=cancel)

        result = session.run([make_checkpoint("one"), make_checkpoint("two")])

        assert result.status is SessionStatus.ABORTED
        assert result.reason is AbortReason.CANCELLED
        assert result.failed_checkpoint == "one"
        assert isinstance(result.error, SessionCancelled)
        assert len(controller.actions) == 1

    def test_cancelled_before_start(self, make_session, make_screen, make_checkpoint, controller):
        cancel = CancellationToken()
        cancel.cancel()

        result = make_session(make_screen([]), cancel=cancel).run([make_checkpoint()])

        assert result.reason is AbortReason.CANCELLED
        assert controller.actions == []

    def test_unsupported_precondition(self, make_session, make_screen, make_checkpoint, controller):
        def refuse():
            raise UnsupportedPrecondition("Console type 'unknown' is not supported")

        result = make_session(make_screen([]), preconditions=[refuse]).run([make_checkpoint()])

        assert result.status is SessionStatus.ABORTED
        assert result.reason is AbortReason.UNSUPPORTED_PRECONDITION
        assert result.trail == ()
        assert controller.actions == []

    @pytest.mark.parametrize("ids", [[], ["a", "b", "a"]])
    def test_invalid_checkpoint_lists(self, make_session, make_screen, make_checkpoint, ids):
        with pytest.raises(ValueError):
            make_session(make_screen([])).run([make_checkpoint(i) for i in ids])

    def test_validate_checkpoints(self, make_checkpoint):
        validate_checkpoints([make_checkpoint("a"), make_checkpoint("b")])

    def test_controller_error_propagates_and_releases_device(
        self, make_session, make_screen, make_checkpoint, make_controller
    ):
        def fail(action):
            raise ControllerError("bridge down", endpoint="/api/v1/input")

        with pytest.raises(ControllerError):
            make_session(make_screen([]), controller=make_controller(on_dispatch=fail)).run([make_checkpoint()])

        result = make_session(make_screen(["date and time"])).run([make_checkpoint()])
        assert result.succeeded

    def test_second_session_on_device_is_refused(
        self, make_session, make_screen, make_checkpoint, blocking_controller, controller
    ):
        first = make_session(make_screen(["date and time"]), controller=blocking_controller)
        second = make_session(make_screen(["date and time"]))
        results = {}

        thread = threading.Thread(target=lambda: results.setdefault("first", first.run([make_checkpoint()])))
        thread.start()
        assert blocking_controller.entered.wait(timeout=5)

        with pytest.raises(DeviceBusyError):
            second.run([make_checkpoint()])

        blocking_controller.release.set()
        thread.join(timeout=5)
        assert results["first"].succeeded
        assert controller.actions == []

    def test_other_device_not_blocked(
        self, nav_config, make_gate, make_session, make_screen, make_checkpoint, blocking_controller, controller
    ):
        first = make_session(make_screen(["date and time"]), controller=blocking_controller)
        other_config = nav_config.model_copy(update={"device_id": "other-device"})
        second = NavigationSession(other_config, controller, make_gate(make_screen(["date and time"])))

        thread = threading.Thread(target=lambda: first.run([make_checkpoint()]))
        thread.start()
        assert blocking_controller.entered.wait(timeout=5)
        try:
            assert second.run([make_checkpoint()]).succeeded
        finally:
            blocking_controller.release.set()
            thread.join(timeout=5)

    def test_events_emitted(self, make_session, make_screen, make_checkpoint):
        events = EventChannel()
        make_session(make_screen(["date and time"]), events=events).run([make_checkpoint()])

        kinds = [e.kind for e in events.drain()]
        assert kinds[0] is EventKind.SESSION
        assert kinds[-1] is EventKind.SESSION
        assert EventKind.VERIFICATION in kinds
        assert EventKind.TRANSITION in kinds

    def test_session_logger_writes_files(self, make_session, make_screen, make_checkpoint, session_logger):
        make_session(make_screen(["nope"]), session_logger=session_logger).run([make_checkpoint()])

        trail = [json.loads(line) for line in session_logger.trail_log_path.read_text().splitlines()]
        results = [json.loads(line) for line in session_logger.result_log_path.read_text().splitlines()]

        assert trail == [{
            "checkpoint_id": "title",
            "outcome": "MISMATCH",
            "observed": "nope",
            "timestamp_ms": trail[0]["timestamp_ms"],
        }]
        assert results[0]["status"] == "ABORTED"
        assert results[0]["reason"] == "RecoveryExhausted"
        assert results[0]["error"]["error_code"] == "CN302"
        assert session_logger.event_log_path.exists()
        assert "RecoveryExhausted" in session_logger.error_log_path.read_text()

    def test_transitions_reach_event_log(self, make_session, make_screen, make_checkpoint, session_logger):
        make_session(make_screen(["date and time"]), session_logger=session_logger).run([make_checkpoint()])

        records = [json.loads(line) for line in session_logger.event_log_path.read_text().splitlines()]
        kinds = [r["kind"] for r in records]

        assert "highlight" in kinds
        assert [r["data"]["target"] for r in records if r["kind"] == "transition"] == ["FORWARD", "VERIFY", "DONE_OK"]
        assert kinds[0] == kinds[-1] == "session"
