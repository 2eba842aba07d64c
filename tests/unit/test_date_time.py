"""Tests for the built-in Date and Time route and its steps."""

import pytest

from exceptions import UnsupportedPrecondition
from navigation.actions import Button
from navigation.checkpoint import ColorSignature
from navigation.config import NavigationConfig
from navigation.date_time import (
    date_time_route,
    enter_date_time_step,
    enter_system_step,
    home_to_settings_step,
    require_supported_console,
    roll_date_backward_step,
    roll_date_forward_step,
)


def inputs(step):
    return [a.button.value if a.button else (a.stick_x, a.stick_y) for a in step.actions]


RIGHT, LEFT, DOWN, UP = (255, 128), (0, 128), (128, 255), (128, 0)


class TestHomeToSettings:
    """Tests for the console-specific home menu step."""

    @pytest.mark.parametrize("console", ["switch1", "switch2"])
    def test_same_path_on_both_consoles(self, console):
        step = home_to_settings_step(NavigationConfig(console_type=console))

        assert inputs(step) == [RIGHT] * 3 + [DOWN] * 2 + [LEFT] + ["A"] * 3

    def test_switch1_timing(self):
        step = home_to_settings_step(NavigationConfig(console_type="switch1", timing_variation_ms=20))

        assert {(a.hold_ms, a.settle_ms) for a in step.actions} == {(120, 120)}

    def test_switch2_timing(self):
        step = home_to_settings_step(NavigationConfig(console_type="switch2", timing_variation_ms=6))

        assert {(a.hold_ms, a.settle_ms) for a in step.actions} == {(60, 30)}

    def test_unknown_console(self):
        with pytest.raises(UnsupportedPrecondition):
            home_to_settings_step(NavigationConfig(console_type="other"))

    def test_precondition(self):
        require_supported_console(NavigationConfig(console_type="switch2"))()
        with pytest.raises(UnsupportedPrecondition):
            require_supported_console(NavigationConfig(console_type="other"))()


class TestMenuSteps:
    """Tests for the System menu steps."""

    def test_enter_system(self):
        step = enter_system_step(NavigationConfig())

        assert inputs(step) == [DOWN, "A"]
        assert step.actions[0].hold_ms == 2500
        assert step.actions[0].settle_ms == 600

    def test_enter_date_time(self):
        step = enter_date_time_step(NavigationConfig())

        assert inputs(step) == [DOWN] * 4 + ["A"]
        assert [a.hold_ms for a in step.actions[:4]] == [100, 100, 525, 100]


class TestRollDate:
    """Tests for the date picker steps."""

    def test_forward(self):
        step = roll_date_forward_step(NavigationConfig(timing_variation_ms=10))

        assert inputs(step) == [UP, "A", RIGHT, UP, RIGHT, "A", RIGHT, RIGHT, "A"]
        assert {(a.hold_ms, a.settle_ms) for a in step.actions} == {(100, 50)}

    def test_backward(self):
        step = roll_date_backward_step(NavigationConfig(), 3)

        assert inputs(step) == (
            [DOWN] * 2 + ["A", RIGHT] + [DOWN] * 2 + ["A", RIGHT, RIGHT, "A", "A"]
        )

    def test_backward_single_day(self):
        assert inputs(roll_date_backward_step(NavigationConfig(), 1)) == ["A", RIGHT, "A", RIGHT, RIGHT, "A", "A"]

    def test_backward_zero_is_empty(self):
        assert len(roll_date_backward_step(NavigationConfig(), 0)) == 0

    def test_backward_negative(self):
        with pytest.raises(ValueError):
            roll_date_backward_step(NavigationConfig(), -1)


class TestDateTimeRoute:
    """Tests for the checkpoint list."""

    def test_checkpoint_order(self):
        route = date_time_route(NavigationConfig())

        assert [c.id for c in route] == [
            "system_menu",
            "date_time_menu",
            "sync_clock_text",
            "sync_toggle_off",
            "current_date_time",
        ]

    def test_current_date_time_excludes_time_zone(self):
        checkpoint = date_time_route(NavigationConfig())[-1]

        assert checkpoint.expected.required == frozenset({"date", "time"})
        assert checkpoint.expected.forbidden == frozenset({"zone"})
        assert [a.button for a in checkpoint.recovery.back.actions] == [Button.B, Button.B]

    def test_toggle_pressed_only_after_on(self):
        checkpoint = date_time_route(NavigationConfig())[3]
        policy = checkpoint.recovery

        assert checkpoint.expected == ColorSignature("off")
        assert checkpoint.retry_budget >= 1
        assert len(checkpoint.action) == 0
        assert policy.sentinel.expected == ColorSignature("on")
        assert policy.sentinel.retry_budget == 0
        assert len(policy.back) == 0
        assert len(policy.scroll_step()) == 0
        assert inputs(policy.approach) == ["A"]

    def test_recovery_uses_configured_overshoot(self):
        route = date_time_route(NavigationConfig(recovery_overshoot=25))

        assert route[1].recovery.overshoot == 25
        assert route[1].recovery.sentinel.id == "system_update"
