"""Timed control actions and the steps built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from constants import STICK_CENTER, STICK_MAX, STICK_MIN

if TYPE_CHECKING:
    from controller.base import BaseController
    from navigation.cancel import CancellationToken


class Button(str, Enum):
    """Controller buttons the engine may press."""
    A = "A"
    B = "B"
    X = "X"
    Y = "Y"
    HOME = "HOME"
    PLUS = "PLUS"
    MINUS = "MINUS"
    L = "L"
    R = "R"
    ZL = "ZL"
    ZR = "ZR"


class ActionKind(str, Enum):
    BUTTON = "button"
    STICK = "stick"


@dataclass(frozen=True)
class ControlAction:
    """
    One physical input: a button press or a left-stick deflection.

    Attributes:
        kind: Button press or stick move
        hold_ms: How long the input is held
        settle_ms: Idle time after release
        button: Button to press (BUTTON actions)
        stick_x: Stick x, 0 (left) to 255 (right), 128 centered
        stick_y: Stick y, 0 (up) to 255 (down), 128 centered
    """
    kind: ActionKind
    hold_ms: int
    settle_ms: int
    button: Button | None = None
    stick_x: int = STICK_CENTER
    stick_y: int = STICK_CENTER

    def __post_init__(self) -> None:
        if self.hold_ms < 0 or self.settle_ms < 0:
            raise ValueError("Action durations must be non-negative")
        if self.kind is ActionKind.BUTTON and self.button is None:
            raise ValueError("Button actions need a button")
        for value in (self.stick_x, self.stick_y):
            if not STICK_MIN <= value <= STICK_MAX:
                raise ValueError(f"Stick value out of range: {value}")

    def describe(self) -> str:
        if self.kind is ActionKind.BUTTON:
            return f"press {self.button.value} {self.hold_ms}ms/{self.settle_ms}ms"
        return f"stick ({self.stick_x}, {self.stick_y}) {self.hold_ms}ms/{self.settle_ms}ms"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "button": self.button.value if self.button else None,
            "stick_x": self.stick_x,
            "stick_y": self.stick_y,
            "hold_ms": self.hold_ms,
            "settle_ms": self.settle_ms,
        }


def press(button: Button, hold_ms: int, settle_ms: int) -> ControlAction:
    return ControlAction(ActionKind.BUTTON, hold_ms, settle_ms, button=button)


def move_stick(x: int, y: int, hold_ms: int, settle_ms: int) -> ControlAction:
    return ControlAction(ActionKind.STICK, hold_ms, settle_ms, stick_x=x, stick_y=y)


def up(hold_ms: int, settle_ms: int) -> ControlAction:
    return move_stick(STICK_CENTER, STICK_MIN, hold_ms, settle_ms)


def down(hold_ms: int, settle_ms: int) -> ControlAction:
    return move_stick(STICK_CENTER, STICK_MAX, hold_ms, settle_ms)


def left(hold_ms: int, settle_ms: int) -> ControlAction:
    return move_stick(STICK_MIN, STICK_CENTER, hold_ms, settle_ms)


def right(hold_ms: int, settle_ms: int) -> ControlAction:
    return move_stick(STICK_MAX, STICK_CENTER, hold_ms, settle_ms)


@dataclass(frozen=True)
class NavigationStep:
    """
    Ordered control actions followed by a settle delay.

    Executing a step only dispatches inputs; it never looks at the
    screen. Verification is the caller's job.
    """
    actions: tuple[ControlAction, ...] = field(default_factory=tuple)
    settle_ms: int = 0
    name: str = ""

    def __post_init__(self) -> None:
        if self.settle_ms < 0:
            raise ValueError("Settle delay must be non-negative")
        object.__setattr__(self, "actions", tuple(self.actions))

    def __len__(self) -> int:
        return len(self.actions)

    def then(self, other: NavigationStep, name: str = "") -> NavigationStep:
        """Concatenate two steps; the result settles like ``other``."""
        return NavigationStep(
            actions=self.actions + other.actions,
            settle_ms=other.settle_ms,
            name=name or f"{self.name}+{other.name}",
        )

    def execute(self, controller: BaseController, cancel: CancellationToken) -> int:
        """
        Dispatch every action, holding and settling after each, then wait
        out the step's settle delay.

        Args:
            controller: Controller transport
            cancel: Checked before every action and during every wait

        Returns:
            Number of actions dispatched

        Raises:
            SessionCancelled: If cancellation fires
        """
        dispatched = 0
        for action in self.actions:
            cancel.check()
            controller.dispatch(action, action.hold_ms, action.settle_ms)
            dispatched += 1
            controller.wait(action.hold_ms + action.settle_ms, cancel)
        controller.wait(self.settle_ms, cancel)
        return dispatched
