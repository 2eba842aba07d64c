"""Built-in route: System Settings -> System -> Date and Time.

Reaches the date change screen with every hop verified, and makes sure
"Synchronize Clock via Internet" is off before anything touches the date.
Also provides the home -> System Settings step for each supported
console and the date roll steps used once the date screen is open.

Regions are measured on 16:9 captures of the settings UI.
"""

from constants import (
    CONSOLE_SWITCH1,
    CONSOLE_SWITCH2,
    DATE_ROLL_BASE_UNIT_MS,
    SWITCH2_BASE_UNIT_MS,
)
from exceptions import UnsupportedPrecondition
from navigation.actions import Button, NavigationStep, down, left, press, right, up
from navigation.checkpoint import Checkpoint, ColorSignature, text_signature
from navigation.config import NavigationConfig
from navigation.recovery import RecoveryPolicy
from utils.logger import get_logger
from vision.frame import Region

logger = get_logger(__name__)

SYSTEM_UPDATE_REGION = Region(0.37, 0.19, 0.16, 0.09)
MENU_TITLE_REGION = Region(0.05, 0.03, 0.20, 0.10)
SYNC_TEXT_REGION = Region(0.17, 0.19, 0.45, 0.10)
SYNC_TOGGLE_REGION = Region(0.77, 0.20, 0.05, 0.05)
CURRENT_DATE_TIME_REGION = Region(0.01, 0.01, 0.32, 0.10)

SYSTEM_SCROLL_HOLD_MS = 2500  # Left menu, all the way down to "System"
DATE_TIME_SCROLL_HOLD_MS = 525
MENU_SETTLE_MS = 500
TOGGLE_SETTLE_MS = 600
DATE_SCREEN_SETTLE_MS = 200

# ============================================================================
# Home -> System Settings
# ============================================================================


def require_supported_console(config: NavigationConfig):
    """
    Build a precondition that rejects unsupported console variants.

    Returns:
        Callable raising UnsupportedPrecondition for unknown variants
    """
    def precondition() -> None:
        if config.console_type not in (CONSOLE_SWITCH1, CONSOLE_SWITCH2):
            raise UnsupportedPrecondition(
                f"Unsupported console type: {config.console_type}",
                context={"console_type": config.console_type},
            )
    return precondition


def home_to_settings_step(config: NavigationConfig) -> NavigationStep:
    """
    Step from the Home menu into System Settings.

    Both variants go right 3x, down 2x, left 1x and press A 3x. Switch 2
    menus react faster and use a shorter unit with a double-length hold.

    Raises:
        UnsupportedPrecondition: For any other console type
    """
    if config.console_type == CONSOLE_SWITCH1:
        hold = settle = config.unit_ms
    elif config.console_type == CONSOLE_SWITCH2:
        settle = SWITCH2_BASE_UNIT_MS + config.timing_variation_ms
        hold = 2 * settle
    else:
        raise UnsupportedPrecondition(
            f"No home menu layout for console type: {config.console_type}",
            context={"console_type": config.console_type},
        )

    actions = (
        [right(hold, settle)] * 3
        + [down(hold, settle)] * 2
        + [left(hold, settle)]
        + [press(Button.A, hold, settle)] * 3
    )
    return NavigationStep(actions=tuple(actions), name=f"home_to_settings:{config.console_type}")


# ============================================================================
# Steps
# ============================================================================


def enter_system_step(config: NavigationConfig) -> NavigationStep:
    u = config.unit_ms
    return NavigationStep(
        actions=(
            down(SYSTEM_SCROLL_HOLD_MS, u + MENU_SETTLE_MS),
            press(Button.A, u, MENU_SETTLE_MS),
        ),
        settle_ms=MENU_SETTLE_MS,
        name="enter_system",
    )


def enter_date_time_step(config: NavigationConfig) -> NavigationStep:
    """From the top of the System menu, scroll to "Date and Time" and enter."""
    u = config.unit_ms
    return NavigationStep(
        actions=(
            down(u, u),
            down(u, u),
            down(DATE_TIME_SCROLL_HOLD_MS, u),
            down(u, u + MENU_SETTLE_MS),
            press(Button.A, u, MENU_SETTLE_MS),
        ),
        settle_ms=MENU_SETTLE_MS,
        name="enter_date_time",
    )


def toggle_sync_step(config: NavigationConfig) -> NavigationStep:
    return NavigationStep(
        actions=(press(Button.A, config.unit_ms, TOGGLE_SETTLE_MS),),
        settle_ms=MENU_SETTLE_MS,
        name="toggle_sync",
    )


def enter_date_change_step(config: NavigationConfig) -> NavigationStep:
    """Skip "Time Zone" and open "Date and Time"."""
    u = config.unit_ms
    return NavigationStep(
        actions=(down(u, u), down(u, u), press(Button.A, u, u)),
        settle_ms=DATE_SCREEN_SETTLE_MS,
        name="enter_date_change",
    )


def roll_date_forward_step(config: NavigationConfig) -> NavigationStep:
    """Advance the date by one day and confirm, from the date change screen."""
    u = DATE_ROLL_BASE_UNIT_MS + config.timing_variation_ms
    hold = 2 * u
    actions = (
        up(hold, u),
        press(Button.A, hold, u),
        right(hold, u),
        up(hold, u),
        right(hold, u),
        press(Button.A, hold, u),
        right(hold, u),
        right(hold, u),
        press(Button.A, hold, u),
    )
    return NavigationStep(actions=actions, name="roll_date_forward")


def roll_date_backward_step(config: NavigationConfig, skips: int) -> NavigationStep:
    """
    Move the date back by ``skips`` days and confirm.

    Zero skips gives an empty step.
    """
    if skips < 0:
        raise ValueError("skips must be non-negative")
    if skips == 0:
        return NavigationStep(name="roll_date_backward:0")

    u = DATE_ROLL_BASE_UNIT_MS + config.timing_variation_ms
    hold = 2 * u
    scrolls = [down(hold, u)] * (skips - 1)
    actions = (
        scrolls
        + [press(Button.A, hold, u), right(hold, u)]
        + scrolls
        + [press(Button.A, hold, u), right(hold, u), right(hold, u)]
        + [press(Button.A, hold, u)] * 2
    )
    return NavigationStep(actions=tuple(actions), name=f"roll_date_backward:{skips}")


# ============================================================================
# Route
# ============================================================================


def system_update_sentinel(config: NavigationConfig) -> Checkpoint:
    """Top entry of the System menu; always reachable by scrolling up."""
    return Checkpoint(
        id="system_update",
        action=NavigationStep(name="system_update"),
        expected=text_signature({"system", "update"}),
        region=SYSTEM_UPDATE_REGION,
        retry_budget=config.sentinel_retry_budget,
    )


def _back_to_system_update(
    config: NavigationConfig,
    backs: int,
    approach: NavigationStep,
    name: str
) -> RecoveryPolicy:
    u = config.unit_ms
    return RecoveryPolicy(
        sentinel=system_update_sentinel(config),
        back=NavigationStep(
            actions=(press(Button.B, u, MENU_SETTLE_MS),) * backs,
            settle_ms=MENU_SETTLE_MS,
            name=f"{name}:back",
        ),
        scroll=up(u, u),
        overshoot=config.recovery_overshoot,
        approach=approach,
        settle_ms=MENU_SETTLE_MS,
        name=name,
    )


def date_time_route(config: NavigationConfig) -> list[Checkpoint]:
    """
    Checkpoints from System Settings to the date change screen.

    Args:
        config: Navigation configuration (timings, budgets, overshoot)

    Returns:
        Ordered checkpoints
    """
    budget = config.default_retry_budget
    enter_date_time = enter_date_time_step(config)

    sync_toggle_on = Checkpoint(
        id="sync_toggle_on",
        action=NavigationStep(name="sync_toggle_on"),
        expected=ColorSignature("on"),
        region=SYNC_TOGGLE_REGION,
    )

    return [
        Checkpoint(
            id="system_menu",
            action=enter_system_step(config),
            expected=text_signature({"system", "update"}),
            region=SYSTEM_UPDATE_REGION,
            retry_budget=budget,
        ),
        Checkpoint(
            id="date_time_menu",
            action=enter_date_time,
            expected=text_signature({"date", "time"}),
            region=MENU_TITLE_REGION,
            retry_budget=budget,
            recovery=_back_to_system_update(config, 1, NavigationStep(), "date_time_menu:recovery"),
        ),
        Checkpoint(
            id="sync_clock_text",
            action=NavigationStep(name="sync_clock_text"),
            expected=text_signature({"sync", "clock", "internet"}),
            region=SYNC_TEXT_REGION,
            retry_budget=budget,
            recovery=_back_to_system_update(config, 1, enter_date_time, "sync_clock_text:recovery"),
        ),
        # A press here is only sent after the toggle explicitly reads "on".
        Checkpoint(
            id="sync_toggle_off",
            action=NavigationStep(name="sync_toggle_off"),
            expected=ColorSignature("off"),
            region=SYNC_TOGGLE_REGION,
            retry_budget=max(budget, 1),
            recovery=RecoveryPolicy(
                sentinel=sync_toggle_on,
                approach=toggle_sync_step(config),
                recheck=True,
                settle_ms=0,
                name="sync_toggle_off:toggle",
            ),
        ),
        Checkpoint(
            id="current_date_time",
            action=enter_date_change_step(config),
            expected=text_signature({"date", "time"}, forbidden={"zone"}),
            region=CURRENT_DATE_TIME_REGION,
            retry_budget=budget,
            recovery=_back_to_system_update(config, 2, enter_date_time, "current_date_time:recovery"),
        ),
    ]
