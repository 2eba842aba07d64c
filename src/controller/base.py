"""Base class for controller transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from typing import Self

    from navigation.actions import ControlAction
    from navigation.cancel import CancellationToken


class BaseController(ABC):
    """Base class for controller transports.

    A transport turns ControlActions into physical inputs on the device.
    It never looks at the screen and never decides anything.

    Attributes:
        dispatched: Number of actions sent since construction.
    """

    def __init__(self) -> None:
        self.dispatched = 0

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        self.close()

    @abstractmethod
    def dispatch(self, action: ControlAction, hold_ms: int, settle_ms: int) -> None:
        """
        Send one input and return once the transport has accepted it.

        The caller waits out hold_ms and settle_ms with wait(), so the
        wait stays cancellable.

        Args:
            action: Input to send
            hold_ms: How long the input is held
            settle_ms: Idle time after release

        Raises:
            ControllerError: If the transport fails
        """
        pass

    def wait(self, duration_ms: int, cancel: CancellationToken) -> None:
        """
        Idle for duration_ms, returning early on cancellation.

        Raises:
            SessionCancelled: If the token fires
        """
        cancel.wait(duration_ms)

    def close(self) -> None:
        """Release transport resources."""
        pass
