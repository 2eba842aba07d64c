"""Base class for video capture sources."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

import cv2
import numpy as np

from constants import DEFAULT_FRAME_POLL_INTERVAL_MS, VIDEO_ROTATIONS
from exceptions import CaptureError
from utils.time import get_monotonic_ms, get_timestamp_ms, ms_to_seconds
from vision.frame import Frame

if TYPE_CHECKING:
    from typing import Self

    from navigation.cancel import CancellationToken

_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    -90: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def rotate_image(image: np.ndarray, rotation: int) -> np.ndarray:
    """
    Rotate an image by a multiple of 90 degrees (clockwise positive).

    Raises:
        ValueError: If rotation is not one of 0, 90, 180, -90
    """
    if rotation not in VIDEO_ROTATIONS:
        raise ValueError(f"Unsupported rotation: {rotation}")
    if rotation == 0:
        return image
    return cv2.rotate(image, _ROTATE_CODES[rotation])


class BaseCapture(ABC):
    """Base class for video capture sources.

    Subclasses implement the raw frame read. The base class provides the
    frame source interface used by the verification gate: poll until a
    frame arrives or the timeout passes, rotate it, and wrap it in an
    immutable Frame.

    Attributes:
        is_opened: Whether the capture source is currently open.
        frame_count: Number of frames processed since opening.
        start_time_ms: Timestamp when the first frame was captured.
        fps: Calculated frames per second based on frame timing.
        rotation: Clockwise rotation applied to captured frames.
        poll_interval_ms: Delay between reads while waiting for a frame.
    """

    capture_type = "base"

    def __init__(
        self,
        rotation: int = 0,
        poll_interval_ms: int = DEFAULT_FRAME_POLL_INTERVAL_MS
    ) -> None:
        """Initialize capture.

        Args:
            rotation: Clockwise rotation in degrees (0, 90, 180, -90)
            poll_interval_ms: Delay between reads while waiting for a frame
        """
        if rotation not in VIDEO_ROTATIONS:
            raise ValueError(f"Unsupported rotation: {rotation}")
        self.is_opened = False
        self.frame_count = 0
        self.start_time_ms = 0
        self.fps = 0.0
        self.rotation = rotation
        self.poll_interval_ms = poll_interval_ms

    def __enter__(self) -> Self:
        """Open the capture source when entering a with block."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        self.close()

    @abstractmethod
    def open(self) -> None:
        """
        Open capture source.

        Subclasses should set self.is_opened to True on success.

        Raises:
            CaptureError: If the source cannot be opened
        """
        pass

    @abstractmethod
    def read(self) -> np.ndarray | None:
        """
        Read a frame from capture source.

        Returns:
            Frame as numpy array with shape (height, width, 3) in BGR format,
            or None if no frame is available right now.
        """
        pass

    @abstractmethod
    def get_metadata(self) -> dict[str, Any]:
        """
        Get capture metadata.

        Returns:
            Dictionary with metadata fields which may include:
                - width (int): Frame width in pixels
                - height (int): Frame height in pixels
                - fps (float): Frames per second
                - frame_count (int): Total number of frames (for files)
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close capture source.

        Subclasses should set self.is_opened to False.
        """
        pass

    def capture(
        self,
        timeout_ms: int,
        cancel: CancellationToken | None = None
    ) -> Frame | None:
        """
        Wait up to timeout_ms for a frame.

        Args:
            timeout_ms: How long to keep polling
            cancel: Token checked between polls

        Returns:
            Rotated, immutable Frame, or None on timeout

        Raises:
            CaptureError: If the source is not open or fails
            SessionCancelled: If the token fires while waiting
        """
        if not self.is_opened:
            raise CaptureError("Capture source is not open", capture_type=self.capture_type)

        deadline_ms = get_monotonic_ms() + timeout_ms
        while True:
            if cancel is not None:
                cancel.check()

            image = self.read()
            if image is not None:
                return Frame(rotate_image(image, self.rotation), timestamp_ms=get_timestamp_ms())

            remaining_ms = deadline_ms - get_monotonic_ms()
            if remaining_ms <= 0:
                return None

            delay_ms = min(self.poll_interval_ms, remaining_ms)
            if cancel is not None:
                cancel.wait(delay_ms)
            else:
                time.sleep(ms_to_seconds(delay_ms))

    def __iter__(self) -> Iterator[np.ndarray]:
        """
        Iterate over raw frames until read() returns None.

        Example:
            >>> with VideoFileCapture("video.mp4") as capture:
            ...     for frame in capture:
            ...         process_frame(frame)
        """
        while True:
            frame = self.read()
            if frame is None:
                break
            yield frame

    def _update_fps(self) -> None:
        """Calculate FPS based on frame timing.

        Should be called after each frame is read.
        """
        if self.frame_count == 0:
            self.start_time_ms = get_timestamp_ms()
        else:
            elapsed_ms = get_timestamp_ms() - self.start_time_ms
            if elapsed_ms > 0:
                self.fps = (self.frame_count / elapsed_ms) * 1000
        self.frame_count += 1
