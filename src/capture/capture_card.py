"""Capture card input for the console's video output."""

from dataclasses import dataclass

import cv2
import numpy as np

from constants import DEFAULT_FRAME_POLL_INTERVAL_MS
from exceptions import CaptureError
from utils.logger import get_logger

from .base import BaseCapture

logger = get_logger(__name__)


@dataclass
class CaptureDevice:
    """Represents a video capture device."""
    index: int
    backend: str
    resolution: tuple[int, int] | None = None


class CaptureCardCapture(BaseCapture):
    """
    Capture from an HDMI capture card (Elgato Cam Link, AVerMedia, etc.).

    Opened with a one-frame buffer so every read returns the most recent
    frame rather than a queued one.
    """

    capture_type = "capture_card"

    RECOMMENDED_SETTINGS = {
        'resolution': (1920, 1080),
        'fps': 60,
        'backend': cv2.CAP_ANY,
    }

    def __init__(
        self,
        device_index: int = 0,
        resolution: tuple[int, int] | None = None,
        fps: int | None = None,
        rotation: int = 0,
        poll_interval_ms: int = DEFAULT_FRAME_POLL_INTERVAL_MS
    ):
        """
        Initialize capture card capture.

        Args:
            device_index: Device index (0, 1, 2, ...)
            resolution: Capture resolution (width, height)
            fps: Frames per second requested from the device
            rotation: Clockwise rotation applied to frames
            poll_interval_ms: Delay between reads while waiting
        """
        super().__init__(rotation=rotation, poll_interval_ms=poll_interval_ms)
        self.device_index = device_index
        self.resolution = resolution or self.RECOMMENDED_SETTINGS['resolution']
        self.requested_fps = fps or self.RECOMMENDED_SETTINGS['fps']

        self.cap: cv2.VideoCapture | None = None
        self.metadata: dict = {}

    def open(self) -> None:
        """Open capture device."""
        self.cap = cv2.VideoCapture(self.device_index, self.RECOMMENDED_SETTINGS['backend'])

        if not self.cap.isOpened():
            self.cap = None
            raise CaptureError(
                f"Failed to open capture device: {self.device_index}",
                capture_type=self.capture_type,
                device=self.device_index,
            )

        self._configure_device()
        self._collect_metadata()
        self.is_opened = True

        logger.info(
            f"Capture card {self.device_index} opened: "
            f"{self.metadata.get('resolution')} @ {self.metadata.get('fps')} fps"
        )

    def _configure_device(self) -> None:
        width, height = self.resolution
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self.cap.set(cv2.CAP_PROP_FPS, self.requested_fps)
        # Minimal latency
        self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

    def _collect_metadata(self) -> None:
        actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

        self.metadata = {
            'resolution': (actual_width, actual_height),
            'fps': self.cap.get(cv2.CAP_PROP_FPS),
            'backend': self.cap.getBackendName(),
            'rotation': self.rotation,
        }

    def read(self) -> np.ndarray | None:
        """
        Read frame from capture card.

        Returns:
            Frame as numpy array or None if the device has none ready

        Raises:
            CaptureError: If the device is not open
        """
        if self.cap is None:
            raise CaptureError(
                "Capture device not opened. Call open() first.",
                capture_type=self.capture_type,
                device=self.device_index,
            )

        ret, frame = self.cap.read()
        if not ret:
            return None

        self._update_fps()
        return frame

    def close(self) -> None:
        """Close capture device."""
        if self.cap:
            self.cap.release()
            self.cap = None
            logger.info(f"Capture card {self.device_index} closed")
        self.is_opened = False

    def get_metadata(self) -> dict:
        return self.metadata.copy()

    @staticmethod
    def get_available_devices(max_devices: int = 10) -> list[CaptureDevice]:
        """
        Probe device indices and list the ones that open.

        Args:
            max_devices: Maximum device index to check

        Returns:
            Devices that could be opened
        """
        devices = []

        for i in range(max_devices):
            cap = cv2.VideoCapture(i, cv2.CAP_ANY)
            try:
                if not cap.isOpened():
                    continue
                width = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
                height = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
                resolution = (int(width), int(height)) if width > 0 and height > 0 else None
                devices.append(CaptureDevice(index=i, backend=cap.getBackendName(), resolution=resolution))
            finally:
                cap.release()

        return devices
