"""Video file capture using OpenCV.

Replays a recording of the console's video output, one frame per read.
Useful for calibrating regions and for running a route offline.
"""

from pathlib import Path

import cv2
import numpy as np

from constants import DEFAULT_FRAME_POLL_INTERVAL_MS
from exceptions import CaptureError

from .base import BaseCapture


class VideoFileCapture(BaseCapture):
    """Capture frames from video file using OpenCV."""

    capture_type = "video_file"

    def __init__(
        self,
        video_path: str,
        rotation: int = 0,
        poll_interval_ms: int = DEFAULT_FRAME_POLL_INTERVAL_MS
    ):
        """
        Initialize video file capture.

        Args:
            video_path: Path to video file
            rotation: Clockwise rotation applied to frames
            poll_interval_ms: Delay between reads while waiting

        Raises:
            FileNotFoundError: If the file does not exist
        """
        super().__init__(rotation=rotation, poll_interval_ms=poll_interval_ms)
        self.video_path = Path(video_path)
        self.cap = None
        self.width = 0
        self.height = 0
        self.total_frames = 0

        if not self.video_path.exists():
            raise FileNotFoundError(f"Video file not found: {video_path}")

    def open(self) -> None:
        """Open video file."""
        self.cap = cv2.VideoCapture(str(self.video_path))

        if not self.cap.isOpened():
            raise CaptureError(
                f"Failed to open video file: {self.video_path}",
                capture_type=self.capture_type,
                device=str(self.video_path),
            )

        self.fps = self.cap.get(cv2.CAP_PROP_FPS)
        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.total_frames = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self.is_opened = True

    def close(self) -> None:
        """Close video file."""
        if self.cap:
            self.cap.release()
            self.cap = None
            self.is_opened = False

    def read(self) -> np.ndarray | None:
        """
        Read next frame from video.

        Returns:
            Frame as numpy array or None at end of file
        """
        if self.cap is None:
            raise CaptureError(
                "Video file is not opened. Call open() first.",
                capture_type=self.capture_type,
                device=str(self.video_path),
            )

        ret, frame = self.cap.read()
        if not ret:
            return None
        self._update_fps()
        return frame

    def get_metadata(self) -> dict:
        return {
            "path": str(self.video_path),
            "fps": self.fps,
            "width": self.width,
            "height": self.height,
            "frame_count": self.total_frames,
            "rotation": self.rotation,
            "duration_seconds": self.total_frames / self.fps if self.fps > 0 else 0,
        }
