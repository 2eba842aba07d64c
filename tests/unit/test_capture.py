"""Tests for capture modules."""

from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from capture.base import BaseCapture, rotate_image
from exceptions import CaptureError, SessionCancelled
from navigation.cancel import CancellationToken


class ListCapture(BaseCapture):
    """Capture that replays a list of reads (None means no frame yet)."""

    capture_type = "list"

    def __init__(self, reads, **kwargs):
        super().__init__(**kwargs)
        self.reads = list(reads)

    def open(self):
        self.is_opened = True

    def read(self):
        frame = self.reads.pop(0) if self.reads else None
        if frame is not None:
            self._update_fps()
        return frame

    def get_metadata(self):
        return {}

    def close(self):
        self.is_opened = False


def image(width=8, height=4):
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[0, 0] = (255, 0, 0)
    return img


# ============================================================================
# rotate_image Tests
# ============================================================================

class TestRotateImage:
    """Tests for rotate_image."""

    def test_zero_is_identity(self):
        img = image()
        assert rotate_image(img, 0) is img

    @pytest.mark.parametrize("rotation,shape", [(90, (8, 4, 3)), (-90, (8, 4, 3)), (180, (4, 8, 3))])
    def test_shapes(self, rotation, shape):
        assert rotate_image(image(), rotation).shape == shape

    def test_clockwise(self):
        rotated = rotate_image(image(), 90)
        # Top-left moves to top-right
        assert tuple(rotated[0, -1]) == (255, 0, 0)

    def test_invalid_rotation(self):
        with pytest.raises(ValueError):
            rotate_image(image(), 45)


# ============================================================================
# BaseCapture.capture Tests
# ============================================================================

class TestBaseCapture:
    """Tests for the polling frame source."""

    def test_returns_frame(self):
        with ListCapture([image()]) as capture:
            frame = capture.capture(timeout_ms=0)

        assert frame is not None
        assert frame.width == 8
        assert not frame.image.flags.writeable

    def test_waits_for_late_frame(self):
        capture = ListCapture([None, None, image()], poll_interval_ms=1)
        capture.open()

        assert capture.capture(timeout_ms=1000) is not None

    def test_timeout_returns_none(self):
        capture = ListCapture([], poll_interval_ms=1)
        capture.open()

        assert capture.capture(timeout_ms=5) is None

    def test_rotation_applied(self):
        capture = ListCapture([image()], rotation=90)
        capture.open()

        assert capture.capture(timeout_ms=0).image.shape == (8, 4, 3)

    def test_not_open_raises(self):
        with pytest.raises(CaptureError):
            ListCapture([image()]).capture(timeout_ms=0)

    def test_cancelled(self):
        cancel = CancellationToken()
        cancel.cancel()
        capture = ListCapture([image()])
        capture.open()

        with pytest.raises(SessionCancelled):
            capture.capture(timeout_ms=100, cancel=cancel)

    def test_invalid_rotation(self):
        with pytest.raises(ValueError):
            ListCapture([], rotation=270)

    def test_iterates_until_exhausted(self):
        capture = ListCapture([image(), image()])
        assert len(list(capture)) == 2
        assert capture.frame_count == 2


# ============================================================================
# VideoFileCapture Tests
# ============================================================================

class TestVideoFileCapture:
    """Tests for VideoFileCapture with a mocked cv2.VideoCapture."""

    @pytest.fixture
    def video_path(self, temp_dir):
        path = temp_dir / "menu.mp4"
        path.write_bytes(b"")
        return str(path)

    @pytest.fixture
    def mock_cap(self):
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.get.side_effect = lambda prop: {
            cv2.CAP_PROP_FPS: 30.0,
            cv2.CAP_PROP_FRAME_WIDTH: 1280,
            cv2.CAP_PROP_FRAME_HEIGHT: 720,
            cv2.CAP_PROP_FRAME_COUNT: 90,
        }.get(prop, 0)
        return cap

    def test_missing_file(self):
        from capture.video_file import VideoFileCapture
        with pytest.raises(FileNotFoundError):
            VideoFileCapture("/nonexistent/menu.mp4")

    def test_open_and_read(self, video_path, mock_cap):
        from capture.video_file import VideoFileCapture
        mock_cap.read.side_effect = [(True, image()), (False, None)]

        with patch("capture.video_file.cv2.VideoCapture", return_value=mock_cap):
            with VideoFileCapture(video_path) as capture:
                assert capture.get_metadata()["duration_seconds"] == 3.0
                assert capture.read() is not None
                assert capture.read() is None

        mock_cap.release.assert_called_once()

    def test_open_failure(self, video_path, mock_cap):
        from capture.video_file import VideoFileCapture
        mock_cap.isOpened.return_value = False

        with patch("capture.video_file.cv2.VideoCapture", return_value=mock_cap):
            with pytest.raises(CaptureError):
                VideoFileCapture(video_path).open()

    def test_read_before_open(self, video_path):
        from capture.video_file import VideoFileCapture
        with pytest.raises(CaptureError):
            VideoFileCapture(video_path).read()


# ============================================================================
# CaptureCardCapture Tests
# ============================================================================

class TestCaptureCardCapture:
    """Tests for CaptureCardCapture with a mocked cv2.VideoCapture."""

    def test_open_configures_low_latency(self):
        from capture.capture_card import CaptureCardCapture
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.get.return_value = 60
        cap.getBackendName.return_value = "V4L2"

        with patch("capture.capture_card.cv2.VideoCapture", return_value=cap):
            capture = CaptureCardCapture(device_index=1)
            capture.open()

        assert capture.is_opened
        cap.set.assert_any_call(cv2.CAP_PROP_BUFFERSIZE, 1)
        assert capture.get_metadata()["backend"] == "V4L2"

    def test_open_failure(self):
        from capture.capture_card import CaptureCardCapture
        cap = MagicMock()
        cap.isOpened.return_value = False

        with patch("capture.capture_card.cv2.VideoCapture", return_value=cap):
            capture = CaptureCardCapture(device_index=3)
            with pytest.raises(CaptureError) as exc_info:
                capture.open()

        assert exc_info.value.device == 3
        assert not capture.is_opened

    def test_read_without_frame(self):
        from capture.capture_card import CaptureCardCapture
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.read.return_value = (False, None)

        with patch("capture.capture_card.cv2.VideoCapture", return_value=cap):
            capture = CaptureCardCapture()
            capture.open()
            assert capture.read() is None

    def test_available_devices(self):
        from capture.capture_card import CaptureCardCapture
        opened, closed = MagicMock(), MagicMock()
        opened.isOpened.return_value = True
        opened.get.return_value = 1920
        opened.getBackendName.return_value = "V4L2"
        closed.isOpened.return_value = False

        with patch("capture.capture_card.cv2.VideoCapture", side_effect=[opened, closed]):
            devices = CaptureCardCapture.get_available_devices(max_devices=2)

        assert [d.index for d in devices] == [0]
        closed.release.assert_called_once()
