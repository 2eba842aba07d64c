"""Video capture modules for console-nav."""

from .base import BaseCapture, rotate_image
from .video_file import VideoFileCapture
from .capture_card import CaptureCardCapture, CaptureDevice

__all__ = [
    'BaseCapture',
    'rotate_image',
    'VideoFileCapture',
    'CaptureCardCapture',
    'CaptureDevice',
]
