"""Captured frames and normalized screen regions."""

from dataclasses import dataclass, field

import numpy as np

from utils.time import get_timestamp_ms


@dataclass(frozen=True)
class Frame:
    """
    Immutable captured image.

    Pixels are a H x W x 3 uint8 array in BGR order, as produced by
    OpenCV. The array is made read-only on construction so a frame
    cannot be modified while a verification holds it.

    Attributes:
        image: Pixel data
        timestamp_ms: Capture time in milliseconds since the epoch
    """
    image: np.ndarray
    timestamp_ms: int = field(default_factory=get_timestamp_ms)

    def __post_init__(self) -> None:
        if self.image.ndim != 3 or self.image.shape[2] != 3:
            raise ValueError(f"Expected H x W x 3 image, got shape {self.image.shape}")
        image = self.image
        if image.flags.writeable:
            image = image.copy()
            image.flags.writeable = False
            object.__setattr__(self, "image", image)

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass(frozen=True)
class Region:
    """
    Rectangle in normalized [0, 1] coordinates relative to frame size.

    Regions are hand-tuned approximations of UI layout, so values are
    not required to stay inside the frame; sampling clamps them.
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Region size must be positive, got {self.width}x{self.height}")

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def to_pixels(self, frame_width: int, frame_height: int) -> tuple[int, int, int, int]:
        """
        Convert to a clamped pixel box.

        Args:
            frame_width: Frame width in pixels
            frame_height: Frame height in pixels

        Returns:
            Pixel box (x_min, y_min, x_max, y_max), clamped to the frame.
            The box is empty (x_min == x_max or y_min == y_max) only when
            the region lies entirely outside the frame.
        """
        x_min, x_max = _clamp_span(self.x, self.width, frame_width)
        y_min, y_max = _clamp_span(self.y, self.height, frame_height)
        return (x_min, y_min, x_max, y_max)


def _clamp_span(start: float, length: float, size: int) -> tuple[int, int]:
    lo = int(start * size)
    hi = int((start + length) * size)
    lo = min(max(lo, 0), size)
    hi = min(max(hi, 0), size)
    # Sub-pixel regions inside the frame still sample one pixel
    if hi <= lo and lo < size and start + length > 0:
        hi = lo + 1
    return lo, hi
