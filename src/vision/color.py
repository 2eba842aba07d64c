"""Two-state toggle classification from mean region color."""

from dataclasses import dataclass

import cv2
import numpy as np

from constants import (
    COLOR_LABEL_OFF,
    COLOR_LABEL_ON,
    COLOR_NEUTRAL_THRESHOLD,
    COLOR_ON_MARGIN,
)
from exceptions import ClassificationAmbiguous


@dataclass(frozen=True)
class ChannelMeans:
    """Mean channel values of a region."""
    r: float
    g: float
    b: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)


def channel_means(pixels: np.ndarray) -> ChannelMeans:
    """
    Average each channel of a BGR region.

    Raises:
        ClassificationAmbiguous: If the region has no pixels
    """
    if pixels.size == 0:
        raise ClassificationAmbiguous("Cannot average an empty region")
    b, g, r, _ = cv2.mean(pixels)
    return ChannelMeans(r=r, g=g, b=b)


class ColorStateClassifier:
    """
    Classify a toggle as "on" (cyan/teal) or "off" (white/gray).

    This assumes the region only ever shows one of the two toggle
    colors. Anything that is neither, e.g. a pure blue tint, is "off".
    """

    def __init__(
        self,
        on_margin: float = COLOR_ON_MARGIN,
        neutral_threshold: float = COLOR_NEUTRAL_THRESHOLD
    ):
        """
        Args:
            on_margin: Green must exceed red by more than this for "on"
            neutral_threshold: All pairwise channel differences below this
                mean a neutral white/gray region
        """
        self.on_margin = on_margin
        self.neutral_threshold = neutral_threshold

    def is_cyan(self, means: ChannelMeans) -> bool:
        return means.g > means.r + self.on_margin and means.b >= means.r

    def is_neutral(self, means: ChannelMeans) -> bool:
        t = self.neutral_threshold
        return (
            abs(means.r - means.g) < t
            and abs(means.r - means.b) < t
            and abs(means.g - means.b) < t
        )

    def label_for(self, means: ChannelMeans) -> str:
        """Label precomputed channel means."""
        if self.is_cyan(means) and not self.is_neutral(means):
            return COLOR_LABEL_ON
        return COLOR_LABEL_OFF

    def classify(self, pixels: np.ndarray) -> tuple[str, ChannelMeans]:
        """
        Classify a BGR region.

        Returns:
            Tuple of (label, channel means)

        Raises:
            ClassificationAmbiguous: If the region has no pixels
        """
        means = channel_means(pixels)
        return self.label_for(means), means
