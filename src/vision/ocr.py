"""Text reading for menu labels.

Recognition itself is delegated to Tesseract through pytesseract. This
module decides what Tesseract gets to see: each region is binarized with
a small bank of pixel-range filters tuned for dark and light menu text,
implausible binarizations are discarded, and the longest surviving
reading wins.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import cv2
import numpy as np
import pytesseract

from constants import (
    BINARIZATION_FILTERS,
    DEFAULT_TESSERACT_CONFIG,
    DEFAULT_TESSERACT_LANG,
    TEXT_RATIO_MAX,
    TEXT_RATIO_MIN,
)
from exceptions import ClassificationAmbiguous
from utils.logger import get_logger

logger = get_logger(__name__)

# Any callable taking pixels and returning best-effort text
Recognizer = Callable[[np.ndarray], str]

_ITEM_PREFIXES = (
    "you found a ", "you found ", "you got a ", "you got ",
    "found a ", "found ", "got a ", "got ", "received a ", "received ",
)


def normalize_text(text: str) -> str:
    """
    Strip line breaks and lowercase.

    Idempotent: normalizing a normalized string returns it unchanged.
    """
    return text.replace("\r", "").replace("\n", "").lower()


def extract_item_name(text: str) -> str:
    """
    Pull the item name out of a pickup message.

    "You found a Rare Candy!" -> "rare candy"
    """
    lowered = normalize_text(text)
    for prefix in _ITEM_PREFIXES:
        pos = lowered.find(prefix)
        if pos != -1:
            lowered = lowered[pos + len(prefix):]
            break
    return lowered.rstrip("!.? \t")


@dataclass(frozen=True)
class BinarizationFilter:
    """Inclusive RGB range; pixels inside become white, the rest black."""
    lower: tuple[int, int, int]
    upper: tuple[int, int, int]

    def apply(self, pixels: np.ndarray) -> tuple[np.ndarray, float]:
        """
        Binarize a BGR region.

        Args:
            pixels: H x W x 3 BGR region

        Returns:
            Tuple of (binary image, text pixel fraction). The text fraction
            is the share of pixels left outside the range.
        """
        # Bounds are RGB, pixels are BGR
        lower = np.array(self.lower[::-1], dtype=np.uint8)
        upper = np.array(self.upper[::-1], dtype=np.uint8)
        mask = cv2.inRange(pixels, lower, upper)
        area = mask.shape[0] * mask.shape[1]
        in_range = int(np.count_nonzero(mask))
        return mask, 1.0 - in_range / area


DEFAULT_FILTERS = tuple(BinarizationFilter(lo, hi) for lo, hi in BINARIZATION_FILTERS)


class TesseractRecognizer:
    """Best-effort text recognition with Tesseract."""

    def __init__(
        self,
        lang: str = DEFAULT_TESSERACT_LANG,
        config: str = DEFAULT_TESSERACT_CONFIG,
        timeout_s: float = 0
    ):
        """
        Initialize recognizer.

        Args:
            lang: Tesseract language code
            config: Extra Tesseract CLI flags
            timeout_s: Per-call timeout (0 disables it)
        """
        self.lang = lang
        self.config = config
        self.timeout_s = timeout_s

    def __call__(self, pixels: np.ndarray) -> str:
        """
        Recognize text in a BGR or single-channel image.

        Returns:
            Recognized text, or an empty string when Tesseract fails
        """
        if pixels.size == 0:
            return ""
        image = pixels
        if image.ndim == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        try:
            return pytesseract.image_to_string(
                image, lang=self.lang, config=self.config, timeout=self.timeout_s
            )
        except (pytesseract.TesseractError, RuntimeError) as e:
            # RuntimeError is what pytesseract raises on timeout
            logger.warning(f"Tesseract failed: {e}")
            return ""


class TextClassifier:
    """
    Read a region with several binarizations and keep the best reading.

    Attributes:
        recognizer: Text recognition callable
        filters: Binarization filters, tried in order
        ratio_min: Lowest accepted text pixel fraction
        ratio_max: Highest accepted text pixel fraction
    """

    def __init__(
        self,
        recognizer: Recognizer,
        filters: Sequence[BinarizationFilter] = DEFAULT_FILTERS,
        ratio_min: float = TEXT_RATIO_MIN,
        ratio_max: float = TEXT_RATIO_MAX
    ):
        self.recognizer = recognizer
        self.filters = tuple(filters)
        self.ratio_min = ratio_min
        self.ratio_max = ratio_max

    def read(self, pixels: np.ndarray) -> str:
        """
        Read and normalize the text in a region.

        Args:
            pixels: H x W x 3 BGR region

        Returns:
            Normalized text (may be empty)

        Raises:
            ClassificationAmbiguous: If the region has no pixels
        """
        if pixels.size == 0:
            raise ClassificationAmbiguous("Cannot read text from an empty region")

        best_text = ""
        for index, text_filter in enumerate(self.filters):
            binary, text_ratio = text_filter.apply(pixels)
            if text_ratio < self.ratio_min or text_ratio > self.ratio_max:
                logger.debug(f"Filter {index} skipped, text ratio {text_ratio:.3f}")
                continue

            text = self.recognizer(binary)
            # Strictly longer, so ties keep the earlier filter
            if len(text) > len(best_text):
                best_text = text

        if not best_text:
            best_text = self.recognizer(pixels)

        return normalize_text(best_text)
