"""Region classification: text or color state.

The set of classifier kinds is closed. Each call site handles both kinds
explicitly and rejects anything else.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from exceptions import ClassificationAmbiguous
from utils.logger import get_logger
from vision.color import ColorStateClassifier
from vision.frame import Frame, Region
from vision.ocr import TextClassifier
from vision.roi import RegionSampler

logger = get_logger(__name__)


class ClassifierKind(str, Enum):
    """Which classifier a checkpoint uses."""
    TEXT = "text"
    COLOR = "color"


@dataclass(frozen=True)
class ClassificationResult:
    """
    Outcome of classifying one region of one frame.

    Attributes:
        kind: Classifier that produced the result
        value: Normalized text (TEXT) or label (COLOR)
        ambiguous: True when nothing usable was produced; value is then
            empty and can never satisfy an expected signature
    """
    kind: ClassifierKind
    value: str
    ambiguous: bool = False

    @property
    def normalized_text(self) -> str:
        if self.kind is not ClassifierKind.TEXT:
            raise AttributeError("normalized_text is only set on TEXT results")
        return self.value

    @property
    def label(self) -> str:
        if self.kind is not ClassifierKind.COLOR:
            raise AttributeError("label is only set on COLOR results")
        return self.value

    @classmethod
    def neutral(cls, kind: ClassifierKind) -> "ClassificationResult":
        return cls(kind=kind, value="", ambiguous=True)


class RegionClassifier:
    """Sample a region and classify it with the requested kind."""

    def __init__(
        self,
        text_classifier: TextClassifier,
        color_classifier: ColorStateClassifier | None = None,
        sampler: RegionSampler | None = None
    ):
        self.text_classifier = text_classifier
        self.color_classifier = color_classifier or ColorStateClassifier()
        self.sampler = sampler or RegionSampler()

    def classify(
        self,
        frame: Frame,
        region: Region,
        kind: ClassifierKind
    ) -> ClassificationResult:
        """
        Classify one region of a frame.

        Ambiguous input (empty region, no readable text) is folded into a
        neutral result instead of raising.

        Args:
            frame: Captured frame
            region: Normalized region
            kind: Classifier to use

        Returns:
            Fresh ClassificationResult
        """
        pixels = self.sampler.sample(frame, region)
        try:
            return self._classify_pixels(pixels, kind)
        except ClassificationAmbiguous as e:
            logger.warning(f"Ambiguous {kind.value} classification at {region.as_tuple()}: {e.message}")
            return ClassificationResult.neutral(kind)

    def _classify_pixels(self, pixels: np.ndarray, kind: ClassifierKind) -> ClassificationResult:
        if kind is ClassifierKind.TEXT:
            text = self.text_classifier.read(pixels)
            if not text:
                raise ClassificationAmbiguous("No text recognized", frame_shape=pixels.shape)
            return ClassificationResult(kind=kind, value=text)
        if kind is ClassifierKind.COLOR:
            label, means = self.color_classifier.classify(pixels)
            logger.debug(f"Mean RGB {tuple(int(v) for v in means.as_tuple())} -> {label}")
            return ClassificationResult(kind=kind, value=label)
        raise ValueError(f"Unknown classifier kind: {kind!r}")
