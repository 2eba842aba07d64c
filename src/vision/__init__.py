"""Vision modules for console-nav."""

from .frame import Frame, Region
from .roi import RegionSampler, parse_region
from .ocr import (
    BinarizationFilter,
    TesseractRecognizer,
    TextClassifier,
    extract_item_name,
    normalize_text,
)
from .color import ChannelMeans, ColorStateClassifier
from .classifier import ClassificationResult, ClassifierKind, RegionClassifier

__all__ = [
    'Frame',
    'Region',
    'RegionSampler',
    'parse_region',
    'BinarizationFilter',
    'TesseractRecognizer',
    'TextClassifier',
    'extract_item_name',
    'normalize_text',
    'ChannelMeans',
    'ColorStateClassifier',
    'ClassificationResult',
    'ClassifierKind',
    'RegionClassifier',
]
