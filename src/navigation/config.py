"""Immutable navigation configuration.

Everything that tunes the engine (timing, thresholds, filter bank, video
rotation) lives in one frozen model that is passed into the session. The
engine never reads configuration from anywhere else.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from constants import (
    BINARIZATION_FILTERS,
    COLOR_NEUTRAL_THRESHOLD,
    COLOR_ON_MARGIN,
    CONSOLE_SWITCH1,
    CONSOLE_SWITCH2,
    CONSOLE_UNKNOWN,
    DEFAULT_BASE_UNIT_MS,
    DEFAULT_FRAME_POLL_INTERVAL_MS,
    DEFAULT_FRAME_TIMEOUT_MS,
    DEFAULT_RECOVERY_OVERSHOOT,
    DEFAULT_RETRY_BUDGET,
    DEFAULT_SENTINEL_RETRY_BUDGET,
    DEFAULT_SETTLE_MS,
    DEFAULT_TESSERACT_CONFIG,
    DEFAULT_TESSERACT_LANG,
    DEFAULT_TIMING_VARIATION_MS,
    TEXT_RATIO_MAX,
    TEXT_RATIO_MIN,
    VIDEO_ROTATIONS,
)
from exceptions import ConfigError
from vision.color import ColorStateClassifier
from vision.ocr import BinarizationFilter, Recognizer, TextClassifier

RGB = tuple[int, int, int]


class NavigationConfig(BaseModel):
    """Engine configuration. Frozen once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    device_id: str = Field(default="default", min_length=1, description="Key for the device lock")
    console_type: str = Field(default=CONSOLE_SWITCH1, description="Console variant")

    # Timing (milliseconds)
    base_unit_ms: int = Field(default=DEFAULT_BASE_UNIT_MS, ge=1)
    timing_variation_ms: int = Field(default=DEFAULT_TIMING_VARIATION_MS, ge=0)
    settle_ms: int = Field(default=DEFAULT_SETTLE_MS, ge=0)
    frame_timeout_ms: int = Field(default=DEFAULT_FRAME_TIMEOUT_MS, ge=0)
    frame_poll_interval_ms: int = Field(default=DEFAULT_FRAME_POLL_INTERVAL_MS, ge=1)

    # Text classification
    text_ratio_min: float = Field(default=TEXT_RATIO_MIN, ge=0.0, le=1.0)
    text_ratio_max: float = Field(default=TEXT_RATIO_MAX, ge=0.0, le=1.0)
    binarization_filters: tuple[tuple[RGB, RGB], ...] = BINARIZATION_FILTERS
    tesseract_lang: str = DEFAULT_TESSERACT_LANG
    tesseract_config: str = DEFAULT_TESSERACT_CONFIG

    # Color classification
    color_on_margin: float = Field(default=COLOR_ON_MARGIN, ge=0)
    color_neutral_threshold: float = Field(default=COLOR_NEUTRAL_THRESHOLD, gt=0)

    # Retry/recovery
    default_retry_budget: int = Field(default=DEFAULT_RETRY_BUDGET, ge=0)
    sentinel_retry_budget: int = Field(default=DEFAULT_SENTINEL_RETRY_BUDGET, ge=0)
    recovery_overshoot: int = Field(default=DEFAULT_RECOVERY_OVERSHOOT, ge=1)

    # Video
    video_rotation: int = Field(default=0, description="Degrees: 0, 90, 180 or -90")

    @field_validator('console_type')
    @classmethod
    def validate_console_type(cls, v):
        """Unknown variants are accepted here and rejected as a precondition."""
        v = v.lower()
        if v not in (CONSOLE_SWITCH1, CONSOLE_SWITCH2, CONSOLE_UNKNOWN):
            return CONSOLE_UNKNOWN
        return v

    @field_validator('video_rotation')
    @classmethod
    def validate_video_rotation(cls, v):
        if v not in VIDEO_ROTATIONS:
            raise ValueError(f"video_rotation must be one of {VIDEO_ROTATIONS}")
        return v

    @field_validator('binarization_filters')
    @classmethod
    def validate_filters(cls, v):
        if not v:
            raise ValueError("At least one binarization filter is required")
        for lower, upper in v:
            for lo, hi in zip(lower, upper):
                if not (0 <= lo <= 255 and 0 <= hi <= 255) or lo > hi:
                    raise ValueError(f"Invalid filter range {lower} - {upper}")
        return v

    @field_validator('text_ratio_max')
    @classmethod
    def validate_ratio_window(cls, v, info):
        lo = info.data.get('text_ratio_min', TEXT_RATIO_MIN)
        if v <= lo:
            raise ValueError("text_ratio_max must exceed text_ratio_min")
        return v

    @property
    def unit_ms(self) -> int:
        """Base press unit with the timing variation applied."""
        return self.base_unit_ms + self.timing_variation_ms

    def build_text_classifier(self, recognizer: Recognizer) -> TextClassifier:
        filters = [BinarizationFilter(tuple(lo), tuple(hi)) for lo, hi in self.binarization_filters]
        return TextClassifier(
            recognizer,
            filters=filters,
            ratio_min=self.text_ratio_min,
            ratio_max=self.text_ratio_max,
        )

    def build_color_classifier(self) -> ColorStateClassifier:
        return ColorStateClassifier(
            on_margin=self.color_on_margin,
            neutral_threshold=self.color_neutral_threshold,
        )


def config_from_dict(data: dict[str, Any], config_file: str | None = None) -> NavigationConfig:
    """
    Validate a configuration mapping.

    Raises:
        ConfigError: If validation fails
    """
    try:
        return NavigationConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(p) for p in first.get("loc", ()))
        raise ConfigError(
            f"Invalid navigation config: {first.get('msg')}",
            config_key=key or None,
            config_file=config_file,
            cause=e,
        ) from e


def load_config(config_path: str | None) -> NavigationConfig:
    """
    Load configuration from YAML.

    The file may hold the settings at top level or under ``navigation:``.
    A missing path means all defaults.

    Raises:
        FileNotFoundError: If the path does not exist
        ConfigError: If the YAML is malformed or a value is invalid
    """
    if config_path is None:
        return NavigationConfig()

    path = Path(config_path)
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError("Malformed YAML", config_file=str(path), cause=e) from e

    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping", config_file=str(path))
    return config_from_dict(data.get('navigation', data), config_file=str(path))
