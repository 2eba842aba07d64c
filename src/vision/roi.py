"""Region sampling from frames based on normalized coordinates."""

import numpy as np

from exceptions import ConfigError
from vision.frame import Frame, Region


class RegionSampler:
    """Extract pixel regions from frames. Stateless."""

    def sample(self, frame: Frame, region: Region) -> np.ndarray:
        """
        Extract the pixels covered by a region.

        Regions partially outside the frame are clamped to it. A region
        lying entirely outside yields an empty (0-sized) array.

        Args:
            frame: Captured frame
            region: Normalized region

        Returns:
            Writable copy of the frame pixels (H x W x 3, BGR)
        """
        x_min, y_min, x_max, y_max = region.to_pixels(frame.width, frame.height)
        return frame.image[y_min:y_max, x_min:x_max].copy()


def parse_region(
    values: object,
    config_key: str | None = None,
    config_file: str | None = None
) -> Region:
    """Build a Region from an [x, y, width, height] list."""
    if not isinstance(values, (list, tuple)) or len(values) != 4:
        raise ConfigError(
            f"Region must be [x, y, width, height], got {values!r}",
            config_key=config_key,
            config_file=config_file,
        )
    try:
        return Region(*(float(v) for v in values))
    except (TypeError, ValueError) as e:
        raise ConfigError(
            f"Invalid region {values!r}",
            config_key=config_key,
            config_file=config_file,
            cause=e,
        ) from e
