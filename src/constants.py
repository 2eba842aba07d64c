"""Application-wide constants.

This module centralizes magic numbers and configuration defaults
to improve code maintainability and reduce hard-coded values.
"""

# ============================================================================
# Timing (milliseconds)
# ============================================================================

DEFAULT_BASE_UNIT_MS = 100  # Hold/settle unit for menu joystick and button presses
DEFAULT_TIMING_VARIATION_MS = 0  # Added to every unit to absorb controller latency
DEFAULT_SETTLE_MS = 500  # Wait after a step before sampling the screen
DEFAULT_FRAME_TIMEOUT_MS = 1000  # Give up waiting for a frame after this long
DEFAULT_FRAME_POLL_INTERVAL_MS = 20  # Sleep between frame read attempts

SWITCH2_BASE_UNIT_MS = 24  # Switch 2 home menu reacts to much shorter presses
DATE_ROLL_BASE_UNIT_MS = 40  # Slower unit for the date picker

# ============================================================================
# Retry/Recovery
# ============================================================================

DEFAULT_RETRY_BUDGET = 1
DEFAULT_SENTINEL_RETRY_BUDGET = 1  # Fresh re-observations of the sentinel
DEFAULT_RECOVERY_OVERSHOOT = 18  # Scrolls toward the sentinel, past the menu boundary

# ============================================================================
# Text classification
# ============================================================================

# Text pixel fraction window for accepting a binarization filter
TEXT_RATIO_MIN = 0.02
TEXT_RATIO_MAX = 0.50

# Binarization filters as (lower RGB, upper RGB), dark text first
BINARIZATION_FILTERS = (
    ((0x00, 0x00, 0x00), (0x40, 0x40, 0x40)),  # Black text
    ((0x00, 0x00, 0x00), (0x60, 0x60, 0x60)),  # Dark gray text
    ((0x80, 0x80, 0x80), (0xFF, 0xFF, 0xFF)),  # White/light text
    ((0xA0, 0xA0, 0xA0), (0xFF, 0xFF, 0xFF)),  # Light gray to white
)

DEFAULT_TESSERACT_LANG = "eng"
DEFAULT_TESSERACT_CONFIG = "--oem 3 --psm 6"

# ============================================================================
# Color classification
# ============================================================================

COLOR_ON_MARGIN = 5  # Green must exceed red by more than this for "on"
COLOR_NEUTRAL_THRESHOLD = 10  # All channel differences under this means white/gray
COLOR_LABEL_ON = "on"
COLOR_LABEL_OFF = "off"
COLOR_LABELS = (COLOR_LABEL_ON, COLOR_LABEL_OFF)

# ============================================================================
# Controller
# ============================================================================

STICK_CENTER = 128
STICK_MIN = 0
STICK_MAX = 255
CONTROLLER_REQUEST_TIMEOUT_S = 10.0
CONTROLLER_MAX_RETRIES = 3

# ============================================================================
# Video
# ============================================================================

VIDEO_ROTATIONS = (0, 90, 180, -90)

# ============================================================================
# Console variants
# ============================================================================

CONSOLE_SWITCH1 = "switch1"
CONSOLE_SWITCH2 = "switch2"
CONSOLE_UNKNOWN = "unknown"

# ============================================================================
# File Paths (defaults)
# ============================================================================

DEFAULT_NAVIGATION_CONFIG = "./configs/navigation.yaml"
DEFAULT_SESSION_DIR = "./sessions"
