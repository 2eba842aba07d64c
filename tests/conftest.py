"""Common fixtures for tests."""

import sys
import tempfile
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from controller.base import BaseController
from exceptions import CaptureError
from navigation.actions import Button, NavigationStep, press
from navigation.checkpoint import Checkpoint, ColorSignature, text_signature
from navigation.config import NavigationConfig
from navigation.gate import VerificationGate
from navigation.recovery import RecoveryPolicy
from vision.classifier import ClassificationResult
from vision.frame import Frame, Region


# ============================================================================
# Fakes
# ============================================================================

class ScriptedScreen:
    """
    Frame source and region classifier driven by a script.

    Each verification consumes one script item:
        None           -> no frame (NO_FRAME)
        CaptureError   -> capture raises
        ""             -> frame arrives, classification is ambiguous
        any other str  -> frame arrives, region reads as that value

    When the script runs out, every further capture returns None.
    """

    def __init__(self, script: List[Union[str, None, Exception]]):
        self.script = list(script)
        self.captures = 0
        self.classified: List[Region] = []
        self._pending: Optional[str] = None

    def capture(self, timeout_ms, cancel=None):
        if cancel is not None:
            cancel.check()
        self.captures += 1
        if not self.script:
            return None
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        if item is None:
            return None
        self._pending = item
        return Frame(np.zeros((72, 128, 3), dtype=np.uint8))

    def classify(self, frame, region, kind):
        self.classified.append(region)
        value, self._pending = self._pending, None
        if not value:
            return ClassificationResult.neutral(kind)
        return ClassificationResult(kind=kind, value=value)


class RecordingController(BaseController):
    """Controller that records inputs instead of sending them."""

    def __init__(self, on_dispatch: Optional[Callable] = None):
        super().__init__()
        self.actions = []
        self.waits: List[int] = []
        self.on_dispatch = on_dispatch

    def dispatch(self, action, hold_ms, settle_ms):
        self.actions.append(action)
        self.dispatched += 1
        if self.on_dispatch is not None:
            self.on_dispatch(action)

    def wait(self, duration_ms, cancel):
        self.waits.append(duration_ms)
        cancel.check()

    @property
    def buttons(self) -> List[str]:
        return [a.button.value if a.button else f"stick{a.stick_x},{a.stick_y}" for a in self.actions]


class ScriptedRecognizer:
    """Recognizer returning canned readings in order, then empty strings."""

    def __init__(self, readings: List[str]):
        self.readings = list(readings)
        self.calls: List[np.ndarray] = []

    def __call__(self, pixels):
        self.calls.append(pixels)
        return self.readings.pop(0) if self.readings else ""


class BlockingController(RecordingController):
    """Controller whose first dispatch blocks until released."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def dispatch(self, action, hold_ms, settle_ms):
        self.entered.set()
        self.release.wait(timeout=5)
        super().dispatch(action, hold_ms, settle_ms)


# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def session_logger(temp_dir: Path):
    """Create a SessionLogger instance."""
    from utils.logger import SessionLogger
    return SessionLogger(str(temp_dir))


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def nav_config() -> NavigationConfig:
    """Configuration with no waits so tests run instantly."""
    return NavigationConfig(
        device_id="test-device",
        settle_ms=0,
        frame_timeout_ms=0,
        timing_variation_ms=0,
    )


@pytest.fixture
def controller() -> RecordingController:
    return RecordingController()


@pytest.fixture
def make_screen():
    """Factory for ScriptedScreen."""
    return ScriptedScreen


@pytest.fixture
def make_gate():
    """Build a VerificationGate whose frames and readings come from a ScriptedScreen."""
    def _make(screen: ScriptedScreen) -> VerificationGate:
        return VerificationGate(screen, screen, timeout_ms=0)
    return _make


@pytest.fixture
def region() -> Region:
    return Region(0.05, 0.03, 0.20, 0.10)


@pytest.fixture
def make_checkpoint(region: Region):
    """Factory for text checkpoints that press A once."""
    def _make(
        checkpoint_id: str = "title",
        required=("date", "time"),
        forbidden=(),
        budget: int = 0,
        recovery: Optional[RecoveryPolicy] = None,
        color: Optional[str] = None,
    ) -> Checkpoint:
        expected = ColorSignature(color) if color else text_signature(required, forbidden)
        return Checkpoint(
            id=checkpoint_id,
            action=NavigationStep(actions=(press(Button.A, 10, 10),), name=checkpoint_id),
            expected=expected,
            region=region,
            retry_budget=budget,
            recovery=recovery,
        )
    return _make


@pytest.fixture
def sentinel() -> Checkpoint:
    return Checkpoint(
        id="system_update",
        action=NavigationStep(name="system_update"),
        expected=text_signature({"system", "update"}),
        region=Region(0.37, 0.19, 0.16, 0.09),
        retry_budget=1,
    )


@pytest.fixture
def recovery_policy(sentinel: Checkpoint) -> RecoveryPolicy:
    """B, then 3 ups, then the System Update sentinel."""
    from navigation.actions import up
    return RecoveryPolicy(
        sentinel=sentinel,
        back=NavigationStep(actions=(press(Button.B, 10, 10),), name="back"),
        scroll=up(10, 10),
        overshoot=3,
        settle_ms=0,
    )


def solid_frame(rgb, size=(40, 40)) -> Frame:
    """Frame filled with one RGB color (stored BGR)."""
    r, g, b = rgb
    image = np.zeros((size[1], size[0], 3), dtype=np.uint8)
    image[:, :] = (b, g, r)
    return Frame(image)


@pytest.fixture
def make_solid_frame():
    return solid_frame


@pytest.fixture
def capture_error() -> CaptureError:
    return CaptureError("device unplugged", capture_type="capture_card", device=0)


@pytest.fixture
def make_controller():
    """Factory for RecordingController with an optional dispatch hook."""
    return RecordingController


@pytest.fixture
def blocking_controller() -> BlockingController:
    controller = BlockingController()
    yield controller
    controller.release.set()


@pytest.fixture
def make_recognizer():
    """Factory for ScriptedRecognizer."""
    return ScriptedRecognizer
