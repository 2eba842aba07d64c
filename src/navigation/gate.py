"""Verification gate: one frame, one region, one verdict."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol

from constants import DEFAULT_FRAME_TIMEOUT_MS
from exceptions import CaptureError
from utils.logger import get_logger
from utils.metrics import MATCHES, MISMATCHES, NO_FRAMES, VERIFICATIONS, MetricsCollector
from utils.time import get_monotonic_ms
from vision.classifier import RegionClassifier
from vision.frame import Frame

if TYPE_CHECKING:
    from navigation.cancel import CancellationToken
    from navigation.checkpoint import Checkpoint

logger = get_logger(__name__)


class VerificationOutcome(str, Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    NO_FRAME = "NO_FRAME"


class FrameSource(Protocol):
    def capture(self, timeout_ms: int, cancel: CancellationToken | None = None) -> Frame | None:
        ...


class VerificationGate:
    """
    Capture a frame and check a checkpoint's region against its signature.

    Only an explicit MATCH passes. Missing frames, capture errors and
    ambiguous classifications never do.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        classifier: RegionClassifier,
        timeout_ms: int = DEFAULT_FRAME_TIMEOUT_MS,
        metrics: MetricsCollector | None = None
    ):
        self.frame_source = frame_source
        self.classifier = classifier
        self.timeout_ms = timeout_ms
        self.metrics = metrics

    def verify(
        self,
        checkpoint: Checkpoint,
        cancel: CancellationToken | None = None
    ) -> tuple[VerificationOutcome, str]:
        """
        Verify a checkpoint against a freshly captured frame.

        Args:
            checkpoint: Checkpoint whose region and signature are checked
            cancel: Token checked while waiting for the frame

        Returns:
            (outcome, observed value). The observed value is empty for
            NO_FRAME and for ambiguous classifications.

        Raises:
            SessionCancelled: If cancellation fires while waiting
        """
        started_ms = get_monotonic_ms()
        outcome, observed = self._verify(checkpoint, cancel)

        if self.metrics is not None:
            self.metrics.record_latency(get_monotonic_ms() - started_ms)
            self.metrics.increment(VERIFICATIONS)
            self.metrics.increment({
                VerificationOutcome.MATCH: MATCHES,
                VerificationOutcome.MISMATCH: MISMATCHES,
                VerificationOutcome.NO_FRAME: NO_FRAMES,
            }[outcome])
        return outcome, observed

    def _verify(
        self,
        checkpoint: Checkpoint,
        cancel: CancellationToken | None
    ) -> tuple[VerificationOutcome, str]:
        try:
            frame = self.frame_source.capture(self.timeout_ms, cancel)
        except CaptureError as e:
            logger.warning(f"[{checkpoint.id}] Capture failed: {e}")
            return VerificationOutcome.NO_FRAME, ""

        if frame is None:
            logger.warning(f"[{checkpoint.id}] No frame within {self.timeout_ms}ms")
            return VerificationOutcome.NO_FRAME, ""

        result = self.classifier.classify(frame, checkpoint.region, checkpoint.classifier_kind)
        if checkpoint.expected.matches(result):
            logger.debug(f"[{checkpoint.id}] MATCH {checkpoint.expected.describe()} <- {result.value!r}")
            return VerificationOutcome.MATCH, result.value

        logger.info(
            f"[{checkpoint.id}] MISMATCH: expected {checkpoint.expected.describe()}, "
            f"observed {result.value!r}{' (ambiguous)' if result.ambiguous else ''}"
        )
        return VerificationOutcome.MISMATCH, result.value
