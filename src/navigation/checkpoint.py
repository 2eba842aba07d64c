"""Checkpoints: an action, the screen it should lead to, and a retry budget."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from constants import COLOR_LABELS
from vision.classifier import ClassificationResult, ClassifierKind
from vision.frame import Region
from vision.ocr import normalize_text
from navigation.actions import NavigationStep

if TYPE_CHECKING:
    from navigation.recovery import RecoveryPolicy


@dataclass(frozen=True)
class TextSignature:
    """
    Substrings that must (and must not) appear in the region's text.

    Matching is case-insensitive against normalized text. At least one
    required substring is needed so that empty text can never match.
    """
    required: frozenset[str]
    forbidden: frozenset[str] = field(default_factory=frozenset)

    kind = ClassifierKind.TEXT

    def __post_init__(self) -> None:
        required = frozenset(normalize_text(s) for s in self.required)
        forbidden = frozenset(normalize_text(s) for s in self.forbidden)
        if not required or "" in required:
            raise ValueError("TextSignature needs at least one non-empty required substring")
        if "" in forbidden:
            raise ValueError("Forbidden substrings must be non-empty")
        object.__setattr__(self, "required", required)
        object.__setattr__(self, "forbidden", forbidden)

    def matches(self, result: ClassificationResult) -> bool:
        if result.kind is not ClassifierKind.TEXT or result.ambiguous:
            return False
        text = normalize_text(result.value)
        return (
            all(word in text for word in self.required)
            and not any(word in text for word in self.forbidden)
        )

    def describe(self) -> str:
        parts = ["+" + w for w in sorted(self.required)]
        parts += ["-" + w for w in sorted(self.forbidden)]
        return "text " + " ".join(parts)


@dataclass(frozen=True)
class ColorSignature:
    """Expected toggle label, "on" or "off"."""
    label: str

    kind = ClassifierKind.COLOR

    def __post_init__(self) -> None:
        if self.label not in COLOR_LABELS:
            raise ValueError(f"Color label must be one of {COLOR_LABELS}, got {self.label!r}")

    def matches(self, result: ClassificationResult) -> bool:
        if result.kind is not ClassifierKind.COLOR or result.ambiguous:
            return False
        return result.value == self.label

    def describe(self) -> str:
        return f"color {self.label}"


ExpectedSignature = Union[TextSignature, ColorSignature]


def text_signature(required, forbidden=()) -> TextSignature:
    return TextSignature(frozenset(required), frozenset(forbidden))


class RetryBudget:
    """
    Non-negative counter of retries left for one checkpoint run.

    Only ever decreases. ``history`` records the remaining count after
    construction and after every consume.
    """

    def __init__(self, initial: int):
        if initial < 0:
            raise ValueError(f"Retry budget must be non-negative, got {initial}")
        self.initial = initial
        self._remaining = initial
        self.history: list[int] = [initial]

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def exhausted(self) -> bool:
        return self._remaining == 0

    def consume(self) -> int:
        """
        Spend one retry.

        Returns:
            Remaining retries

        Raises:
            ValueError: If the budget is already exhausted
        """
        if self._remaining == 0:
            raise ValueError("Retry budget already exhausted")
        self._remaining -= 1
        self.history.append(self._remaining)
        return self._remaining

    def __repr__(self) -> str:
        return f"RetryBudget({self._remaining}/{self.initial})"


@dataclass(frozen=True)
class Checkpoint:
    """
    One unit of navigation.

    Attributes:
        id: Identifier used in the diagnostic trail
        action: Step that should bring the expected screen up
        expected: Signature the region must show
        region: Where to look
        retry_budget: Retries allowed after a failed verification
        recovery: How to get back to a known screen before retrying;
            without one, a retry only re-observes the screen
    """
    id: str
    action: NavigationStep
    expected: ExpectedSignature
    region: Region
    retry_budget: int = 0
    recovery: RecoveryPolicy | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Checkpoint id must be non-empty")
        if self.retry_budget < 0:
            raise ValueError("Retry budget must be non-negative")

    @property
    def classifier_kind(self) -> ClassifierKind:
        return self.expected.kind

    def new_budget(self) -> RetryBudget:
        return RetryBudget(self.retry_budget)
