"""Custom exceptions for console-nav.

Provides a hierarchy of exceptions for proper error handling
and differentiation of error types.
"""

import logging
from datetime import datetime
from typing import Any

# ============================================================================
# Base Exception
# ============================================================================

class NavigatorError(Exception):
    """Base exception for all console-nav errors.

    Attributes:
        message: Human-readable error message
        context: Dictionary with additional error context
        cause: Original exception that caused this error
        timestamp: When the error occurred
        error_code: Unique error code for this exception type
    """

    error_code: str = "CN000"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize NavigatorError.

        Args:
            message: Human-readable error message
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now()

    def __str__(self) -> str:
        """Return string representation with context."""
        parts = [self.message]

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"[{context_str}]")

        if self.cause:
            parts.append(f"caused by: {type(self.cause).__name__}: {self.cause}")

        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "cause": type(self.cause).__name__ if self.cause else None,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> dict[str, Any]:
        """Convert exception to a JSON-serializable summary.

        Returns:
            Dictionary containing error_code, error_type, and message.
        """
        return {
            "error_code": self.error_code,
            "error_type": self.__class__.__name__,
            "message": str(self),
        }

    def log(self, level: int = logging.ERROR) -> None:
        """Log this exception with context.

        Args:
            level: Logging level (default: ERROR)
        """
        from utils.logger import get_logger
        logger = get_logger(__name__)
        logger.log(level, self.message, extra={
            "exception_type": self.__class__.__name__,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        })


# ============================================================================
# Vision Errors
# ============================================================================

class VisionError(NavigatorError):
    """Base exception for vision-related errors.

    This includes missing frames, OCR failures and classification
    problems.

    Attributes:
        region: Normalized region being inspected, if any
        frame_shape: Shape of the frame being processed
    """

    error_code: str = "CN100"

    def __init__(
        self,
        message: str,
        region: tuple | None = None,
        frame_shape: tuple | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize VisionError.

        Args:
            message: Human-readable error message
            region: Normalized (x, y, width, height) region
            frame_shape: Shape of the frame
            context: Additional context
            cause: Original exception
        """
        context = context or {}
        context.update({
            "region": region,
            "frame_shape": frame_shape,
        })

        super().__init__(message, context=context, cause=cause)
        self.region = region
        self.frame_shape = frame_shape


class NoFrameAvailable(VisionError):
    """The capture source produced no frame before the timeout."""

    error_code: str = "CN101"


class ClassificationAmbiguous(VisionError):
    """No filter or threshold produced a usable classification."""

    error_code: str = "CN102"


# ============================================================================
# Capture Errors
# ============================================================================

class CaptureError(NavigatorError):
    """Base exception for capture-related errors.

    Attributes:
        capture_type: Type of capture (e.g., "capture_card", "video_file")
        device: Device index or file path
    """

    error_code: str = "CN200"

    def __init__(
        self,
        message: str,
        capture_type: str | None = None,
        device: Any = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize CaptureError.

        Args:
            message: Human-readable error message
            capture_type: Type of capture that failed
            device: Device identifier
            context: Additional context
            cause: Original exception
        """
        context = context or {}
        context.update({
            "capture_type": capture_type,
            "device": device,
        })

        super().__init__(message, context=context, cause=cause)
        self.capture_type = capture_type
        self.device = device


# ============================================================================
# Navigation Errors
# ============================================================================

class NavigationError(NavigatorError):
    """Base exception for navigation errors.

    Attributes:
        checkpoint_id: Checkpoint being driven when the error occurred
    """

    error_code: str = "CN300"

    def __init__(
        self,
        message: str,
        checkpoint_id: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize NavigationError.

        Args:
            message: Human-readable error message
            checkpoint_id: Checkpoint identifier
            context: Additional context
            cause: Original exception
        """
        context = context or {}
        if checkpoint_id is not None:
            context["checkpoint_id"] = checkpoint_id

        super().__init__(message, context=context, cause=cause)
        self.checkpoint_id = checkpoint_id


class VerificationMismatch(NavigationError):
    """Observed screen does not match the expected signature."""

    error_code: str = "CN301"

    def __init__(
        self,
        message: str,
        checkpoint_id: str | None = None,
        outcome: str | None = None,
        observed: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        context = context or {}
        context.update({"outcome": outcome, "observed": observed})

        super().__init__(message, checkpoint_id=checkpoint_id, context=context, cause=cause)
        self.outcome = outcome
        self.observed = observed


class RecoveryExhausted(NavigationError):
    """Retry budget ran out or the sentinel could not be confirmed."""

    error_code: str = "CN302"


class UnsupportedPrecondition(NavigationError):
    """A precondition failed before any action was dispatched."""

    error_code: str = "CN303"


class SessionCancelled(NavigationError):
    """The session's cancellation token fired."""

    error_code: str = "CN304"


class DeviceBusyError(NavigationError):
    """Another session already owns the device."""

    error_code: str = "CN305"


# ============================================================================
# Controller Errors
# ============================================================================

class ControllerError(NavigatorError):
    """Error sending input to the controller transport.

    Attributes:
        endpoint: Endpoint that was called
        status_code: HTTP status code if applicable
    """

    error_code: str = "CN400"

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        context = context or {}
        context.update({
            "endpoint": endpoint,
            "status_code": status_code,
        })

        super().__init__(message, context=context, cause=cause)
        self.endpoint = endpoint
        self.status_code = status_code


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigError(NavigatorError):
    """Error in configuration.

    Attributes:
        config_key: Configuration key that caused the error
        config_file: Configuration file path (if applicable)
    """

    error_code: str = "CN500"

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_file: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize ConfigError.

        Args:
            message: Human-readable error message
            config_key: Configuration key
            config_file: Configuration file path
            context: Additional context
            cause: Original exception
        """
        context = context or {}
        context.update({
            "config_key": config_key,
            "config_file": config_file,
        })

        super().__init__(message, context=context, cause=cause)
        self.config_key = config_key
        self.config_file = config_file


# Alias for compatibility
ConfigurationError = ConfigError


__all__ = [
    # Base
    "NavigatorError",
    # Vision
    "VisionError",
    "NoFrameAvailable",
    "ClassificationAmbiguous",
    # Capture
    "CaptureError",
    # Navigation
    "NavigationError",
    "VerificationMismatch",
    "RecoveryExhausted",
    "UnsupportedPrecondition",
    "SessionCancelled",
    "DeviceBusyError",
    # Controller
    "ControllerError",
    # Config
    "ConfigError",
    "ConfigurationError",
]
