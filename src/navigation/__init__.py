"""Vision-verified navigation engine."""

from .actions import ActionKind, Button, ControlAction, NavigationStep, down, left, move_stick, press, right, up
from .cancel import CancellationToken
from .checkpoint import Checkpoint, ColorSignature, RetryBudget, TextSignature, text_signature
from .config import NavigationConfig, config_from_dict, load_config
from .events import DiagnosticEvent, EventChannel, EventKind
from .gate import VerificationGate, VerificationOutcome
from .recovery import CheckpointRunner, RecoveryPolicy, RecoveryState
from .session import (
    AbortReason,
    NavigationSession,
    SessionResult,
    SessionStatus,
    TrailEntry,
    validate_checkpoints,
)
from .route_config import load_route, route_from_dict
from .date_time import date_time_route, home_to_settings_step, require_supported_console

__all__ = [
    'ActionKind',
    'Button',
    'ControlAction',
    'NavigationStep',
    'down',
    'left',
    'move_stick',
    'press',
    'right',
    'up',
    'CancellationToken',
    'Checkpoint',
    'ColorSignature',
    'RetryBudget',
    'TextSignature',
    'text_signature',
    'NavigationConfig',
    'config_from_dict',
    'load_config',
    'DiagnosticEvent',
    'EventChannel',
    'EventKind',
    'VerificationGate',
    'VerificationOutcome',
    'CheckpointRunner',
    'RecoveryPolicy',
    'RecoveryState',
    'AbortReason',
    'NavigationSession',
    'SessionResult',
    'SessionStatus',
    'TrailEntry',
    'validate_checkpoints',
    'load_route',
    'route_from_dict',
    'date_time_route',
    'home_to_settings_step',
    'require_supported_console',
]
