"""Route files: checkpoint sequences described in YAML.

Example::

    name: example
    sentinels:
      system_update:
        region: [0.37, 0.19, 0.16, 0.09]
        expect: {text: {required: [system, update]}}
    checkpoints:
      - id: date_time_menu
        steps:
          settle_ms: 500
          actions:
            - {stick: down, repeat: 2}
            - {button: A, settle_ms: 500}
        region: [0.05, 0.03, 0.20, 0.10]
        expect: {text: {required: [date, time]}}
        retry_budget: 1
        recovery:
          sentinel: system_update
          back: {actions: [{button: B, settle_ms: 500}]}
          scroll: {stick: up}
          overshoot: 18

Hold and settle times default to the configured press unit; budgets and
overshoot default to the configured values.
"""

from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from constants import COLOR_LABELS, STICK_MAX, STICK_MIN
from exceptions import ConfigError
from navigation.actions import Button, ControlAction, NavigationStep, down, left, move_stick, press, right, up
from navigation.checkpoint import Checkpoint, ColorSignature, ExpectedSignature, text_signature
from navigation.config import NavigationConfig
from navigation.recovery import RecoveryPolicy
from vision.frame import Region

_DIRECTIONS = {"up": up, "down": down, "left": left, "right": right}


class ActionModel(BaseModel):
    """One button press or stick move, optionally repeated."""

    model_config = ConfigDict(extra="forbid")

    button: Optional[str] = None
    stick: Optional[Union[str, tuple[int, int]]] = None
    hold_ms: Optional[int] = Field(default=None, ge=0)
    settle_ms: Optional[int] = Field(default=None, ge=0)
    repeat: int = Field(default=1, ge=1)

    @field_validator('button')
    @classmethod
    def validate_button(cls, v):
        if v is not None and v.upper() not in Button.__members__:
            raise ValueError(f"Unknown button: {v}")
        return v.upper() if v else v

    @field_validator('stick')
    @classmethod
    def validate_stick(cls, v):
        if isinstance(v, str):
            if v.lower() not in _DIRECTIONS:
                raise ValueError(f"Stick direction must be one of {sorted(_DIRECTIONS)}")
            return v.lower()
        if v is not None and not all(STICK_MIN <= c <= STICK_MAX for c in v):
            raise ValueError(f"Stick position out of range: {v}")
        return v

    @model_validator(mode='after')
    def exactly_one_input(self):
        if (self.button is None) == (self.stick is None):
            raise ValueError("Each action needs exactly one of 'button' or 'stick'")
        return self

    def build(self, unit_ms: int) -> list[ControlAction]:
        hold = self.hold_ms if self.hold_ms is not None else unit_ms
        settle = self.settle_ms if self.settle_ms is not None else unit_ms
        if self.button is not None:
            action = press(Button[self.button], hold, settle)
        elif isinstance(self.stick, str):
            action = _DIRECTIONS[self.stick](hold, settle)
        else:
            action = move_stick(self.stick[0], self.stick[1], hold, settle)
        return [action] * self.repeat


class StepModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    actions: list[ActionModel] = Field(default_factory=list)
    settle_ms: Optional[int] = Field(default=None, ge=0)

    def build(self, config: NavigationConfig, name: str) -> NavigationStep:
        actions = [a for model in self.actions for a in model.build(config.unit_ms)]
        settle = self.settle_ms if self.settle_ms is not None else config.settle_ms
        return NavigationStep(actions=tuple(actions), settle_ms=settle, name=name)


class TextExpectModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    required: list[str] = Field(min_length=1)
    forbidden: list[str] = Field(default_factory=list)


class ExpectModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: Optional[TextExpectModel] = None
    color: Optional[str] = None

    @field_validator('color')
    @classmethod
    def validate_color(cls, v):
        if v is not None and v not in COLOR_LABELS:
            raise ValueError(f"Color label must be one of {COLOR_LABELS}")
        return v

    @model_validator(mode='after')
    def exactly_one_signature(self):
        if (self.text is None) == (self.color is None):
            raise ValueError("'expect' needs exactly one of 'text' or 'color'")
        return self

    def build(self) -> ExpectedSignature:
        if self.text is not None:
            return text_signature(self.text.required, self.text.forbidden)
        return ColorSignature(self.color)


class SentinelModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    region: tuple[float, float, float, float]
    expect: ExpectModel
    retry_budget: Optional[int] = Field(default=None, ge=0)


class RecoveryModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sentinel: Union[str, SentinelModel]
    back: StepModel = Field(default_factory=StepModel)
    scroll: Optional[ActionModel] = None
    overshoot: Optional[int] = Field(default=None, ge=0)
    approach: StepModel = Field(default_factory=StepModel)
    recheck: bool = False


class CheckpointModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    steps: StepModel = Field(default_factory=StepModel)
    region: tuple[float, float, float, float]
    expect: ExpectModel
    retry_budget: Optional[int] = Field(default=None, ge=0)
    recovery: Optional[RecoveryModel] = None


class RouteModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = "route"
    sentinels: dict[str, SentinelModel] = Field(default_factory=dict)
    checkpoints: list[CheckpointModel] = Field(min_length=1)

    @model_validator(mode='after')
    def check_references(self):
        ids = [c.id for c in self.checkpoints]
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            raise ValueError(f"Duplicate checkpoint ids: {sorted(duplicates)}")
        for checkpoint in self.checkpoints:
            recovery = checkpoint.recovery
            if recovery and isinstance(recovery.sentinel, str) and recovery.sentinel not in self.sentinels:
                raise ValueError(f"Checkpoint '{checkpoint.id}' refers to unknown sentinel '{recovery.sentinel}'")
        return self


def _build_region(values, key: str) -> Region:
    try:
        return Region(*values)
    except ValueError as e:
        raise ConfigError(f"Invalid region: {e}", config_key=key, cause=e) from e


def _build_sentinel(sentinel_id: str, model: SentinelModel, config: NavigationConfig) -> Checkpoint:
    budget = model.retry_budget if model.retry_budget is not None else config.sentinel_retry_budget
    return Checkpoint(
        id=sentinel_id,
        action=NavigationStep(name=sentinel_id),
        expected=model.expect.build(),
        region=_build_region(model.region, f"sentinels.{sentinel_id}.region"),
        retry_budget=budget,
    )


def _build_recovery(
    checkpoint_id: str,
    model: RecoveryModel,
    sentinels: dict[str, Checkpoint],
    config: NavigationConfig
) -> RecoveryPolicy:
    if isinstance(model.sentinel, str):
        sentinel = sentinels[model.sentinel]
    else:
        sentinel = _build_sentinel(f"{checkpoint_id}_sentinel", model.sentinel, config)

    scroll = model.scroll.build(config.unit_ms)[0] if model.scroll else None
    if scroll is None:
        overshoot = model.overshoot or 0
    else:
        overshoot = model.overshoot if model.overshoot is not None else config.recovery_overshoot

    return RecoveryPolicy(
        sentinel=sentinel,
        back=model.back.build(config, f"{checkpoint_id}:back"),
        scroll=scroll,
        overshoot=overshoot,
        approach=model.approach.build(config, f"{checkpoint_id}:approach"),
        recheck=model.recheck,
        settle_ms=config.settle_ms,
        name=f"{checkpoint_id}:recovery",
    )


def route_from_dict(
    data: dict[str, Any],
    config: NavigationConfig,
    route_file: str | None = None
) -> list[Checkpoint]:
    """
    Build checkpoints from a parsed route mapping.

    Raises:
        ConfigError: If the route is invalid
    """
    try:
        route = RouteModel.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(p) for p in first.get("loc", ()))
        raise ConfigError(
            f"Invalid route: {first.get('msg')}",
            config_key=key or None,
            config_file=route_file,
            cause=e,
        ) from e

    sentinels = {
        sentinel_id: _build_sentinel(sentinel_id, model, config)
        for sentinel_id, model in route.sentinels.items()
    }

    checkpoints = []
    for model in route.checkpoints:
        budget = model.retry_budget if model.retry_budget is not None else config.default_retry_budget
        recovery = _build_recovery(model.id, model.recovery, sentinels, config) if model.recovery else None
        checkpoints.append(Checkpoint(
            id=model.id,
            action=model.steps.build(config, model.id),
            expected=model.expect.build(),
            region=_build_region(model.region, f"checkpoints.{model.id}.region"),
            retry_budget=budget,
            recovery=recovery,
        ))
    return checkpoints


def load_route(route_path: str, config: NavigationConfig) -> list[Checkpoint]:
    """
    Load a route file.

    Args:
        route_path: YAML route file
        config: Configuration supplying default timings and budgets

    Returns:
        Ordered checkpoints

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the YAML is malformed or the route invalid
    """
    path = Path(route_path)
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError("Malformed route YAML", config_file=str(path), cause=e) from e

    if not isinstance(data, dict):
        raise ConfigError("Route root must be a mapping", config_file=str(path))
    return route_from_dict(data, config, route_file=str(path))
