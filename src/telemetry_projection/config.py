from __future__ import annotations

import os
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from telemetry_projection.models import MILLIS_PER_HOUR

DEFAULT_DISPLAY_FORMAT = "%d/%m\n%H:%M"


class TimeConfig(BaseModel):
    timezone: str = "UTC"
    display_format: str = DEFAULT_DISPLAY_FORMAT

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value


class ProjectionConfig(BaseModel):
    rolling_window_hours: float = Field(default=24.0, gt=0)
    hold_offset_ms: int = Field(default=1, ge=1)

    @property
    def rolling_window_ms(self) -> int:
        return int(self.rolling_window_hours * MILLIS_PER_HOUR)


class ReconcileConfig(BaseModel):
    collision_policy: Literal["offset", "average"] = "offset"
    collision_offset_ms: int = Field(default=1, ge=1)


class WindowConfig(BaseModel):
    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "WindowConfig":
        if self.start > self.end:
            raise ValueError("window start must not be after window end")
        return self


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    time: TimeConfig = Field(default_factory=TimeConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    windows: dict[str, WindowConfig] = Field(default_factory=dict)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    timezone_override = os.getenv("TELEMETRY_PROJECTION_TIMEZONE")
    if timezone_override:
        config.time = TimeConfig(
            timezone=timezone_override,
            display_format=config.time.display_format,
        )
    return config
