from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, ValidationError, field_validator

from colorout.errors import ConfigError

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseModel):
    shell: str = Field(default="bash", min_length=1)
    fail_fast: bool = False
    cancel_on_start_failure: bool = False
    kill_grace_seconds: float = Field(default=3.0, ge=0)
    poll_interval: float = Field(default=0.05, gt=0, le=5)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return normalized

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def load_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "shell": os.getenv("COLOROUT_SHELL", "bash").strip() or "bash",
        "fail_fast": _env_bool("COLOROUT_FAIL", False),
        "cancel_on_start_failure": _env_bool("COLOROUT_CANCEL_ON_START_FAILURE", False),
        "kill_grace_seconds": os.getenv("COLOROUT_KILL_GRACE_SECONDS", "3.0").strip() or "3.0",
        "poll_interval": os.getenv("COLOROUT_POLL_INTERVAL", "0.05").strip() or "0.05",
        "log_level": os.getenv("COLOROUT_LOG_LEVEL", "WARNING"),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"invalid settings: {exc}") from exc


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
