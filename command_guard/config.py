from __future__ import annotations

import os
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .utils import read_text

CONFIG_ENV_VAR = "COMMAND_GUARD_CONFIG"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class GuardSettings(BaseModel):
    """
    Tunables for the guard. Settings can only widen the allow-lists; the
    dangerous rules are compiled constants.
    """

    # Upper bound on evaluated input; longer commands are rejected outright.
    max_command_length: int = Field(default=4096, ge=1)
    extra_allowed_commands: List[str] = Field(default_factory=list)
    extra_scripts: List[str] = Field(default_factory=list)
    audit_max_events: int = Field(default=1000, ge=1)
    # Applied by console.configure_logging.
    log_level: LogLevel = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


def load_settings(path: Optional[Union[str, Path]] = None) -> GuardSettings:
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return GuardSettings()
    path = Path(path)
    try:
        raw = read_text(path)
    except OSError as e:
        raise ConfigError(f"Cannot read guard settings from {path}: {e}") from e
    try:
        return GuardSettings.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid guard settings in {path}:\n{e}") from e
