"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``InkwellConfig``
instance.  Dict-based access keeps working unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .config import DEFAULT_EXTENSION, DEFAULT_PASSPHRASE, DEFAULT_QUIET_PERIOD


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    entries_dir: Path | None = None
    log_dir: Path | None = None

    @field_validator("data_dir", "entries_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class JournalConfig(BaseModel):
    """Entry file naming."""

    extension: str = DEFAULT_EXTENSION

    @field_validator("extension")
    @classmethod
    def _leading_dot(cls, v: str) -> str:
        if not v:
            raise ValueError("extension cannot be empty")
        return v if v.startswith(".") else f".{v}"


class AutosaveConfig(BaseModel):
    """Debounce settings for background saves."""

    quiet_period: float = DEFAULT_QUIET_PERIOD

    @field_validator("quiet_period")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("quiet_period must be positive")
        return v


class CipherConfig(BaseModel):
    """Key material for the record cipher."""

    passphrase: str = DEFAULT_PASSPHRASE


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    file: str | None = None


class InkwellConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.inkwell-data"))
    journal: JournalConfig = JournalConfig()
    autosave: AutosaveConfig = AutosaveConfig()
    cipher: CipherConfig = CipherConfig()
    logging: LoggingConfig = LoggingConfig()
