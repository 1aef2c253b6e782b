from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in _FALSE_VALUES


class SplitterConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    chunk_size: int = Field(default=16, ge=1, le=256)
    generate_material_lists: bool = True
    overwrite: bool = True
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, **overrides: Optional[object]) -> "SplitterConfig":
        """Build a config from ``LITESPLIT_*`` variables; non-None overrides win."""
        values: dict[str, object] = {
            "enabled": _env_flag("LITESPLIT_ENABLED", True),
            "chunk_size": int(os.getenv("LITESPLIT_CHUNK_SIZE", "16").strip() or "16"),
            "generate_material_lists": _env_flag("LITESPLIT_MATERIAL_LISTS", True),
            "overwrite": _env_flag("LITESPLIT_OVERWRITE", True),
            "log_level": os.getenv("LITESPLIT_LOG_LEVEL", "INFO"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
