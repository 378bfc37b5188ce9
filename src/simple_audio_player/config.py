"""Runtime settings.

Settings are a validated pydantic model. Defaults cover the common case;
``PlayerSettings.from_environment()`` overlays ``SIMPLE_AUDIO_PLAYER_*``
environment variables on top of them.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_EXTENSIONS = frozenset({".mp3", ".wav", ".ogg", ".flac", ".aac"})

ENV_PREFIX = "SIMPLE_AUDIO_PLAYER_"


class PlayerSettings(BaseModel):
    """User-tunable indexing and playback behaviour."""

    extensions: frozenset[str] = DEFAULT_EXTENSIONS
    max_workers: int | None = Field(None, ge=1, description="None = half the CPUs")
    follow_symlinks: bool = True
    initial_volume: float = Field(1.0, ge=0.0, le=1.0)
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = {"frozen": True}

    @field_validator("extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        normalized = set()
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            normalized.add(ext)
        return frozenset(normalized)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    def resolved_max_workers(self) -> int:
        """Worker pool width: explicit value, or half the CPUs (minimum 1)."""
        if self.max_workers is not None:
            return self.max_workers
        return max(1, (os.cpu_count() or 2) // 2)

    @staticmethod
    def from_environment(environ: dict[str, str] | None = None) -> PlayerSettings:
        """Load settings from SIMPLE_AUDIO_PLAYER_* environment variables.

        Unset variables keep their defaults. Raises pydantic.ValidationError
        on malformed values.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        for field in ("extensions", "max_workers", "initial_volume", "log_level", "log_file"):
            raw = env.get(ENV_PREFIX + field.upper())
            if raw is not None and raw != "":
                values[field] = raw

        raw_follow = env.get(ENV_PREFIX + "FOLLOW_SYMLINKS")
        if raw_follow:
            values["follow_symlinks"] = raw_follow.strip().lower() in ("1", "true", "yes", "on")

        return PlayerSettings.model_validate(values)
