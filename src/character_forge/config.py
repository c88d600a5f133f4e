"""
Runtime configuration for the character service.

Values come from the environment, after loading a ``.env`` file if one is
present.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger("character-forge")

ENV_PREFIX = "CHARACTER_FORGE_"


def package_version() -> str:
    try:
        from importlib.metadata import version as _get_version
        return _get_version("character-forge")
    except Exception:
        return "0.1.0"  # Fallback if metadata unavailable


class Settings(BaseModel):
    """Settings for remote sync and version stamping."""
    api_url: str = Field(default="http://localhost:5000/api", description="Base URL of the character API")
    debounce_ms: int = Field(default=1000, ge=0, description="Quiet period before a local save is sent remotely")
    max_retries: int = Field(default=3, ge=1, description="Attempts per remote write before it is marked pending")
    retry_backoff: float = Field(default=1.0, ge=0, description="First retry delay in seconds, doubled on each attempt")
    timeout: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds")
    builder_version: str = Field(default_factory=package_version, description="Version stamped on saved drafts")

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


def load_settings(env_file: str | None = None) -> Settings:
    """Build Settings from ``CHARACTER_FORGE_*`` environment variables.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
    """
    if not load_dotenv(env_file):
        logger.debug("No .env file loaded, using process environment only")

    values = {}
    for name in Settings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw != "":
            values[name] = raw

    return Settings.model_validate(values)
