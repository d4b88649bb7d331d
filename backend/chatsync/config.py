"""chatsync configuration.

Loads settings from an optional YAML file (``chatsync.settings.yaml``) into
pydantic models. Every field has a default, so an absent file yields a fully
usable configuration.

Example ``chatsync.settings.yaml``::

    timing:
      delivered_delay_seconds: 1.0
      typing_window_seconds: 3.0
    auth:
      max_attempts: 3
    logging:
      level: debug
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("chatsync.settings.yaml")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class CollectionSettings(BaseModel):
    users:    str = "users"
    rooms:    str = "chat_rooms"
    messages: str = "messages"


class RoomSettings(BaseModel):
    id_separator: str = "_"

    @field_validator("id_separator")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("id_separator must not be empty")
        return value


class TimingSettings(BaseModel):
    """Delays and freshness windows, in seconds unless noted."""
    delivered_delay_seconds: float = Field(default=1.0, ge=0)
    typing_idle_seconds:     float = Field(default=2.0, gt=0)
    typing_window_seconds:   float = Field(default=3.0, gt=0)
    online_grace_minutes:    float = Field(default=5, ge=0)


class AuthSettings(BaseModel):
    max_attempts:        int   = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=2.0, ge=0)
    min_password_length: int   = Field(default=6, ge=1)


class LoggingSettings(BaseModel):
    level: str = "info"


class SyncSettings(BaseModel):
    collections: CollectionSettings = Field(default_factory=CollectionSettings)
    rooms:       RoomSettings       = Field(default_factory=RoomSettings)
    timing:      TimingSettings     = Field(default_factory=TimingSettings)
    auth:        AuthSettings       = Field(default_factory=AuthSettings)
    logging:     LoggingSettings    = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_settings(settings_path: Optional[Union[str, Path]] = None) -> SyncSettings:
    """Load *SyncSettings* from YAML, falling back to defaults."""
    path = Path(settings_path) if settings_path is not None else SETTINGS_FILE
    settings = SyncSettings(**_load_yaml(path))
    logger.info(
        "Settings loaded (rooms=%s, delivered_delay=%ss, auth.max_attempts=%s)",
        settings.collections.rooms,
        settings.timing.delivered_delay_seconds,
        settings.auth.max_attempts,
    )
    return settings


def configure_logging(settings: SyncSettings) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    configured_level = getattr(logging, settings.logging.level.upper(), None)
    if configured_level is None:
        logger.warning("Unknown log level %r, keeping INFO", settings.logging.level)
        return
    logging.getLogger().setLevel(configured_level)
    logger.info("Root logger level set to %s", settings.logging.level.upper())
