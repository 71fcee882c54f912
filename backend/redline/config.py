"""
Redline configuration.

Process-level settings come from environment variables (with defaults).
Gameplay and security tunables live in ``Settings`` and can be overridden
from ``config.yaml`` in the data directory.
"""

import logging
import os
import sys
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

APP_NAME = "CRIMSON-REDLINE"

# Storage settings
DATA_DIR_ENV = "REDLINE_DATA_DIR"
DATABASE_FILE = "redline.db"
CONFIG_FILE = "config.yaml"
LOG_FILE = "redline.log"

# Logging
LOG_LEVEL = os.getenv("REDLINE_LOG_LEVEL", "INFO")


def get_data_dir() -> Path:
    """Get the platform-appropriate local data directory."""
    override = os.getenv(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    if sys.platform == "win32":
        base = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "redline"


def get_database_url(data_dir: Path | None = None) -> str:
    """SQLite URL for the local store, honouring REDLINE_DATABASE_URL."""
    url = os.getenv("REDLINE_DATABASE_URL")
    if url:
        return url
    data_dir = data_dir or get_data_dir()
    return f"sqlite+aiosqlite:///{data_dir / DATABASE_FILE}"


class Settings(BaseModel):
    """Tunables for security and progression."""

    # Security
    min_password_length: int = Field(8, ge=8)
    lockout_threshold: int = Field(5, ge=1)
    lockout_minutes: int = Field(15, ge=1)
    bcrypt_rounds: int = Field(12, ge=4, le=31)

    # Progression
    starting_credits: int = Field(1000, ge=0)
    heat_decay_per_minute: int = Field(1, ge=0)

    # Random events
    enable_random_events: bool = True
    event_chance: float = Field(0.10, ge=0.0, le=1.0)

    model_config = {"extra": "forbid"}


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings, overlaying ``config.yaml`` on the defaults.

    Args:
        path: Explicit YAML path (defaults to <data dir>/config.yaml)

    Raises:
        ValueError: If the file is not valid YAML or fails validation
    """
    path = path or get_data_dir() / CONFIG_FILE
    if not path.exists():
        return Settings()

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping of settings")

    try:
        settings = Settings(**raw)
    except ValidationError as e:
        raise ValueError(f"Invalid settings in {path}: {e}") from e

    logger.info(f"Loaded settings overrides from {path}")
    return settings
