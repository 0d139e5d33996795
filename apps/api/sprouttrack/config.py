"""Application configuration utilities."""
from __future__ import annotations

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_ENV_OVERRIDES = {
    "SPROUT_DATABASE_PATH": "database_path",
    "SPROUT_JWT_SECRET": "jwt_secret",
    "AUTH_LIFE": "auth_life",
    "IDLE_TIME": "idle_time",
    "SPROUT_CHANGELOG_PATH": "changelog_path",
    "SPROUT_LOG_LEVEL": "log_level",
    "COOKIE_SECURE": "cookie_secure",
}


class AppConfig(BaseModel):
    """Strongly typed configuration loaded from config.json and the environment."""

    database_path: str = Field(default="./db/baby-tracker.db")
    jwt_secret: str = Field(default="")
    auth_life: int = Field(default=1800, ge=60, description="Token lifetime in seconds")
    idle_time: int = Field(default=1800, ge=60, description="Idle logout threshold in seconds")
    changelog_path: str = Field(default="./CHANGELOG.md")
    log_level: str = Field(default="INFO")
    cookie_secure: bool = False
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    @property
    def resolved_database_path(self) -> Path:
        """Return the absolute path for the SQLite database file."""
        return _resolve(self.database_path)

    @property
    def resolved_changelog_path(self) -> Path:
        return _resolve(self.changelog_path)


def _base_dir() -> Path:
    return Path(__file__).resolve().parents[1]


def _resolve(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = _base_dir() / path
    return path.resolve()


def _config_path() -> Path:
    return _base_dir() / "config.json"


def load_config() -> AppConfig:
    """Load config.json when present, then apply environment overrides."""

    contents: Dict[str, Any] = {}
    config_file = _config_path()
    if config_file.exists():
        contents = json.loads(config_file.read_text())

    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            contents[field_name] = value

    config = AppConfig(**contents)
    if not config.jwt_secret:
        # Tokens issued with a generated secret do not survive a restart.
        logger.warning("SPROUT_JWT_SECRET not set; using an ephemeral signing secret")
        config.jwt_secret = secrets.token_hex(32)
    return config


CONFIG = load_config()
