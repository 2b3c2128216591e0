"""Configuration management for minidrive."""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from minidrive.services.exceptions import ConfigurationError

DATABASE_NAME = "minidrive.db"
DATA_DIR_NAME = "data"
CONFIG_FILE_NAME = "config.json"
LOG_FILE_NAME = "minidrive.log"


class MirrorConfig(BaseSettings):
    """Configuration for a minidrive installation."""

    # Default to ~/.minidrive but allow override with env var
    home: Path = Field(
        default_factory=lambda: Path.home() / ".minidrive",
        description="Base path for minidrive data and logs",
    )

    directory: Optional[Path] = Field(
        default=None,
        description="Absolute path of the mirrored directory",
    )

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy async database URL. Defaults to a SQLite file under home",
    )

    channel: str = Field(
        default="new_file",
        description="Name of the change-notification channel raised on file inserts",
    )

    poll_interval: float = Field(
        default=0.5,
        description="Seconds between two polls of the notification channel",
        gt=0,
    )

    sync_delay: int = Field(
        default=1000,
        description="Milliseconds to wait after disk changes before importing",
        gt=0,
    )

    log_level: str = Field(default="INFO", description="Log level for console and file output")

    model_config = SettingsConfigDict(
        env_prefix="MINIDRIVE_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def database_path(self) -> Path:
        """Get SQLite database path."""
        return self.home / DATA_DIR_NAME / DATABASE_NAME

    @property
    def log_path(self) -> Path:
        return self.home / LOG_FILE_NAME

    @property
    def is_postgres(self) -> bool:
        return bool(self.database_url) and self.database_url.startswith("postgresql")

    @field_validator("home")
    @classmethod
    def ensure_path_exists(cls, v: Path) -> Path:
        """Ensure home path exists."""
        if not v.exists():
            v.mkdir(parents=True)
        return v

    def mirror_root(self) -> Path:
        """Return the mirrored directory, which must already exist.

        Raises:
            ConfigurationError: If no directory is configured or it does not exist
        """
        if self.directory is None:
            raise ConfigurationError("No mirrored directory configured")
        root = self.directory.expanduser().absolute()
        if not root.is_dir():
            raise ConfigurationError(f"The directory '{root}' does not exist.")
        return root


def _from_legacy_format(data: Dict[str, Any]) -> Dict[str, Any]:
    """Translate the nested ``dbConnection``/``app`` layout into flat settings.

    {
        "dbConnection": {"address": "10.0.0.2", "name": "minidrive",
                         "user": "drive", "password": "secret"},
        "app": {"directory": "/home/user/minidrive"}
    }
    """
    settings = {k: v for k, v in data.items() if k not in ("dbConnection", "app")}

    app_section = data.get("app") or {}
    if "directory" in app_section:
        settings["directory"] = app_section["directory"]

    connection = data.get("dbConnection")
    if connection:
        host, _, port = connection.get("address", "localhost").partition(":")
        url = URL.create(
            "postgresql+asyncpg",
            username=connection.get("user"),
            password=connection.get("password"),
            host=host,
            port=int(port) if port else None,
            database=connection.get("name"),
        )
        settings["database_url"] = url.render_as_string(hide_password=False)

    return settings


class ConfigManager:
    """Loads configuration from an optional JSON file plus the environment.

    Values found in the file win; environment variables and defaults fill
    whatever the file leaves unset.
    """

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path(CONFIG_FILE_NAME)

    def load_file(self) -> Dict[str, Any]:
        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}, using environment")
            return {}

        if self.config_file.is_dir():
            raise ConfigurationError(f"Config path {self.config_file} is a directory")

        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to read config file {self.config_file}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {self.config_file} must contain an object")

        return _from_legacy_format(data)

    @property
    def config(self) -> MirrorConfig:
        settings = self.load_file()
        try:
            return MirrorConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")
