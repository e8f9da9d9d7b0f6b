"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..timezone import DEFAULT_TZID

logger = logging.getLogger(__name__)

ENV_PREFIX = "EVENTCAL_"
CONFIG_FILE_ENV = "EVENTCAL_CONFIG_FILE"


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format",
    )
    date_format: str = Field(default="%H:%M:%S", description="Timestamp format")
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class EventCalSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Private attributes
    _explicit_args: set = PrivateAttr(default_factory=set)
    _env_vars_set: set = PrivateAttr(default_factory=set)

    # Calendar identity
    app_name: str = Field(default="Hypnose Stammtisch", description="Application name")
    calendar_name: Optional[str] = Field(
        default=None, description="X-WR-CALNAME (defaults to '<app_name> Events')"
    )
    calendar_description: Optional[str] = Field(default=None, description="X-WR-CALDESC")
    product_id: Optional[str] = Field(
        default=None, description="PRODID (defaults to '-//<app_name>//Calendar 1.0//DE')"
    )
    uid_domain: str = Field(default="hypnose-stammtisch.de", description="Domain part of UIDs")
    event_url_base: str = Field(
        default="https://hypnose-stammtisch.de/events", description="Base URL of event pages"
    )
    default_timezone: str = Field(default=DEFAULT_TZID, description="Calendar timezone")

    # Expansion
    max_iterations: int = Field(
        default=1000, ge=1, description="Safety ceiling for one rule expansion"
    )
    feed_lookback_days: int = Field(default=30, ge=0, description="Feed window before now")
    feed_lookahead_days: int = Field(default=365, ge=0, description="Feed window after now")
    preview_months: int = Field(default=6, ge=1, description="Rule preview horizon")
    preview_limit: int = Field(default=20, ge=1, description="Maximum preview occurrences")

    # Logging
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **kwargs: Any) -> None:
        # Track which environment variables are set before calling parent
        env_vars_set = {
            key[len(ENV_PREFIX):].lower().split("__")[0]
            for key in os.environ
            if key.startswith(ENV_PREFIX)
        }

        super().__init__(**kwargs)

        # YAML values never override explicit arguments or environment variables
        self._explicit_args = set(kwargs.keys())
        self._env_vars_set = env_vars_set
        self._load_yaml_config()

    @property
    def resolved_calendar_name(self) -> str:
        return self.calendar_name or f"{self.app_name} Events"

    @property
    def resolved_calendar_description(self) -> str:
        return self.calendar_description or (
            f"{self.app_name} community calendar for hypnosis meetups and workshops"
        )

    @property
    def resolved_product_id(self) -> str:
        return self.product_id or f"-//{self.app_name}//Calendar 1.0//DE"

    def _find_config_file(self) -> Optional[Path]:
        """Find config file: explicit path, then project directory, then user home."""
        explicit = os.environ.get(CONFIG_FILE_ENV)
        if explicit:
            path = Path(explicit).expanduser()
            if path.exists():
                return path
            logger.warning("Config file %s from %s does not exist", path, CONFIG_FILE_ENV)
            return None

        project_config = Path(__file__).parent.parent.parent / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = Path.home() / ".config" / "eventcal" / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _is_overridable(self, setting: str) -> bool:
        return setting not in self._explicit_args and setting not in self._env_vars_set

    def _load_basic_settings(self, config_data: dict) -> None:
        """Load top-level settings from YAML data."""
        for setting in type(self).model_fields:
            if setting == "logging":
                continue
            if setting in config_data and self._is_overridable(setting):
                setattr(self, setting, config_data[setting])

    def _load_logging_config(self, config_data: dict) -> None:
        """Load logging configuration from YAML data."""
        logging_config = config_data.get("logging")
        if not isinstance(logging_config, dict) or not self._is_overridable("logging"):
            return

        for setting in LoggingSettings.model_fields:
            if setting in logging_config:
                setattr(self.logging, setting, logging_config[setting])

    def _load_yaml_config(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open(encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logger.warning("Could not load YAML config from %s: %s", config_file, e)
            return

        if not isinstance(config_data, dict):
            return

        self._load_basic_settings(config_data)
        self._load_logging_config(config_data)
        logger.debug("Loaded configuration from %s", config_file)


# Global settings management
_settings_instance: Optional[EventCalSettings] = None


def get_settings() -> EventCalSettings:
    """Get the global settings instance, creating it lazily if needed.

    Returns:
        EventCalSettings: The global settings instance
    """
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = EventCalSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
