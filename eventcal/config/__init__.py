"""Configuration management for eventcal."""

from .settings import EventCalSettings, LoggingSettings, get_settings, reset_settings

__all__ = ["EventCalSettings", "LoggingSettings", "get_settings", "reset_settings"]
