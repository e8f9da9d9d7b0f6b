"""Utility helpers for eventcal."""

from .logging import VERBOSE, configure_logging, get_log_level, get_logging_status

__all__ = ["VERBOSE", "configure_logging", "get_log_level", "get_logging_status"]
