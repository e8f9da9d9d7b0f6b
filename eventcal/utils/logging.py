"""Central logging configuration for eventcal.

Configures the eventcal module loggers and keeps noisy third-party loggers
quiet. Debug output can be switched on through the environment for
troubleshooting without touching configuration files.
"""

import logging
import os
from typing import Any, Optional

# Custom log level between INFO(20) and DEBUG(10)
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

DEBUG_ENV = "EVENTCAL_DEBUG"
LOG_LEVEL_ENV = "EVENTCAL_LOG_LEVEL"

EVENTCAL_MODULES = [
    "eventcal",
    "eventcal.recurrence",
    "eventcal.ics",
    "eventcal.timezone",
    "eventcal.config",
]

THIRD_PARTY_LOGGERS = [
    "dateutil",
    "icalendar",
    "pydantic",
]


def get_log_level(level_name: str) -> int:
    """Get numeric log level from string name, including custom VERBOSE level.

    Args:
        level_name: Log level name (DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Numeric log level value

    Raises:
        AttributeError: If level name is not recognized

    Example:
        >>> get_log_level("VERBOSE")
        15
        >>> get_log_level("debug")
        10
    """
    level_name = level_name.upper()
    if level_name == "VERBOSE":
        return VERBOSE
    level: int = getattr(logging, level_name)
    return level


def configure_logging(
    settings: Any = None, debug_mode: bool = False, force_debug: Optional[bool] = None
) -> None:
    """Configure logging levels for eventcal.

    Args:
        settings: Optional settings object; its ``logging`` section supplies
            the console level, format and third-party level
        debug_mode: Whether to enable debug logging for eventcal modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        EVENTCAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        EVENTCAL_LOG_LEVEL: Override root log level (DEBUG, VERBOSE, INFO, WARNING, ERROR)
    """
    logging_settings = getattr(settings, "logging", None)

    env_debug = os.getenv(DEBUG_ENV, "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv(LOG_LEVEL_ENV, "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = get_log_level(getattr(logging_settings, "console_level", "INFO"))
    if final_debug:
        root_level = logging.DEBUG
    if env_log_level in ("DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR"):
        root_level = get_log_level(env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist, so host applications keep theirs
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter(
                getattr(logging_settings, "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                datefmt=getattr(logging_settings, "date_format", None),
            )
        )
        root_logger.addHandler(handler)

    third_party_level = get_log_level(getattr(logging_settings, "third_party_level", "WARNING"))
    for logger_name in THIRD_PARTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(third_party_level)

    module_level = logging.DEBUG if final_debug else root_level
    for logger_name in EVENTCAL_MODULES:
        logging.getLogger(logger_name).setLevel(module_level)

    root_logger.info(
        "Logging configured: root=%s eventcal=%s third_party=%s",
        logging.getLevelName(root_level),
        logging.getLevelName(module_level),
        logging.getLevelName(third_party_level),
    )


def get_logging_status() -> dict[str, str]:
    """Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in EVENTCAL_MODULES[:1] + THIRD_PARTY_LOGGERS:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
