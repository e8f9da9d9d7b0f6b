"""
Timezone package for eventcal.

Provides the VTIMEZONE definitions used by the ICS encoder and helpers for
timezone-aware occurrence arithmetic.

Example usage:
    >>> from eventcal.timezone import get_timezone_provider, ensure_timezone_aware
    >>> from datetime import datetime
    >>>
    >>> provider = get_timezone_provider()
    >>> provider.has("Europe/Berlin")
    True
    >>> start = ensure_timezone_aware(datetime(2024, 1, 1, 9, 0), "Europe/Berlin")
"""

from .service import (
    DEFAULT_TZID,
    EUROPE_BERLIN,
    TimezoneError,
    TimezoneObservance,
    TimezoneRuleProvider,
    VTimezoneDefinition,
    add_elapsed,
    elapsed_between,
    ensure_timezone_aware,
    get_timezone_provider,
    get_zone,
    local_date,
    reset_timezone_provider,
)

__all__ = [
    "DEFAULT_TZID",
    "EUROPE_BERLIN",
    "TimezoneError",
    "TimezoneObservance",
    "TimezoneRuleProvider",
    "VTimezoneDefinition",
    "add_elapsed",
    "elapsed_between",
    "ensure_timezone_aware",
    "get_timezone_provider",
    "get_zone",
    "local_date",
    "reset_timezone_provider",
]
