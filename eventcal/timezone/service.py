"""Timezone rule provider for eventcal.

Holds the VTIMEZONE definitions the ICS encoder can emit and resolves IANA
names to ``zoneinfo`` objects for occurrence arithmetic. Europe/Berlin is
registered by default; other zones are added with ``register`` without
touching the encoder.
"""

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_TZID = "Europe/Berlin"


class TimezoneError(Exception):
    """Raised when a timezone name cannot be resolved."""


class TimezoneObservance(BaseModel):
    """One STANDARD or DAYLIGHT sub-component of a VTIMEZONE."""

    kind: str = Field(..., description="STANDARD or DAYLIGHT")
    name: str = Field(..., description="TZNAME, e.g. CET")
    offset_from: str = Field(..., description="TZOFFSETFROM, e.g. +0200")
    offset_to: str = Field(..., description="TZOFFSETTO, e.g. +0100")
    dtstart: str = Field(..., description="Local onset of the first transition")
    rrule: str = Field(..., description="Yearly transition rule")

    model_config = ConfigDict(frozen=True)

    def to_lines(self) -> list[str]:
        """Render the observance as unfolded content lines."""
        return [
            f"BEGIN:{self.kind}",
            f"TZOFFSETFROM:{self.offset_from}",
            f"TZOFFSETTO:{self.offset_to}",
            f"TZNAME:{self.name}",
            f"DTSTART:{self.dtstart}",
            f"RRULE:{self.rrule}",
            f"END:{self.kind}",
        ]


class VTimezoneDefinition(BaseModel):
    """A complete VTIMEZONE block for one TZID."""

    tzid: str
    observances: tuple[TimezoneObservance, ...]

    model_config = ConfigDict(frozen=True)

    def to_lines(self) -> list[str]:
        """Render the VTIMEZONE block as unfolded content lines."""
        lines = ["BEGIN:VTIMEZONE", f"TZID:{self.tzid}"]
        for observance in self.observances:
            lines.extend(observance.to_lines())
        lines.append("END:VTIMEZONE")
        return lines


EUROPE_BERLIN = VTimezoneDefinition(
    tzid="Europe/Berlin",
    observances=(
        # Last Sunday of March, 02:00 CET -> 03:00 CEST
        TimezoneObservance(
            kind="DAYLIGHT",
            name="CEST",
            offset_from="+0100",
            offset_to="+0200",
            dtstart="19700329T020000",
            rrule="FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU",
        ),
        # Last Sunday of October, 03:00 CEST -> 02:00 CET
        TimezoneObservance(
            kind="STANDARD",
            name="CET",
            offset_from="+0200",
            offset_to="+0100",
            dtstart="19701025T030000",
            rrule="FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU",
        ),
    ),
)


@lru_cache(maxsize=32)
def _load_zone(tzid: str) -> ZoneInfo:
    return ZoneInfo(tzid)


class TimezoneRuleProvider:
    """Registry of VTIMEZONE definitions keyed by TZID."""

    def __init__(self, definitions: Optional[list[VTimezoneDefinition]] = None) -> None:
        self._definitions: dict[str, VTimezoneDefinition] = {}
        for definition in definitions if definitions is not None else [EUROPE_BERLIN]:
            self.register(definition)

    def register(self, definition: VTimezoneDefinition) -> None:
        """Add or replace the VTIMEZONE definition for ``definition.tzid``."""
        self._definitions[definition.tzid] = definition
        logger.debug("Registered VTIMEZONE definition for %s", definition.tzid)

    def has(self, tzid: str) -> bool:
        return tzid in self._definitions

    def get(self, tzid: str) -> Optional[VTimezoneDefinition]:
        return self._definitions.get(tzid)

    @property
    def tzids(self) -> list[str]:
        return list(self._definitions)

    def zone(self, tzid: str) -> tzinfo:
        """Resolve an IANA timezone name.

        Raises:
            TimezoneError: If the name is unknown to the system tz database
        """
        return get_zone(tzid)


def get_zone(tzid: str) -> tzinfo:
    """Resolve an IANA timezone name to a ``ZoneInfo``.

    Raises:
        TimezoneError: If the name is unknown to the system tz database
    """
    try:
        return _load_zone(tzid)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise TimezoneError(f"Unknown timezone: {tzid}") from e


def ensure_timezone_aware(dt: datetime, tzid: str) -> datetime:
    """Attach ``tzid`` to naive datetimes, convert aware ones into it."""
    zone = get_zone(tzid)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=zone)
    return dt.astimezone(zone)


def local_date(dt: datetime, tzid: str) -> date:
    """Calendar day of ``dt`` as seen in ``tzid``."""
    return ensure_timezone_aware(dt, tzid).date()


def elapsed_between(start: datetime, end: datetime) -> timedelta:
    """Real time between two aware datetimes, across any DST change."""
    return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)


def add_elapsed(dt: datetime, delta: timedelta) -> datetime:
    """Add real elapsed time to an aware datetime, keeping its zone."""
    return (dt.astimezone(timezone.utc) + delta).astimezone(dt.tzinfo)


# Global provider management
_provider_instance: Optional[TimezoneRuleProvider] = None


def get_timezone_provider() -> TimezoneRuleProvider:
    """Get the shared provider, creating it lazily."""
    if globals()["_provider_instance"] is None:
        globals()["_provider_instance"] = TimezoneRuleProvider()
    return globals()["_provider_instance"]


def reset_timezone_provider() -> None:
    """Reset the shared provider (primarily for testing)."""
    globals()["_provider_instance"] = None
