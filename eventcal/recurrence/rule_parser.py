"""RRULE string parsing for eventcal.

Parsing here is purely syntactic: a raw rule is turned into a mapping of
uppercase component names to raw values. Semantic checks live in
``rule_validator`` and ``RecurrenceRule.from_components``.
"""

import logging
import re
from datetime import datetime, time, timezone

from dateutil.parser import isoparse

from ..timezone import ensure_timezone_aware

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")
_DATE_ONLY = re.compile(r"^\d{4}-?\d{2}-?\d{2}$")


def normalize_rule_string(raw: str) -> str:
    """Reduce raw rule content to a bare ``KEY=VALUE;...`` string.

    Stored rules sometimes carry a whole iCalendar fragment, e.g.::

        DTSTART:20250812T070000Z
        RRULE:FREQ=DAILY;INTERVAL=1;UNTIL=20250816T215959Z

    DTSTART lines are dropped, the ``RRULE:`` prefix is removed and any
    remaining lines are joined with ``;``.
    """
    if not raw:
        return ""

    candidate: list[str] = []
    for line in _LINE_SPLIT.split(raw.strip()):
        line = line.strip()
        if not line or line.upper().startswith("DTSTART"):
            continue
        if line.upper().startswith("RRULE:"):
            line = line[len("RRULE:"):]
        candidate.append(line)

    normalized = ";".join(candidate)
    if normalized.upper().startswith("RRULE:"):
        normalized = normalized[len("RRULE:"):]
    return normalized.strip()


def parse_rule_components(raw: str) -> dict[str, str]:
    """Parse a raw RRULE into ``{COMPONENT: value}``.

    Unknown keys are preserved. Parts without ``=`` are skipped, so empty or
    garbage input simply yields an empty mapping.

    Args:
        raw: Rule string, optionally with DTSTART/RRULE prefix lines

    Returns:
        Mapping of uppercase component names to raw string values
    """
    components: dict[str, str] = {}
    for part in normalize_rule_string(raw).split(";"):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        key = key.strip().upper()
        if key:
            components[key] = value.strip()
    return components


def parse_by_day(value: str) -> list[str]:
    """Split a BYDAY value into uppercase entries, dropping empty ones."""
    return [entry.strip().upper() for entry in value.split(",") if entry.strip()]


def parse_until(value: str, tzid: str) -> datetime:
    """Parse an UNTIL value into an aware datetime.

    Accepted forms are ``YYYYMMDD``, ``YYYYMMDDTHHMMSS`` with optional ``Z``
    and extended ISO 8601. A trailing ``Z`` means UTC, a naive date-time is
    local to ``tzid``, and a bare date covers that whole day.

    Raises:
        ValueError: If the value is not a recognizable date or date-time
    """
    value = value.strip()
    if not value:
        raise ValueError("Empty UNTIL value")

    parsed = isoparse(value)
    if _DATE_ONLY.match(value):
        parsed = datetime.combine(parsed.date(), time(23, 59, 59))
    if parsed.tzinfo is not None:
        return parsed.astimezone(timezone.utc)
    return ensure_timezone_aware(parsed, tzid)
