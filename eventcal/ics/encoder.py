"""RFC 5545 calendar encoding for resolved occurrences.

Builds VCALENDAR documents line by line. Values are escaped per RFC 5545
section 3.3.11 and content lines are folded at 75 octets without ever
splitting a UTF-8 sequence.
"""

import codecs
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional

from ..config.settings import get_settings
from ..recurrence.models import EventStatus, ResolvedOccurrence
from ..timezone import TimezoneRuleProvider, ensure_timezone_aware, get_timezone_provider
from .description import DescriptionFormatter

logger = logging.getLogger(__name__)

CRLF = "\r\n"
MAX_LINE_OCTETS = 75

ICS_CONTENT_TYPE = "text/calendar; charset=utf-8"

STATUS_MAP = {
    EventStatus.PUBLISHED: "CONFIRMED",
    EventStatus.DRAFT: "TENTATIVE",
    EventStatus.CANCELLED: "CANCELLED",
}

_UNSAFE_FILENAME = re.compile(r"[^a-zA-Z0-9\-_]")
_DASH_RUN = re.compile(r"-+")
_PARAM_UNSAFE = re.compile(r'[:;,]')


def escape_text(value: str) -> str:
    """Escape a TEXT value: backslash, semicolon, comma and newlines."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\n")
        .replace("\r", "")
        .replace("\n", "\\n")
    )


def fold_line(line: str, limit: int = MAX_LINE_OCTETS) -> list[str]:
    """Split a content line into physical lines of at most ``limit`` octets.

    Walks the line one code point at a time and only cuts between code
    points. Continuation lines start with a single space, which counts
    toward their length.

    Args:
        line: Unfolded content line
        limit: Maximum octets per physical line

    Returns:
        Physical lines, the first one unprefixed
    """
    if len(line.encode("utf-8")) <= limit:
        return [line]

    segments: list[str] = []
    current: list[str] = []
    size = 0
    budget = limit
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > budget:
            segments.append("".join(current))
            current = []
            size = 0
            budget = limit - 1
        current.append(char)
        size += width
    if current:
        segments.append("".join(current))

    return [segments[0]] + [" " + segment for segment in segments[1:]]


def unfold_lines(text: str) -> list[str]:
    """Reverse ``fold_line`` over a CRLF-joined document."""
    unfolded: list[str] = []
    for physical in text.split(CRLF):
        if physical.startswith(" ") and unfolded:
            unfolded[-1] += physical[1:]
        elif physical:
            unfolded.append(physical)
    return unfolded


def sanitize_filename(name: str) -> str:
    """Reduce ``name`` to ASCII letters, digits, dashes and underscores."""
    return _DASH_RUN.sub("-", _UNSAFE_FILENAME.sub("-", name)).strip("-")


def calendar_filename(private: bool = False) -> str:
    """Download name of the calendar feed."""
    return "private-calendar.ics" if private else "public-calendar.ics"


def event_filename(occurrence: ResolvedOccurrence) -> str:
    """Download name for a single occurrence, derived from its title."""
    return f"{sanitize_filename(occurrence.title) or 'event'}.ics"


@dataclass
class IcsDocument:
    """A rendered VCALENDAR: physical content lines, each at most 75 octets."""

    lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return CRLF.join(self.lines) + CRLF

    def to_bytes(self) -> bytes:
        """UTF-8 bytes with a leading byte-order mark."""
        return codecs.BOM_UTF8 + self.text.encode("utf-8")

    def response_headers(self, filename: str) -> dict[str, str]:
        """HTTP headers for serving this document as a download."""
        return {
            "Content-Type": ICS_CONTENT_TYPE,
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache, must-revalidate",
            "Expires": "Sat, 26 Jul 1997 05:00:00 GMT",
            "Content-Length": str(len(self.to_bytes())),
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ICSEncoder:
    """Renders resolved occurrences as an iCalendar document."""

    def __init__(
        self,
        settings: Any = None,
        timezone_provider: Optional[TimezoneRuleProvider] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize ICSEncoder.

        Args:
            settings: Settings object (defaults to the global settings)
            timezone_provider: VTIMEZONE registry (defaults to the shared one)
            clock: Returns the render time used for DTSTAMP
        """
        if settings is None:
            settings = get_settings()
        self.settings = settings
        self.timezone_provider = timezone_provider or get_timezone_provider()
        self.clock = clock or _utc_now
        self.description_formatter = DescriptionFormatter()

    @property
    def calendar_timezone(self) -> str:
        return self.settings.default_timezone

    def encode(
        self, occurrences: Iterable[ResolvedOccurrence], calendar_name: Optional[str] = None
    ) -> IcsDocument:
        """Render a complete VCALENDAR for ``occurrences``.

        Args:
            occurrences: Occurrences to include, in output order
            calendar_name: X-WR-CALNAME override

        Returns:
            Folded document
        """
        occurrences = list(occurrences)
        dtstamp = self._format_utc(self.clock())

        lines = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            f"PRODID:{self.settings.resolved_product_id}",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            f"X-WR-CALNAME:{escape_text(calendar_name or self.settings.resolved_calendar_name)}",
            f"X-WR-CALDESC:{escape_text(self.settings.resolved_calendar_description)}",
            f"X-WR-TIMEZONE:{self.calendar_timezone}",
        ]

        for tzid in self._referenced_timezones(occurrences):
            definition = self.timezone_provider.get(tzid)
            if definition is not None:
                lines.extend(definition.to_lines())

        for occurrence in occurrences:
            lines.extend(self._event_lines(occurrence, dtstamp))

        lines.append("END:VCALENDAR")

        folded = [physical for line in lines for physical in fold_line(line)]
        logger.debug("Encoded %d occurrences into %d content lines", len(occurrences), len(folded))
        return IcsDocument(lines=folded)

    def encode_single(self, occurrence: ResolvedOccurrence) -> IcsDocument:
        """Render a calendar holding just ``occurrence``."""
        return self.encode([occurrence])

    def uid_for(self, occurrence: ResolvedOccurrence) -> str:
        """Deterministic UID; the same logical occurrence always maps to the same UID."""
        domain = self.settings.uid_domain
        if occurrence.series_id is not None:
            day = occurrence.instance_date or occurrence.start.date()
            return f"series-{occurrence.series_id}-{day:%Y%m%d}@{domain}"
        if occurrence.instance_date is not None:
            return f"event-{occurrence.event_id}-{occurrence.instance_date:%Y%m%d}@{domain}"
        return f"event-{occurrence.event_id}@{domain}"

    def event_url(self, occurrence: ResolvedOccurrence) -> Optional[str]:
        target = occurrence.event_id or occurrence.series_id
        if target is None or not self.settings.event_url_base:
            return None
        return f"{self.settings.event_url_base.rstrip('/')}/{target}"

    def _referenced_timezones(self, occurrences: list[ResolvedOccurrence]) -> list[str]:
        tzids = [self.calendar_timezone]
        for occurrence in occurrences:
            if not occurrence.is_all_day and occurrence.timezone not in tzids:
                tzids.append(occurrence.timezone)
        return [tzid for tzid in tzids if self.timezone_provider.has(tzid)]

    def _event_lines(self, occurrence: ResolvedOccurrence, dtstamp: str) -> list[str]:
        lines = [
            "BEGIN:VEVENT",
            f"UID:{self.uid_for(occurrence)}",
            f"DTSTAMP:{dtstamp}",
        ]
        lines.extend(self._time_lines(occurrence))
        lines.append(f"SUMMARY:{escape_text(occurrence.title)}")

        url = self.event_url(occurrence)
        description = self.description_formatter.format(occurrence, url)
        if description:
            lines.append(f"DESCRIPTION:{escape_text(description)}")

        location = self._format_location(occurrence)
        if location:
            lines.append(f"LOCATION:{escape_text(location)}")

        if occurrence.organizer_email:
            organizer = f"mailto:{occurrence.organizer_email}"
            if occurrence.organizer_name:
                organizer = f"CN={self._param_value(occurrence.organizer_name)}:{organizer}"
                lines.append(f"ORGANIZER;{organizer}")
            else:
                lines.append(f"ORGANIZER:{organizer}")

        if url:
            lines.append(f"URL:{url}")

        if occurrence.tags:
            lines.append("CATEGORIES:" + ",".join(escape_text(tag) for tag in occurrence.tags))

        status = EventStatus.CANCELLED if occurrence.is_cancelled else occurrence.status
        lines.append(f"STATUS:{STATUS_MAP.get(status, 'CONFIRMED')}")

        if occurrence.created_at:
            lines.append(f"CREATED:{self._format_utc(occurrence.created_at)}")
        if occurrence.updated_at:
            lines.append(f"LAST-MODIFIED:{self._format_utc(occurrence.updated_at)}")

        lines.append(f"SEQUENCE:{occurrence.sequence}")
        lines.append("END:VEVENT")
        return lines

    def _time_lines(self, occurrence: ResolvedOccurrence) -> list[str]:
        tzid = occurrence.timezone
        start = ensure_timezone_aware(occurrence.start, tzid)
        end = ensure_timezone_aware(occurrence.end, tzid)

        if occurrence.is_all_day:
            # DTEND is exclusive for DATE values
            return [
                f"DTSTART;VALUE=DATE:{start:%Y%m%d}",
                f"DTEND;VALUE=DATE:{end.date() + timedelta(days=1):%Y%m%d}",
            ]

        if self.timezone_provider.has(tzid):
            return [
                f"DTSTART;TZID={tzid}:{start:%Y%m%dT%H%M%S}",
                f"DTEND;TZID={tzid}:{end:%Y%m%dT%H%M%S}",
            ]

        logger.debug("No VTIMEZONE registered for %s, writing UTC times", tzid)
        return [f"DTSTART:{self._format_utc(start)}", f"DTEND:{self._format_utc(end)}"]

    def _format_location(self, occurrence: ResolvedOccurrence) -> str:
        parts = [part for part in (occurrence.location_name, occurrence.location_address) if part]
        if occurrence.online_url and occurrence.location_type != "physical":
            parts.append(f"Online: {occurrence.online_url}")
        return ", ".join(parts)

    def _param_value(self, value: str) -> str:
        value = value.replace('"', "").replace("\r", "").replace("\n", " ")
        if _PARAM_UNSAFE.search(value):
            return f'"{value}"'
        return value

    def _format_utc(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = ensure_timezone_aware(value, self.calendar_timezone)
        return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
