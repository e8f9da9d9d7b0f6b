"""Data models for recurrence expansion and calendar rendering."""

from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    computed_field,
    field_serializer,
    field_validator,
    model_validator,
)

from ..timezone import DEFAULT_TZID, elapsed_between, ensure_timezone_aware
from .exceptions import ConfigurationError
from .rule_parser import parse_by_day, parse_rule_components, parse_until


class Frequency(str, Enum):
    """Supported RRULE frequencies."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class Weekday(str, Enum):
    """RRULE weekday codes."""

    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"

    @property
    def python_weekday(self) -> int:
        """Python weekday number (Monday == 0)."""
        return list(Weekday).index(self)


class OccurrenceKind(str, Enum):
    """Origin of a resolved occurrence."""

    SINGLE = "single"
    SERIES_INSTANCE = "series_instance"
    OVERRIDE = "override"
    CANCELLED = "cancelled"


class EventStatus(str, Enum):
    """Publication status of an event."""

    PUBLISHED = "published"
    DRAFT = "draft"
    CANCELLED = "cancelled"


class OverrideType(str, Enum):
    """Kind of per-instance override."""

    CHANGED = "changed"
    CANCELLED = "cancelled"


MAX_COUNT = 1000


class RecurrenceRule(BaseModel):
    """Structured recurrence rule."""

    freq: Frequency
    interval: int = Field(default=1, ge=1)
    count: Optional[int] = Field(default=None, ge=1, le=MAX_COUNT)
    until: Optional[datetime] = None
    by_day: tuple[Weekday, ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator("by_day")
    @classmethod
    def _dedupe_by_day(cls, value: tuple[Weekday, ...]) -> tuple[Weekday, ...]:
        return tuple(dict.fromkeys(value))

    @classmethod
    def from_components(cls, components: Mapping[str, str], tzid: str = DEFAULT_TZID) -> "RecurrenceRule":
        """Build a rule from ``parse_rule_components`` output.

        Unknown components are ignored and unknown BYDAY codes are dropped.

        Raises:
            ConfigurationError: If FREQ is missing or unsupported, or a numeric
                or UNTIL component cannot be interpreted
        """
        raw_freq = components.get("FREQ", "").strip().upper()
        try:
            freq = Frequency(raw_freq)
        except ValueError as e:
            raise ConfigurationError(f"Unsupported FREQ: {raw_freq or '<missing>'}") from e

        kwargs: dict[str, Any] = {"freq": freq}
        try:
            if components.get("INTERVAL"):
                kwargs["interval"] = int(components["INTERVAL"])
            if components.get("COUNT"):
                kwargs["count"] = int(components["COUNT"])
            if components.get("UNTIL"):
                kwargs["until"] = parse_until(components["UNTIL"], tzid)
        except ValueError as e:
            raise ConfigurationError(f"Cannot interpret rule components {dict(components)!r}: {e}") from e

        if components.get("BYDAY"):
            valid_codes = {day.value for day in Weekday}
            kwargs["by_day"] = tuple(
                Weekday(code) for code in parse_by_day(components["BYDAY"]) if code in valid_codes
            )

        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid recurrence rule: {e}") from e

    @classmethod
    def parse(cls, raw: str, tzid: str = DEFAULT_TZID) -> "RecurrenceRule":
        """Parse a raw rule string straight into a ``RecurrenceRule``."""
        return cls.from_components(parse_rule_components(raw), tzid)

    def to_rule_string(self) -> str:
        """Serialize back to ``FREQ=...;...`` form."""
        parts = [f"FREQ={self.freq.value}"]
        if self.interval != 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.until is not None:
            parts.append("UNTIL=" + self.until.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ"))
        if self.by_day:
            parts.append("BYDAY=" + ",".join(day.value for day in self.by_day))
        return ";".join(parts)


class OccurrenceTemplate(BaseModel):
    """Start/end of the first occurrence; generated instances keep its duration."""

    timezone: str = DEFAULT_TZID
    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @field_validator("start", "end")
    @classmethod
    def _localize(cls, value: datetime, info: ValidationInfo) -> datetime:
        return ensure_timezone_aware(value, info.data.get("timezone", DEFAULT_TZID))

    @model_validator(mode="after")
    def _check_order(self) -> "OccurrenceTemplate":
        if self.end < self.start:
            raise ValueError("Template end must not be before its start")
        return self

    @property
    def duration(self) -> timedelta:
        """Real elapsed time between start and end."""
        return elapsed_between(self.start, self.end)

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)


class OverrideRecord(BaseModel):
    """Stored edit or cancellation of one series occurrence."""

    series_id: str
    instance_date: date
    override_type: OverrideType = OverrideType.CHANGED
    event_id: Optional[str] = None

    # Replacement fields; None keeps the generated value
    title: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    status: Optional[EventStatus] = None
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    online_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_cancelled(self) -> bool:
        return self.override_type == OverrideType.CANCELLED

    def replacement_fields(self) -> dict[str, Any]:
        """Fields that replace the generated occurrence's values."""
        fields = self.model_dump(
            include={
                "title",
                "description",
                "start",
                "end",
                "status",
                "location_name",
                "location_address",
                "online_url",
                "updated_at",
            },
            exclude_none=True,
        )
        return fields


class EventDetails(BaseModel):
    """Display fields shared by standalone events, series and occurrences."""

    title: str
    description: Optional[str] = None
    status: EventStatus = EventStatus.PUBLISHED
    category: Optional[str] = None
    tags: tuple[str, ...] = ()
    location_type: Optional[str] = None
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    location_instructions: Optional[str] = None
    online_url: Optional[str] = None
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    max_participants: Optional[int] = None
    requirements: Optional[str] = None
    safety_notes: Optional[str] = None
    preparation_notes: Optional[str] = None
    slug: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    def detail_fields(self) -> dict[str, Any]:
        """Display fields as a plain dict, for copying onto occurrences."""
        return {name: getattr(self, name) for name in EventDetails.model_fields}


class SeriesDefinition(EventDetails):
    """A recurring series template with its own active date range."""

    id: str
    rrule: str
    start_date: date
    end_date: Optional[date] = None
    start_time: time = time(0, 0)
    end_time: Optional[time] = None
    timezone: str = DEFAULT_TZID
    exdates: frozenset[date] = frozenset()


class EventRecord(EventDetails):
    """A standalone event row, optionally carrying a legacy RRULE."""

    id: str
    start: datetime
    end: datetime
    timezone: str = DEFAULT_TZID
    is_all_day: bool = False
    rrule: Optional[str] = None
    exdates: frozenset[date] = frozenset()

    @property
    def is_recurring(self) -> bool:
        return bool(self.rrule and self.rrule.strip())


class ResolvedOccurrence(EventDetails):
    """One concrete occurrence ready for JSON or ICS output."""

    kind: OccurrenceKind
    start: datetime
    end: datetime
    timezone: str = DEFAULT_TZID
    is_all_day: bool = False
    event_id: Optional[str] = None
    series_id: Optional[str] = None
    instance_date: Optional[date] = None
    sequence: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def source_id(self) -> str:
        """Stable identity: series id + instance date, or the event id."""
        if self.series_id is not None and self.instance_date is not None:
            return f"{self.series_id}:{self.instance_date.isoformat()}"
        if self.instance_date is not None:
            return f"{self.event_id}:{self.instance_date.isoformat()}"
        return str(self.event_id)

    @property
    def is_cancelled(self) -> bool:
        return self.kind == OccurrenceKind.CANCELLED or self.status == EventStatus.CANCELLED

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()
