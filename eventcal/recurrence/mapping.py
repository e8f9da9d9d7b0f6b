"""Explicit mapping from storage rows to typed models.

Rows are plain dicts keyed by the snake_case database columns of the
``events`` and ``event_series`` tables. Each model field is read from one
known column; there is no runtime field-name guessing.
"""

import json
import logging
from datetime import date, datetime, time
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from dateutil.parser import isoparse
from pydantic import ValidationError

from ..timezone import DEFAULT_TZID
from .exceptions import DataIntegrityWarning
from .models import EventRecord, OverrideRecord, OverrideType, SeriesDefinition

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
T = TypeVar("T")

# Display columns shared by events and series; series store them with a
# ``default_`` prefix for location and category
_DETAIL_COLUMNS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "category": "category",
    "location_type": "location_type",
    "location_name": "location_name",
    "location_address": "location_address",
    "location_instructions": "location_instructions",
    "online_url": "location_url",
    "organizer_name": "organizer_name",
    "organizer_email": "organizer_email",
    "max_participants": "max_participants",
    "requirements": "requirements",
    "safety_notes": "safety_notes",
    "preparation_notes": "preparation_notes",
    "slug": "slug",
    "created_at": "created_at",
    "updated_at": "updated_at",
}

_SERIES_DEFAULT_COLUMNS = {
    "category",
    "location_type",
    "location_name",
    "location_address",
    "max_participants",
}


def parse_exdates(raw: Any, record_id: Optional[str] = None) -> frozenset[date]:
    """Parse stored exception dates.

    Args:
        raw: JSON array string, list of ISO dates/``date`` objects, or empty
        record_id: Owning record, for error reporting

    Returns:
        Set of exception dates

    Raises:
        DataIntegrityWarning: If the JSON is malformed or an item is not a date
    """
    if raw is None or raw == "":
        return frozenset()

    items = raw
    if isinstance(raw, (str, bytes)):
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DataIntegrityWarning(f"Malformed exdates JSON: {e}", record_id=record_id) from e

    if items is None:
        return frozenset()
    if not isinstance(items, list):
        raise DataIntegrityWarning(
            f"exdates must be a list, got {type(items).__name__}", record_id=record_id
        )

    dates = set()
    for item in items:
        dates.add(_as_date(item, record_id))
    return frozenset(dates)


def _as_date(item: Any, record_id: Optional[str]) -> date:
    if isinstance(item, datetime):
        return item.date()
    if isinstance(item, date):
        return item
    if isinstance(item, str):
        try:
            return isoparse(item.strip()).date()
        except ValueError as e:
            raise DataIntegrityWarning(f"Invalid exception date: {item!r}", record_id=record_id) from e
    raise DataIntegrityWarning(f"Invalid exception date: {item!r}", record_id=record_id)


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return isoparse(str(value).strip())


def _as_time(value: Any) -> Optional[time]:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    # MySQL TIME columns may arrive as "HH:MM:SS" or as a timedelta
    if hasattr(value, "total_seconds"):
        seconds = int(value.total_seconds())
        return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)
    return time.fromisoformat(str(value).strip())


def _as_tags(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            value = value.split(",")
    if isinstance(value, str):
        value = [value]
    return tuple(str(tag).strip() for tag in value if str(tag).strip())


def _detail_values(row: Row, series: bool = False) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field, column in _DETAIL_COLUMNS.items():
        if series and field in _SERIES_DEFAULT_COLUMNS and row.get(f"default_{column}") is not None:
            value = row.get(f"default_{column}")
        else:
            value = row.get(column)
        if value is not None:
            values[field] = value

    for field in ("created_at", "updated_at"):
        if field in values:
            values[field] = _as_datetime(values[field])
    values["tags"] = _as_tags(row.get("tags"))
    values.setdefault("title", "")
    return values


def series_from_row(row: Row) -> SeriesDefinition:
    """Build a ``SeriesDefinition`` from an ``event_series`` row.

    Raises:
        DataIntegrityWarning: If the row cannot be interpreted
    """
    record_id = str(row.get("id"))
    try:
        return SeriesDefinition(
            **_detail_values(row, series=True),
            id=record_id,
            rrule=row.get("rrule") or "",
            start_date=_as_datetime(row.get("start_date")).date(),
            end_date=_as_datetime(row.get("end_date")).date() if row.get("end_date") else None,
            start_time=_as_time(row.get("start_time")) or time(0, 0),
            end_time=_as_time(row.get("end_time")),
            timezone=row.get("timezone") or DEFAULT_TZID,
            exdates=parse_exdates(row.get("exdates"), record_id),
        )
    except (ValidationError, ValueError, TypeError, AttributeError) as e:
        raise DataIntegrityWarning(f"Invalid series row {record_id}: {e}", record_id=record_id) from e


def event_from_row(row: Row) -> EventRecord:
    """Build an ``EventRecord`` from an ``events`` row.

    Raises:
        DataIntegrityWarning: If the row cannot be interpreted
    """
    record_id = str(row.get("id"))
    try:
        return EventRecord(
            **_detail_values(row),
            id=record_id,
            start=_as_datetime(row.get("start_datetime")),
            end=_as_datetime(row.get("end_datetime")),
            timezone=row.get("timezone") or DEFAULT_TZID,
            is_all_day=bool(row.get("is_all_day") or False),
            rrule=row.get("rrule") or None,
            exdates=parse_exdates(row.get("exdates"), record_id),
        )
    except (ValidationError, ValueError, TypeError) as e:
        raise DataIntegrityWarning(f"Invalid event row {record_id}: {e}", record_id=record_id) from e


def override_from_row(row: Row) -> OverrideRecord:
    """Build an ``OverrideRecord`` from an ``events`` row that overrides a series date.

    Raises:
        DataIntegrityWarning: If the row cannot be interpreted
    """
    record_id = str(row.get("id"))
    try:
        return OverrideRecord(
            series_id=str(row["series_id"]),
            instance_date=_as_datetime(row.get("instance_date")).date(),
            override_type=row.get("override_type") or OverrideType.CHANGED,
            event_id=record_id if row.get("id") is not None else None,
            title=row.get("title"),
            description=row.get("description"),
            start=_as_datetime(row.get("start_datetime")),
            end=_as_datetime(row.get("end_datetime")),
            status=row.get("status"),
            location_name=row.get("location_name"),
            location_address=row.get("location_address"),
            online_url=row.get("location_url"),
            updated_at=_as_datetime(row.get("updated_at")),
        )
    except (KeyError, ValidationError, ValueError, TypeError, AttributeError) as e:
        raise DataIntegrityWarning(f"Invalid override row {record_id}: {e}", record_id=record_id) from e


def _load(rows: Iterable[Row], build: Callable[[Row], T], kind: str) -> list[T]:
    records = []
    for row in rows:
        try:
            records.append(build(row))
        except DataIntegrityWarning as e:
            logger.warning("Skipping %s %s: %s", kind, e.record_id, e.message)
    return records


def load_series(rows: Iterable[Row]) -> list[SeriesDefinition]:
    """Map series rows, logging and skipping the ones that cannot be used."""
    return _load(rows, series_from_row, "series")


def load_events(rows: Iterable[Row]) -> list[EventRecord]:
    """Map event rows, logging and skipping the ones that cannot be used."""
    return _load(rows, event_from_row, "event")


def load_overrides(rows: Iterable[Row]) -> list[OverrideRecord]:
    """Map override rows, logging and skipping the ones that cannot be used."""
    return _load(rows, override_from_row, "override")
