"""Series materialization: expansion, active-range clipping and override merge."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Mapping, Optional, Protocol

from ..timezone import add_elapsed, elapsed_between, ensure_timezone_aware
from .exceptions import DataIntegrityWarning
from .expander import OccurrenceExpander
from .models import (
    EventStatus,
    OccurrenceKind,
    OccurrenceTemplate,
    OverrideRecord,
    RecurrenceRule,
    ResolvedOccurrence,
    SeriesDefinition,
)

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59)
OVERRIDE_SEQUENCE = 1


class OverrideRepository(Protocol):
    """Storage collaborator that yields override rows for one series."""

    def fetch_overrides(self, series_id: str, instance_dates: list[date]) -> list[OverrideRecord]:
        """Return overrides of ``series_id`` for any of ``instance_dates``."""
        ...


def merge_overrides(
    generated: Iterable[ResolvedOccurrence],
    overrides_by_date: Mapping[date, OverrideRecord],
) -> list[ResolvedOccurrence]:
    """Apply per-date overrides to generated series occurrences.

    A ``changed`` override replaces the fields it sets and tags the
    occurrence ``override``; a ``cancelled`` override keeps the occurrence
    but tags it ``cancelled``. Dates without an override are returned as
    they were generated.

    Args:
        generated: Expanded series occurrences
        overrides_by_date: Overrides keyed by instance date

    Returns:
        Merged occurrences sorted by start
    """
    merged = []
    for occurrence in generated:
        override = overrides_by_date.get(occurrence.instance_date) if occurrence.instance_date else None
        if override is None:
            merged.append(occurrence)
        elif override.is_cancelled:
            merged.append(
                occurrence.model_copy(
                    update={
                        "kind": OccurrenceKind.CANCELLED,
                        "status": EventStatus.CANCELLED,
                        "sequence": OVERRIDE_SEQUENCE,
                        "event_id": override.event_id or occurrence.event_id,
                    }
                )
            )
        else:
            merged.append(_apply_changes(occurrence, override))
    return sorted(merged, key=lambda occurrence: occurrence.start)


def _apply_changes(occurrence: ResolvedOccurrence, override: OverrideRecord) -> ResolvedOccurrence:
    update: dict[str, Any] = override.replacement_fields()

    # A moved start without an explicit end keeps the generated duration
    if "start" in update:
        update["start"] = ensure_timezone_aware(update["start"], occurrence.timezone)
        if "end" not in update:
            update["end"] = add_elapsed(update["start"], elapsed_between(occurrence.start, occurrence.end))
    if "end" in update:
        update["end"] = ensure_timezone_aware(update["end"], occurrence.timezone)

    update.update(
        kind=OccurrenceKind.OVERRIDE,
        sequence=OVERRIDE_SEQUENCE,
        event_id=override.event_id or occurrence.event_id,
    )
    return occurrence.model_copy(update=update)


class SeriesMaterializer:
    """Turns stored series definitions into resolved occurrences."""

    def __init__(
        self,
        repository: OverrideRepository,
        expander: Optional[OccurrenceExpander] = None,
        settings: Any = None,
    ):
        """Initialize SeriesMaterializer.

        Args:
            repository: Override lookup, called at most once per series
            expander: Expander to use (defaults to one built from ``settings``)
            settings: Optional settings object passed to the default expander
        """
        self.repository = repository
        self.settings = settings
        self.expander = expander or OccurrenceExpander(settings)

    def materialize(
        self, series: SeriesDefinition, window_start: datetime, window_end: datetime
    ) -> list[ResolvedOccurrence]:
        """Resolve all occurrences of ``series`` inside the window.

        Args:
            series: Series definition
            window_start: Inclusive lower bound
            window_end: Inclusive upper bound

        Returns:
            Occurrences sorted by start, cancelled ones included

        Raises:
            ConfigurationError: If the series rule cannot be expanded
        """
        tzid = series.timezone
        window_start = ensure_timezone_aware(window_start, tzid)
        window_end = ensure_timezone_aware(window_end, tzid)

        try:
            template = self.build_template(series)
        except DataIntegrityWarning as e:
            logger.warning("Skipping series %s: %s", series.id, e.message)
            return []

        rule = RecurrenceRule.parse(series.rrule, tzid)
        range_start, range_end = self.active_range(series, rule, window_end)

        expand_start = max(window_start, range_start)
        if expand_start > range_end:
            logger.debug("Series %s is not active inside the requested window", series.id)
            return []

        generated = self.expander.expand(
            template,
            rule,
            expand_start,
            range_end,
            series.exdates,
            details=series,
            kind=OccurrenceKind.SERIES_INSTANCE,
            series_id=series.id,
        )
        generated = [o for o in generated if range_start <= o.start <= range_end]

        instance_dates = [o.instance_date for o in generated if o.instance_date is not None]
        if not instance_dates:
            return []

        overrides = self.repository.fetch_overrides(series.id, instance_dates)
        overrides_by_date = {override.instance_date: override for override in overrides}
        if overrides_by_date:
            logger.debug("Applying %d overrides to series %s", len(overrides_by_date), series.id)

        return merge_overrides(generated, overrides_by_date)

    def materialize_many(
        self, series_list: Iterable[SeriesDefinition], window_start: datetime, window_end: datetime
    ) -> list[ResolvedOccurrence]:
        """Materialize several series, isolating failures per series."""
        occurrences: list[ResolvedOccurrence] = []
        for series in series_list:
            try:
                occurrences.extend(self.materialize(series, window_start, window_end))
            except Exception:
                logger.exception("Failed to materialize series %s", series.id)
        occurrences.sort(key=lambda occurrence: occurrence.start)
        return occurrences

    def build_template(self, series: SeriesDefinition) -> OccurrenceTemplate:
        """First occurrence of ``series`` on its start date.

        An end time at or before the start time ends on the following day.

        Raises:
            DataIntegrityWarning: If the series has no end time
        """
        if series.end_time is None:
            raise DataIntegrityWarning(f"Series {series.id} has no end time", record_id=series.id)

        start = datetime.combine(series.start_date, series.start_time)
        end = datetime.combine(series.start_date, series.end_time)
        if end <= start:
            end += timedelta(days=1)
        return OccurrenceTemplate(timezone=series.timezone, start=start, end=end)

    def active_range(
        self, series: SeriesDefinition, rule: RecurrenceRule, window_end: datetime
    ) -> tuple[datetime, datetime]:
        """Inclusive bounds within which ``series`` may produce occurrences."""
        tzid = series.timezone
        range_start = ensure_timezone_aware(datetime.combine(series.start_date, time.min), tzid)

        if series.end_date is not None:
            bound = ensure_timezone_aware(datetime.combine(series.end_date, END_OF_DAY), tzid)
        elif rule.until is not None:
            until_day = ensure_timezone_aware(rule.until, tzid).date()
            bound = ensure_timezone_aware(datetime.combine(until_day, END_OF_DAY), tzid)
        else:
            bound = window_end

        return range_start, min(bound, window_end)
