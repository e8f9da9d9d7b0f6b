"""RRULE expansion for eventcal.

Steps a template occurrence forward according to FREQ/INTERVAL/BYDAY,
bounded by COUNT, UNTIL, the caller's window and a hard iteration ceiling,
and filters out exception dates by calendar day in the template timezone.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta

from ..timezone import add_elapsed, ensure_timezone_aware, local_date
from .exceptions import ConfigurationError
from .models import (
    EventDetails,
    Frequency,
    OccurrenceKind,
    OccurrenceTemplate,
    RecurrenceRule,
    ResolvedOccurrence,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_PREVIEW_MONTHS = 6
DEFAULT_PREVIEW_LIMIT = 20


class OccurrenceExpander:
    """Expands a recurrence rule into concrete occurrences.

    The expander is stateless apart from its configuration, so one instance
    can serve any number of series in the same request.
    """

    def __init__(self, settings: Any = None):
        """Initialize OccurrenceExpander with settings.

        Args:
            settings: Optional settings object; ``max_iterations``,
                ``preview_months`` and ``preview_limit`` are read if present
        """
        self.settings = settings
        self.max_iterations = getattr(settings, "max_iterations", DEFAULT_MAX_ITERATIONS)
        self.preview_months = getattr(settings, "preview_months", DEFAULT_PREVIEW_MONTHS)
        self.preview_limit = getattr(settings, "preview_limit", DEFAULT_PREVIEW_LIMIT)

    def expand(
        self,
        template: OccurrenceTemplate,
        rule: Union[RecurrenceRule, str],
        window_start: datetime,
        window_end: datetime,
        exceptions: frozenset[date] = frozenset(),
        *,
        details: Optional[EventDetails] = None,
        kind: OccurrenceKind = OccurrenceKind.SERIES_INSTANCE,
        series_id: Optional[str] = None,
        event_id: Optional[str] = None,
        is_all_day: bool = False,
    ) -> list[ResolvedOccurrence]:
        """Expand ``rule`` into occurrences inside ``[window_start, window_end]``.

        Args:
            template: First occurrence; its duration is kept for every instance
            rule: Structured rule, or a raw RRULE string to parse
            window_start: Inclusive lower bound
            window_end: Inclusive upper bound
            exceptions: Calendar days to suppress
            details: Display fields copied onto each occurrence
            kind: Kind tag for the generated occurrences
            series_id: Owning series, if any
            event_id: Owning event, if any
            is_all_day: Whether occurrences are all-day

        Returns:
            Occurrences in chronological order

        Raises:
            ConfigurationError: If the rule uses an unsupported frequency
        """
        starts = self.occurrence_starts(template, rule, window_start, window_end, exceptions)
        fields = details.detail_fields() if details is not None else {"title": ""}

        occurrences = [
            ResolvedOccurrence(
                **fields,
                kind=kind,
                start=start,
                end=add_elapsed(start, template.duration),
                timezone=template.timezone,
                is_all_day=is_all_day,
                series_id=series_id,
                event_id=event_id,
                instance_date=start.date(),
            )
            for start in starts
        ]

        logger.debug(
            "Expanded %s (series=%s event=%s) into %d occurrences",
            rule if isinstance(rule, str) else rule.to_rule_string(),
            series_id,
            event_id,
            len(occurrences),
        )
        return occurrences

    def occurrence_starts(
        self,
        template: OccurrenceTemplate,
        rule: Union[RecurrenceRule, str],
        window_start: datetime,
        window_end: datetime,
        exceptions: frozenset[date] = frozenset(),
    ) -> list[datetime]:
        """Raw start times of the occurrences inside the window.

        COUNT counts every instance the rule produces from the template start,
        including ones before the window and ones suppressed by exceptions.
        """
        tzid = template.timezone
        rule = self._coerce_rule(rule, tzid)
        window_start = ensure_timezone_aware(window_start, tzid)
        window_end = ensure_timezone_aware(window_end, tzid)
        until = ensure_timezone_aware(rule.until, tzid) if rule.until is not None else None

        current = template.start
        index = 0
        if rule.count is None and current < window_start:
            current, index = self._fast_forward(template.start, rule, window_start, tzid)

        starts: list[datetime] = []
        generated = 0
        iterations = 0

        while current <= window_end:
            if rule.count is not None and generated >= rule.count:
                break
            if iterations >= self.max_iterations:
                logger.warning(
                    "Recurrence expansion stopped at safety limit of %d iterations (rule=%s)",
                    self.max_iterations,
                    rule.to_rule_string(),
                )
                break
            iterations += 1
            generated += 1

            if current >= window_start and local_date(current, tzid) not in exceptions:
                starts.append(current)

            current, index = self._advance(template.start, current, index, rule)

            if until is not None and current > until:
                break

        return starts

    def preview(
        self,
        template: OccurrenceTemplate,
        rule: Union[RecurrenceRule, str],
        exceptions: frozenset[date] = frozenset(),
        now: Optional[datetime] = None,
        months: Optional[int] = None,
        limit: Optional[int] = None,
        **kwargs: Any,
    ) -> list[ResolvedOccurrence]:
        """First few occurrences from ``now`` on, for previewing a new rule.

        Args:
            template: First occurrence of the rule
            rule: Structured rule or raw RRULE string
            exceptions: Calendar days to suppress
            now: Preview start (defaults to the current time)
            months: Preview horizon (defaults to ``preview_months``)
            limit: Maximum occurrences (defaults to ``preview_limit``)
            **kwargs: Forwarded to ``expand``
        """
        start = ensure_timezone_aware(now or datetime.now(tz=template.start.tzinfo), template.timezone)
        end = start + relativedelta(months=months if months is not None else self.preview_months)
        occurrences = self.expand(template, rule, start, end, exceptions, **kwargs)
        return occurrences[: limit if limit is not None else self.preview_limit]

    def _coerce_rule(self, rule: Union[RecurrenceRule, str], tzid: str) -> RecurrenceRule:
        if isinstance(rule, RecurrenceRule):
            return rule
        return RecurrenceRule.parse(rule, tzid)

    def _advance(
        self, anchor: datetime, current: datetime, index: int, rule: RecurrenceRule
    ) -> tuple[datetime, int]:
        """Next candidate after ``current``; ``index`` counts periods from ``anchor``."""
        index += 1
        if rule.freq == Frequency.DAILY:
            return current + timedelta(days=rule.interval), index
        if rule.freq == Frequency.WEEKLY:
            if rule.by_day:
                return self._next_listed_weekday(current, rule), index
            return current + timedelta(weeks=rule.interval), index
        # Offsets are taken from the anchor so a 31st clamped to a short
        # month returns to the 31st afterwards
        if rule.freq == Frequency.MONTHLY:
            return anchor + relativedelta(months=rule.interval * index), index
        if rule.freq == Frequency.YEARLY:
            return anchor + relativedelta(years=rule.interval * index), index
        raise ConfigurationError(f"Unsupported FREQ: {rule.freq}")

    def _next_listed_weekday(self, current: datetime, rule: RecurrenceRule) -> datetime:
        """Walk day by day to the next BYDAY weekday.

        Days later in the current week are taken directly; once a Monday is
        crossed, ``interval`` week boundaries must pass before a day counts.
        """
        wanted = {day.python_weekday for day in rule.by_day}
        candidate = current
        weeks_crossed = 0
        for _ in range(7 * (rule.interval + 1)):
            candidate = candidate + timedelta(days=1)
            if candidate.weekday() == 0:
                weeks_crossed += 1
            if candidate.weekday() in wanted and (weeks_crossed == 0 or weeks_crossed >= rule.interval):
                return candidate
        return current + timedelta(weeks=rule.interval)

    def _fast_forward(
        self, anchor: datetime, rule: RecurrenceRule, window_start: datetime, tzid: str
    ) -> tuple[datetime, int]:
        """Skip whole periods that end before the window.

        Only used without COUNT, where skipped instances cannot change the
        result. Lands at least one full period before ``window_start`` so the
        regular stepping still decides the first emitted occurrence.
        """
        target = local_date(window_start, tzid)
        start = anchor.date()

        if rule.freq == Frequency.DAILY:
            periods = max(0, (target - start).days // rule.interval - 1)
            current = anchor + timedelta(days=periods * rule.interval)
        elif rule.freq == Frequency.WEEKLY:
            periods = max(0, (target - start).days // 7 // rule.interval - 1)
            current = anchor + timedelta(weeks=periods * rule.interval)
        elif rule.freq == Frequency.MONTHLY:
            months = (target.year - start.year) * 12 + target.month - start.month
            periods = max(0, months // rule.interval - 1)
            current = anchor + relativedelta(months=periods * rule.interval)
        elif rule.freq == Frequency.YEARLY:
            periods = max(0, (target.year - start.year) // rule.interval - 1)
            current = anchor + relativedelta(years=periods * rule.interval)
        else:
            raise ConfigurationError(f"Unsupported FREQ: {rule.freq}")

        if periods:
            logger.debug("Fast-forwarded %d periods to %s before window start %s", periods, current, window_start)
        return current, periods
