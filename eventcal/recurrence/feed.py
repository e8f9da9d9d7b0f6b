"""Collects every occurrence a calendar feed should contain."""

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from ..timezone import ensure_timezone_aware
from .expander import OccurrenceExpander
from .models import (
    EventRecord,
    OccurrenceKind,
    OccurrenceTemplate,
    ResolvedOccurrence,
    SeriesDefinition,
)
from .series import SeriesMaterializer

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 30
DEFAULT_LOOKAHEAD_DAYS = 365


class FeedBuilder:
    """Resolves standalone events, legacy recurring events and series."""

    def __init__(
        self,
        materializer: SeriesMaterializer,
        expander: Optional[OccurrenceExpander] = None,
        settings: Any = None,
    ):
        self.materializer = materializer
        self.settings = settings
        self.expander = expander or materializer.expander
        self.lookback_days = getattr(settings, "feed_lookback_days", DEFAULT_LOOKBACK_DAYS)
        self.lookahead_days = getattr(settings, "feed_lookahead_days", DEFAULT_LOOKAHEAD_DAYS)

    def default_window(self, now: datetime) -> tuple[datetime, datetime]:
        """Feed window around ``now``: one month back, one year ahead by default."""
        return now - timedelta(days=self.lookback_days), now + timedelta(days=self.lookahead_days)

    def collect(
        self,
        events: Iterable[EventRecord],
        series: Iterable[SeriesDefinition],
        window_start: datetime,
        window_end: datetime,
        include_cancelled: bool = True,
    ) -> list[ResolvedOccurrence]:
        """Resolve everything that falls inside the window.

        Args:
            events: Standalone events, possibly carrying a legacy RRULE
            series: Series definitions
            window_start: Inclusive lower bound
            window_end: Inclusive upper bound
            include_cancelled: Whether cancelled occurrences are kept

        Returns:
            Occurrences sorted by start
        """
        occurrences: list[ResolvedOccurrence] = []

        for event in events:
            try:
                occurrences.extend(self.resolve_event(event, window_start, window_end))
            except Exception:
                logger.exception("Failed to resolve event %s", event.id)

        occurrences.extend(self.materializer.materialize_many(series, window_start, window_end))

        if not include_cancelled:
            occurrences = [o for o in occurrences if not o.is_cancelled]

        occurrences.sort(key=lambda occurrence: occurrence.start)
        logger.info(
            "Collected %d occurrences between %s and %s",
            len(occurrences),
            window_start.isoformat(),
            window_end.isoformat(),
        )
        return occurrences

    def resolve_event(
        self, event: EventRecord, window_start: datetime, window_end: datetime
    ) -> list[ResolvedOccurrence]:
        """Occurrences of one standalone event inside the window."""
        template = OccurrenceTemplate(timezone=event.timezone, start=event.start, end=event.end)

        if event.is_recurring:
            return self.expander.expand(
                template,
                event.rrule or "",
                window_start,
                window_end,
                event.exdates,
                details=event,
                kind=OccurrenceKind.SERIES_INSTANCE,
                event_id=event.id,
                is_all_day=event.is_all_day,
            )

        window_start = ensure_timezone_aware(window_start, event.timezone)
        window_end = ensure_timezone_aware(window_end, event.timezone)
        if not window_start <= template.start <= window_end:
            return []

        return [
            ResolvedOccurrence(
                **event.detail_fields(),
                kind=OccurrenceKind.SINGLE,
                start=template.start,
                end=template.end,
                timezone=event.timezone,
                is_all_day=event.is_all_day,
                event_id=event.id,
            )
        ]
