"""Unit tests for recurrence data models."""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from eventcal.recurrence.exceptions import ConfigurationError
from eventcal.recurrence.models import (
    EventStatus,
    Frequency,
    OccurrenceKind,
    OccurrenceTemplate,
    OverrideRecord,
    OverrideType,
    RecurrenceRule,
    ResolvedOccurrence,
    Weekday,
)

pytestmark = pytest.mark.unit


class TestRecurrenceRule:
    """Tests for building structured rules."""

    def test_parse_full_rule(self):
        rule = RecurrenceRule.parse("FREQ=WEEKLY;INTERVAL=2;COUNT=10;BYDAY=MO,WE")

        assert rule.freq == Frequency.WEEKLY
        assert rule.interval == 2
        assert rule.count == 10
        assert rule.by_day == (Weekday.MO, Weekday.WE)
        assert rule.until is None

    def test_defaults(self):
        rule = RecurrenceRule.parse("FREQ=DAILY")

        assert rule.interval == 1
        assert rule.count is None
        assert rule.by_day == ()

    def test_duplicate_days_removed_in_order(self):
        rule = RecurrenceRule.parse("FREQ=WEEKLY;BYDAY=WE,MO,WE")

        assert rule.by_day == (Weekday.WE, Weekday.MO)

    def test_unknown_byday_codes_dropped(self):
        rule = RecurrenceRule.parse("FREQ=WEEKLY;BYDAY=XX,FR")

        assert rule.by_day == (Weekday.FR,)

    def test_until_is_aware(self):
        rule = RecurrenceRule.parse("FREQ=DAILY;UNTIL=20240110T120000Z")

        assert rule.until == datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw", ["", "INTERVAL=2", "FREQ=HOURLY"])
    def test_missing_or_unsupported_freq_raises(self, raw):
        with pytest.raises(ConfigurationError):
            RecurrenceRule.parse(raw)

    @pytest.mark.parametrize("raw", ["FREQ=DAILY;COUNT=abc", "FREQ=DAILY;COUNT=5000", "FREQ=DAILY;INTERVAL=0"])
    def test_invalid_numbers_raise(self, raw):
        with pytest.raises(ConfigurationError):
            RecurrenceRule.parse(raw)

    def test_to_rule_string(self):
        rule = RecurrenceRule.parse("FREQ=WEEKLY;INTERVAL=2;BYDAY=TU;UNTIL=20241231T225959Z")

        assert rule.to_rule_string() == "FREQ=WEEKLY;INTERVAL=2;UNTIL=20241231T225959Z;BYDAY=TU"

    def test_rule_is_frozen(self):
        rule = RecurrenceRule.parse("FREQ=DAILY")

        with pytest.raises(ValidationError):
            rule.interval = 3

    def test_weekday_python_index(self):
        assert Weekday.MO.python_weekday == 0
        assert Weekday.SU.python_weekday == 6


class TestOccurrenceTemplate:
    def test_naive_times_are_localized(self):
        template = OccurrenceTemplate(start=datetime(2024, 1, 1, 9, 0), end=datetime(2024, 1, 1, 10, 30))

        assert str(template.start.tzinfo) == "Europe/Berlin"
        assert template.duration == timedelta(minutes=90)
        assert template.duration_minutes == 90

    def test_duration_counts_real_time_across_dst(self):
        template = OccurrenceTemplate(start=datetime(2024, 3, 31, 1, 0), end=datetime(2024, 3, 31, 4, 0))

        assert template.duration == timedelta(hours=2)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            OccurrenceTemplate(start=datetime(2024, 1, 1, 10, 0), end=datetime(2024, 1, 1, 9, 0))


class TestResolvedOccurrence:
    """Tests for the output model."""

    def _occurrence(self, **kwargs):
        values = {
            "title": "Treffen",
            "kind": OccurrenceKind.SERIES_INSTANCE,
            "start": datetime(2024, 7, 4, 19, 0, tzinfo=timezone.utc),
            "end": datetime(2024, 7, 4, 22, 0, tzinfo=timezone.utc),
        }
        values.update(kwargs)
        return ResolvedOccurrence(**values)

    def test_source_id_for_series(self):
        occurrence = self._occurrence(series_id="7", instance_date=date(2024, 7, 4))

        assert occurrence.source_id == "7:2024-07-04"

    def test_source_id_for_legacy_recurring_event(self):
        occurrence = self._occurrence(event_id="12", instance_date=date(2024, 7, 4))

        assert occurrence.source_id == "12:2024-07-04"

    def test_source_id_for_single_event(self):
        occurrence = self._occurrence(kind=OccurrenceKind.SINGLE, event_id="12")

        assert occurrence.source_id == "12"

    def test_json_dump_includes_source_id_and_iso_times(self):
        data = self._occurrence(series_id="7", instance_date=date(2024, 7, 4)).model_dump(mode="json")

        assert data["source_id"] == "7:2024-07-04"
        assert data["start"] == "2024-07-04T19:00:00+00:00"
        assert data["kind"] == "series_instance"

    def test_cancelled_status_marks_cancelled(self):
        assert self._occurrence(status=EventStatus.CANCELLED).is_cancelled
        assert not self._occurrence().is_cancelled


class TestOverrideRecord:
    def test_replacement_fields_skip_unset_values(self):
        override = OverrideRecord(
            series_id="7",
            instance_date=date(2024, 7, 4),
            title="Sondertermin",
            location_name="Park",
        )

        assert override.replacement_fields() == {"title": "Sondertermin", "location_name": "Park"}
        assert not override.is_cancelled

    def test_cancelled_override(self):
        override = OverrideRecord(
            series_id="7", instance_date=date(2024, 7, 4), override_type=OverrideType.CANCELLED
        )

        assert override.is_cancelled
