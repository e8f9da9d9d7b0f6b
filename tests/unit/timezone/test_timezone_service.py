"""Unit tests for the timezone rule provider and helpers."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from eventcal.timezone.service import (
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

pytestmark = pytest.mark.unit


@pytest.fixture
def utc_definition() -> VTimezoneDefinition:
    return VTimezoneDefinition(
        tzid="Etc/UTC",
        observances=(
            TimezoneObservance(
                kind="STANDARD",
                name="UTC",
                offset_from="+0000",
                offset_to="+0000",
                dtstart="19700101T000000",
                rrule="FREQ=YEARLY",
            ),
        ),
    )


class TestTimezoneRuleProvider:
    """Tests for VTIMEZONE registration."""

    def test_berlin_registered_by_default(self):
        provider = TimezoneRuleProvider()

        assert provider.has("Europe/Berlin")
        assert provider.tzids == ["Europe/Berlin"]
        assert provider.get("Europe/London") is None

    def test_register_additional_zone(self, utc_definition):
        provider = TimezoneRuleProvider()

        provider.register(utc_definition)

        assert provider.tzids == ["Europe/Berlin", "Etc/UTC"]
        assert provider.get("Etc/UTC") is utc_definition

    def test_empty_provider(self):
        assert TimezoneRuleProvider(definitions=[]).tzids == []

    def test_zone_resolves_names(self):
        assert TimezoneRuleProvider().zone("Europe/Berlin") == ZoneInfo("Europe/Berlin")

    def test_shared_provider_reset(self, utc_definition):
        get_timezone_provider().register(utc_definition)
        assert get_timezone_provider().has("Etc/UTC")

        reset_timezone_provider()

        assert not get_timezone_provider().has("Etc/UTC")


class TestBerlinDefinition:
    def test_vtimezone_lines(self):
        lines = EUROPE_BERLIN.to_lines()

        assert lines[:2] == ["BEGIN:VTIMEZONE", "TZID:Europe/Berlin"]
        assert lines[-1] == "END:VTIMEZONE"
        assert "TZNAME:CEST" in lines
        assert "RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU" in lines
        assert "RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU" in lines
        assert lines.index("BEGIN:DAYLIGHT") < lines.index("BEGIN:STANDARD")


class TestHelpers:
    """Tests for zone lookup and conversions."""

    def test_unknown_zone_raises(self):
        with pytest.raises(TimezoneError):
            get_zone("Mars/Olympus_Mons")

    def test_naive_datetime_localized(self):
        result = ensure_timezone_aware(datetime(2024, 7, 4, 19, 0), "Europe/Berlin")

        assert result.hour == 19
        assert result.utcoffset().total_seconds() == 7200

    def test_aware_datetime_converted(self):
        result = ensure_timezone_aware(datetime(2024, 1, 4, 18, 0, tzinfo=timezone.utc), "Europe/Berlin")

        assert result.hour == 19

    def test_local_date_crosses_midnight(self):
        late_utc = datetime(2024, 7, 4, 23, 30, tzinfo=timezone.utc)

        assert local_date(late_utc, "Europe/Berlin") == date(2024, 7, 5)

    def test_add_elapsed_counts_real_time_across_switch(self):
        start = datetime(2024, 10, 26, 23, 0, tzinfo=ZoneInfo("Europe/Berlin"))

        end = add_elapsed(start, timedelta(hours=4))

        # 03:00 CEST falls back to 02:00 CET, so four real hours end at 02:00
        assert end.hour == 2
        assert elapsed_between(start, end) == timedelta(hours=4)
