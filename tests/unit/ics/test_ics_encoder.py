"""Unit tests for ICSEncoder and the RFC 5545 text helpers."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from icalendar import Calendar

from eventcal.ics.encoder import (
    ICS_CONTENT_TYPE,
    ICSEncoder,
    calendar_filename,
    escape_text,
    event_filename,
    fold_line,
    unfold_lines,
)
from eventcal.recurrence.models import EventStatus, OccurrenceKind, ResolvedOccurrence
from eventcal.timezone import TimezoneRuleProvider

pytestmark = pytest.mark.unit

BERLIN = ZoneInfo("Europe/Berlin")


def make_occurrence(**kwargs) -> ResolvedOccurrence:
    values = {
        "title": "Stammtisch, Berlin; Mitte",
        "kind": OccurrenceKind.SERIES_INSTANCE,
        "start": datetime(2024, 7, 4, 19, 0, tzinfo=BERLIN),
        "end": datetime(2024, 7, 4, 22, 0, tzinfo=BERLIN),
        "series_id": "42",
        "instance_date": date(2024, 7, 4),
        "description": "Offene **Runde**",
        "location_name": "Café Central",
        "location_address": "Hauptstr. 1",
        "tags": ("stammtisch", "treffen"),
        "organizer_name": "Max Mustermann",
        "organizer_email": "max@example.org",
    }
    values.update(kwargs)
    return ResolvedOccurrence(**values)


@pytest.fixture
def encoder(test_settings, fixed_clock):
    return ICSEncoder(test_settings, clock=fixed_clock)


def content_lines(encoder, *occurrences):
    return unfold_lines(encoder.encode(list(occurrences)).text)


class TestTextHelpers:
    """Tests for escaping and line folding."""

    def test_escape_text(self):
        assert escape_text("a\\b;c,d\ne") == "a\\\\b\\;c\\,d\\ne"

    def test_escape_normalizes_crlf(self):
        assert escape_text("eins\r\nzwei") == "eins\\nzwei"

    def test_short_line_not_folded(self):
        assert fold_line("SUMMARY:kurz") == ["SUMMARY:kurz"]

    def test_ascii_fold_at_75_octets(self):
        assert fold_line("A" * 80) == ["A" * 75, " " + "A" * 5]

    def test_multibyte_never_split(self):
        line = "ä" * 50

        folded = fold_line(line)

        assert all(len(physical.encode("utf-8")) <= 75 for physical in folded)
        assert folded[0] == "ä" * 37
        assert folded[0] + "".join(physical[1:] for physical in folded[1:]) == line

    def test_unfold_reverses_fold(self):
        line = "DESCRIPTION:" + "Grüße 😀 " * 30
        text = "\r\n".join(fold_line(line)) + "\r\n"

        assert unfold_lines(text) == [line]


class TestEncode:
    """Tests for complete calendar documents."""

    @pytest.mark.critical_path
    def test_calendar_envelope(self, encoder):
        document = encoder.encode([make_occurrence()])
        lines = unfold_lines(document.text)

        assert document.text.startswith("BEGIN:VCALENDAR\r\nVERSION:2.0\r\n")
        assert document.text.endswith("END:VCALENDAR\r\n")
        assert "PRODID:-//Test Stammtisch//Calendar 1.0//DE" in lines
        assert "CALSCALE:GREGORIAN" in lines
        assert "METHOD:PUBLISH" in lines
        assert "X-WR-CALNAME:Test Stammtisch Events" in lines
        assert "X-WR-TIMEZONE:Europe/Berlin" in lines
        assert lines.index("TZID:Europe/Berlin") < lines.index("BEGIN:VEVENT")

    @pytest.mark.critical_path
    def test_event_properties(self, encoder):
        lines = content_lines(encoder, make_occurrence())

        assert "UID:series-42-20240704@example.org" in lines
        assert "DTSTAMP:20240315T120000Z" in lines
        assert "DTSTART;TZID=Europe/Berlin:20240704T190000" in lines
        assert "DTEND;TZID=Europe/Berlin:20240704T220000" in lines
        assert "SUMMARY:Stammtisch\\, Berlin\\; Mitte" in lines
        assert "LOCATION:Café Central\\, Hauptstr. 1" in lines
        assert "ORGANIZER;CN=Max Mustermann:mailto:max@example.org" in lines
        assert "URL:https://example.org/events/42" in lines
        assert "CATEGORIES:stammtisch,treffen" in lines
        assert "STATUS:CONFIRMED" in lines
        assert "SEQUENCE:0" in lines

    def test_description_is_plain_text_with_link(self, encoder):
        lines = content_lines(encoder, make_occurrence())

        description = next(line for line in lines if line.startswith("DESCRIPTION:"))
        assert description == (
            "DESCRIPTION:Offene *Runde*\\n\\n"
            "Kontakt:\\nName: Max Mustermann\\nE-Mail: max@example.org\\n\\n"
            "Mehr Informationen: https://example.org/events/42"
        )

    def test_reencode_is_byte_identical(self, encoder):
        occurrences = [make_occurrence(), make_occurrence(instance_date=date(2024, 7, 11))]

        assert encoder.encode(occurrences).to_bytes() == encoder.encode(occurrences).to_bytes()

    def test_uid_stable_across_encoders(self, test_settings, fixed_clock):
        first = ICSEncoder(test_settings, clock=fixed_clock).uid_for(make_occurrence())
        second = ICSEncoder(test_settings).uid_for(make_occurrence(title="Umbenannt"))

        assert first == second

    def test_uids_for_events(self, encoder):
        single = make_occurrence(kind=OccurrenceKind.SINGLE, series_id=None, instance_date=None, event_id="5")
        legacy = make_occurrence(series_id=None, event_id="5")

        assert encoder.uid_for(single) == "event-5@example.org"
        assert encoder.uid_for(legacy) == "event-5-20240704@example.org"

    def test_all_day_end_is_exclusive(self, encoder):
        occurrence = make_occurrence(
            is_all_day=True,
            start=datetime(2024, 7, 4, 0, 0, tzinfo=BERLIN),
            end=datetime(2024, 7, 4, 23, 59, tzinfo=BERLIN),
        )

        lines = content_lines(encoder, occurrence)

        assert "DTSTART;VALUE=DATE:20240704" in lines
        assert "DTEND;VALUE=DATE:20240705" in lines

    @pytest.mark.parametrize(
        ("kind", "status", "expected"),
        [
            (OccurrenceKind.SINGLE, EventStatus.PUBLISHED, "STATUS:CONFIRMED"),
            (OccurrenceKind.SINGLE, EventStatus.DRAFT, "STATUS:TENTATIVE"),
            (OccurrenceKind.SINGLE, EventStatus.CANCELLED, "STATUS:CANCELLED"),
            (OccurrenceKind.CANCELLED, EventStatus.PUBLISHED, "STATUS:CANCELLED"),
        ],
    )
    def test_status_mapping(self, encoder, kind, status, expected):
        assert expected in content_lines(encoder, make_occurrence(kind=kind, status=status))

    def test_override_sequence_written(self, encoder):
        lines = content_lines(encoder, make_occurrence(kind=OccurrenceKind.OVERRIDE, sequence=1))

        assert "SEQUENCE:1" in lines

    def test_unregistered_zone_written_as_utc(self, test_settings, fixed_clock):
        encoder = ICSEncoder(test_settings, timezone_provider=TimezoneRuleProvider(), clock=fixed_clock)
        new_york = ZoneInfo("America/New_York")
        occurrence = make_occurrence(
            timezone="America/New_York",
            start=datetime(2024, 7, 4, 19, 0, tzinfo=new_york),
            end=datetime(2024, 7, 4, 20, 0, tzinfo=new_york),
        )

        lines = content_lines(encoder, occurrence)

        assert "DTSTART:20240704T230000Z" in lines
        assert "DTEND:20240705T000000Z" in lines
        assert "TZID:America/New_York" not in lines

    def test_online_location_for_hybrid_events(self, encoder):
        occurrence = make_occurrence(location_type="hybrid", online_url="https://meet.example.org/x")

        lines = content_lines(encoder, occurrence)

        assert "LOCATION:Café Central\\, Hauptstr. 1\\, Online: https://meet.example.org/x" in lines

    def test_online_url_hidden_for_physical_events(self, encoder):
        occurrence = make_occurrence(location_type="physical", online_url="https://meet.example.org/x")

        assert "LOCATION:Café Central\\, Hauptstr. 1" in content_lines(encoder, occurrence)

    def test_organizer_name_with_comma_quoted(self, encoder):
        lines = content_lines(encoder, make_occurrence(organizer_name="Mustermann, Max"))

        assert 'ORGANIZER;CN="Mustermann, Max":mailto:max@example.org' in lines

    def test_long_emoji_description_folded(self, encoder):
        document = encoder.encode([make_occurrence(description="😀" * 200)])

        assert all(len(line.encode("utf-8")) <= 75 for line in document.lines)
        assert any(line.startswith("DESCRIPTION:" + "😀" * 200) for line in unfold_lines(document.text))

    def test_parses_with_icalendar(self, encoder):
        calendar = Calendar.from_ical(encoder.encode([make_occurrence()]).text)

        events = calendar.walk("VEVENT")
        assert len(events) == 1
        assert str(events[0]["SUMMARY"]) == "Stammtisch, Berlin; Mitte"
        assert events[0].decoded("DTSTART") == datetime(2024, 7, 4, 19, 0, tzinfo=BERLIN)


class TestDownloads:
    """Tests for bytes, headers and filenames."""

    def test_bytes_start_with_bom(self, encoder):
        assert encoder.encode([]).to_bytes().startswith(b"\xef\xbb\xbf")

    def test_response_headers(self, encoder):
        document = encoder.encode_single(make_occurrence())

        headers = document.response_headers("test.ics")

        assert headers["Content-Type"] == ICS_CONTENT_TYPE
        assert headers["Content-Disposition"] == 'attachment; filename="test.ics"'
        assert headers["Cache-Control"] == "no-cache, must-revalidate"
        assert headers["Content-Length"] == str(len(document.to_bytes()))

    def test_calendar_filenames(self):
        assert calendar_filename() == "public-calendar.ics"
        assert calendar_filename(private=True) == "private-calendar.ics"

    @pytest.mark.parametrize(
        ("title", "expected"),
        [("Stammtisch, Berlin; Mitte", "Stammtisch-Berlin-Mitte.ics"), ("!!!", "event.ics")],
    )
    def test_event_filename(self, title, expected):
        assert event_filename(make_occurrence(title=title)) == expected
