"""Shared test configuration with lightweight fixtures."""

from datetime import date, datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

import pytest

from eventcal.config.settings import EventCalSettings, reset_settings
from eventcal.recurrence.models import OverrideRecord, SeriesDefinition
from eventcal.timezone import reset_timezone_provider

BERLIN = ZoneInfo("Europe/Berlin")
FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeOverrideRepository:
    """In-memory override store that records every lookup."""

    def __init__(self, overrides: Optional[list[OverrideRecord]] = None) -> None:
        self.overrides = list(overrides or [])
        self.calls: list[tuple[str, list[date]]] = []

    def fetch_overrides(self, series_id: str, instance_dates: list[date]) -> list[OverrideRecord]:
        self.calls.append((series_id, list(instance_dates)))
        wanted = set(instance_dates)
        return [
            override
            for override in self.overrides
            if override.series_id == series_id and override.instance_date in wanted
        ]


class FailingOverrideRepository:
    """Override store whose lookups always fail."""

    def __init__(self) -> None:
        self.calls = 0

    def fetch_overrides(self, series_id: str, instance_dates: list[date]) -> list[OverrideRecord]:
        self.calls += 1
        raise RuntimeError("database unavailable")


@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Keep global settings/provider state and config env vars out of tests."""
    for name in ("EVENTCAL_CONFIG_FILE", "EVENTCAL_DEBUG", "EVENTCAL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    reset_timezone_provider()
    yield
    reset_settings()
    reset_timezone_provider()


@pytest.fixture
def test_settings() -> EventCalSettings:
    """Settings with test identity values and default limits."""
    return EventCalSettings(
        app_name="Test Stammtisch",
        uid_domain="example.org",
        event_url_base="https://example.org/events",
        default_timezone="Europe/Berlin",
    )


@pytest.fixture
def fixed_clock() -> Any:
    """Clock that always returns the same UTC instant."""
    return lambda: FIXED_NOW


@pytest.fixture
def override_repository() -> FakeOverrideRepository:
    return FakeOverrideRepository()


@pytest.fixture
def repository_factory() -> Any:
    """Build a recording repository preloaded with overrides."""
    return FakeOverrideRepository


@pytest.fixture
def failing_repository() -> FailingOverrideRepository:
    return FailingOverrideRepository()


@pytest.fixture
def weekly_series() -> SeriesDefinition:
    """Weekly Thursday evening series starting 2024-07-04."""
    return SeriesDefinition(
        id="42",
        title="Stammtisch",
        description="Monthly **meetup**",
        rrule="FREQ=WEEKLY;BYDAY=TH",
        start_date=date(2024, 7, 4),
        start_time=datetime(2024, 7, 4, 19, 0).time(),
        end_time=datetime(2024, 7, 4, 22, 0).time(),
        location_name="Café Central",
        tags=("stammtisch",),
    )


def pytest_configure(config: Any) -> None:
    """Configure pytest with markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")
    config.addinivalue_line("markers", "smoke: Basic smoke tests")
