"""eventcal - recurrence expansion and iCalendar feeds for community events."""

__version__ = "1.0.0"
__description__ = "Calendar recurrence expansion and RFC 5545 feed generation"

# Package metadata
__all__ = [
    "__description__",
    "__version__",
]
