"""Recurrence rule parsing, expansion and series materialization."""

from .describe import build_rule, describe_rule
from .exceptions import ConfigurationError, DataIntegrityWarning, EventCalError, RuleValidationError
from .expander import OccurrenceExpander
from .feed import FeedBuilder
from .mapping import (
    event_from_row,
    load_events,
    load_overrides,
    load_series,
    override_from_row,
    parse_exdates,
    series_from_row,
)
from .models import (
    EventDetails,
    EventRecord,
    EventStatus,
    Frequency,
    OccurrenceKind,
    OccurrenceTemplate,
    OverrideRecord,
    OverrideType,
    RecurrenceRule,
    ResolvedOccurrence,
    SeriesDefinition,
    Weekday,
)
from .rule_parser import normalize_rule_string, parse_by_day, parse_rule_components, parse_until
from .rule_validator import RuleValidator, validate_rule
from .series import OverrideRepository, SeriesMaterializer, merge_overrides

__all__ = [
    "ConfigurationError",
    "DataIntegrityWarning",
    "EventCalError",
    "EventDetails",
    "EventRecord",
    "EventStatus",
    "FeedBuilder",
    "Frequency",
    "OccurrenceExpander",
    "OccurrenceKind",
    "OccurrenceTemplate",
    "OverrideRecord",
    "OverrideRepository",
    "OverrideType",
    "RecurrenceRule",
    "ResolvedOccurrence",
    "RuleValidationError",
    "RuleValidator",
    "SeriesDefinition",
    "SeriesMaterializer",
    "Weekday",
    "build_rule",
    "describe_rule",
    "event_from_row",
    "load_events",
    "load_overrides",
    "load_series",
    "merge_overrides",
    "normalize_rule_string",
    "override_from_row",
    "parse_by_day",
    "parse_exdates",
    "parse_rule_components",
    "parse_until",
    "series_from_row",
    "validate_rule",
]
