"""Well-formedness checks for user-submitted recurrence rules."""

import logging
import re

from ..timezone import DEFAULT_TZID
from .exceptions import RuleValidationError
from .models import Frequency, Weekday
from .rule_parser import parse_by_day, parse_rule_components, parse_until

logger = logging.getLogger(__name__)

MIN_INTERVAL = 1
MAX_INTERVAL = 366
MIN_COUNT = 1
MAX_COUNT = 1000

_POSITIONAL_DAY = re.compile(r"^[+-]?\d{1,2}(SU|MO|TU|WE|TH|FR|SA)$")


class RuleValidator:
    """Validates raw RRULE strings and reports every violation found."""

    def __init__(self, tzid: str = DEFAULT_TZID):
        self.tzid = tzid

    def validate(self, raw: str) -> list[str]:
        """Validate a raw rule and return list of validation errors.

        Args:
            raw: Rule string, optionally with DTSTART/RRULE prefix lines

        Returns:
            List of validation error messages (empty if valid)
        """
        components = parse_rule_components(raw)
        errors: list[str] = []

        freq = components.get("FREQ")
        if not freq:
            errors.append("FREQ is required")
        elif freq.upper() not in {f.value for f in Frequency}:
            errors.append(f"Invalid FREQ value: {freq}")

        if "INTERVAL" in components:
            errors.extend(
                self._check_range("INTERVAL", components["INTERVAL"], MIN_INTERVAL, MAX_INTERVAL)
            )

        if "COUNT" in components:
            errors.extend(self._check_range("COUNT", components["COUNT"], MIN_COUNT, MAX_COUNT))

        if "UNTIL" in components:
            try:
                parse_until(components["UNTIL"], self.tzid)
            except ValueError:
                errors.append(f"Invalid UNTIL value: {components['UNTIL']}")

        if "BYDAY" in components:
            errors.extend(self._check_by_day(components["BYDAY"]))

        if components.get("COUNT") and components.get("UNTIL"):
            logger.warning("Rule sets both COUNT and UNTIL, whichever ends first wins: %s", raw)

        return errors

    def ensure_valid(self, raw: str) -> None:
        """Raise ``RuleValidationError`` unless ``raw`` is a well-formed rule."""
        errors = self.validate(raw)
        if errors:
            raise RuleValidationError(errors)

    def _check_range(self, name: str, value: str, low: int, high: int) -> list[str]:
        try:
            number = int(value)
        except ValueError:
            return [f"{name} must be an integer: {value}"]
        if not low <= number <= high:
            return [f"{name} must be between {low} and {high}: {value}"]
        return []

    def _check_by_day(self, value: str) -> list[str]:
        entries = parse_by_day(value)
        if not entries:
            return ["BYDAY must list at least one weekday"]

        valid_codes = {day.value for day in Weekday}
        errors = []
        for entry in entries:
            if entry in valid_codes:
                continue
            if _POSITIONAL_DAY.match(entry):
                errors.append(f"Positional BYDAY values are not supported: {entry}")
            else:
                errors.append(f"Invalid BYDAY value: {entry}")
        return errors


def validate_rule(raw: str, tzid: str = DEFAULT_TZID) -> list[str]:
    """Validate ``raw`` and return every violation found."""
    return RuleValidator(tzid).validate(raw)
