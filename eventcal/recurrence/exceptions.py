"""Exception hierarchy for recurrence expansion and calendar rendering.

The taxonomy mirrors how each failure is handled:

- ``ConfigurationError`` is a programming or validation-bypass bug (e.g. an
  unsupported FREQ reaching the expander) and is allowed to propagate.
- ``RuleValidationError`` carries every problem found in a user-submitted
  rule so forms can show them all at once.
- ``DataIntegrityWarning`` marks a stored record that cannot be expanded
  (missing end time, malformed exception dates). Callers log it and let the
  record contribute zero occurrences.
"""

from typing import Optional


class EventCalError(Exception):
    """Base exception for all eventcal errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(EventCalError):
    """Raised when a rule that should have been validated cannot be expanded."""


class RuleValidationError(EventCalError):
    """Raised when a recurrence rule fails validation.

    Attributes:
        errors: Every violation found, in check order
    """

    def __init__(self, errors: list[str], message: Optional[str] = None):
        super().__init__(message or "Invalid recurrence rule: " + "; ".join(errors))
        self.errors = list(errors)


class DataIntegrityWarning(EventCalError):
    """Raised for stored records that are inconsistent and must be skipped.

    Attributes:
        record_id: Identifier of the offending record, if known
    """

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id
