"""ICS calendar generation module."""

from .description import DescriptionFormatter, markdown_to_plain_text
from .encoder import (
    ICS_CONTENT_TYPE,
    ICSEncoder,
    IcsDocument,
    calendar_filename,
    escape_text,
    event_filename,
    fold_line,
    sanitize_filename,
    unfold_lines,
)

__all__ = [
    "DescriptionFormatter",
    "ICSEncoder",
    "ICS_CONTENT_TYPE",
    "IcsDocument",
    "calendar_filename",
    "escape_text",
    "event_filename",
    "fold_line",
    "markdown_to_plain_text",
    "sanitize_filename",
    "unfold_lines",
]
