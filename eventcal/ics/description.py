"""Plain-text rendering of event descriptions for ICS DESCRIPTION fields."""

import logging
import re
from typing import Optional

from ..recurrence.models import EventDetails

logger = logging.getLogger(__name__)

_FENCED_CODE = re.compile(r"```[^\n`]*\n(.*?)```", re.DOTALL)
_INLINE_CODE = re.compile(r"`([^`\n]+)`")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK = re.compile(r"\[([^\]]*)\]\(([^)]*)\)")
_HEADER = re.compile(r"^[ \t]*#{1,6}[ \t]+(.+?)[ \t#]*$", re.MULTILINE)
_HORIZONTAL_RULE = re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$", re.MULTILINE)
_BULLET = re.compile(r"^([ \t]*)[-*+][ \t]+", re.MULTILINE)
_STAR_ITALIC = re.compile(r"(?<!\*)\*(?![\s*])([^*\n]+?)(?<![\s*])\*(?!\*)")
_BOLD_ITALIC = re.compile(r"\*\*\*(?!\s)(.+?)(?<!\s)\*\*\*")
_BOLD = re.compile(r"\*\*(.+?)\*\*|__(.+?)__")
_UNDERSCORE_ITALIC = re.compile(r"(?<![\w_])_(?![\s_])([^_\n]+?)(?<![\s_])_(?![\w_])")
_BLOCKQUOTE = re.compile(r"^[ \t]*>[ \t]?", re.MULTILINE)
_AUTOLINK = re.compile(r"<((?:https?|ftp|mailto):[^<>\s]+)>")
_HTML_TAG = re.compile(r"<[^>\n]+>")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_PLACEHOLDER = re.compile(r"\x00(\d+)\x00")


def _link_text(match: re.Match) -> str:
    text, url = match.group(1).strip(), match.group(2).strip()
    if not url:
        return text
    if not text:
        return url
    return f"{text} ({url})"


def markdown_to_plain_text(text: Optional[str]) -> str:
    """Convert the Markdown subset used in event descriptions to plain text.

    Code contents are protected from the other rewrites and restored at the
    end; everything else is rewritten line by line with regular expressions.
    """
    if not text or not text.strip():
        return ""

    protected: list[str] = []

    def protect(value: str) -> str:
        protected.append(value)
        return f"\x00{len(protected) - 1}\x00"

    result = text.replace("\r\n", "\n").replace("\r", "\n")
    result = _FENCED_CODE.sub(lambda m: protect(m.group(1).rstrip("\n")), result)
    result = _INLINE_CODE.sub(lambda m: protect(f"'{m.group(1)}'"), result)

    result = _IMAGE.sub(lambda m: f"[{m.group(1).strip()}]" if m.group(1).strip() else "", result)
    result = _LINK.sub(_link_text, result)
    result = _HEADER.sub(r"\n\1\n", result)
    result = _HORIZONTAL_RULE.sub("---", result)
    result = _BULLET.sub(r"\1• ", result)

    result = _BOLD_ITALIC.sub(r"**\1**", result)
    # Single-star italics go first so bold can be reduced to single stars
    result = _STAR_ITALIC.sub(r"\1", result)
    result = _BOLD.sub(lambda m: f"*{m.group(1) or m.group(2)}*", result)
    result = _UNDERSCORE_ITALIC.sub(r"\1", result)

    result = _BLOCKQUOTE.sub("| ", result)
    result = _AUTOLINK.sub(r"\1", result)
    result = _HTML_TAG.sub("", result)
    result = result.replace("```", "")

    result = _PLACEHOLDER.sub(lambda m: protected[int(m.group(1))], result)
    result = _EXCESS_NEWLINES.sub("\n\n", result)
    return result.strip()


class DescriptionFormatter:
    """Builds the DESCRIPTION text of a VEVENT.

    The converted Markdown description is followed by German detail lines
    (category, participants, directions, contact...) and a link back to the
    event page.
    """

    def format(self, details: EventDetails, event_url: Optional[str] = None) -> str:
        """Render ``details`` as multi-line plain text (unescaped)."""
        blocks: list[list[str]] = []

        body = markdown_to_plain_text(details.description)
        if body:
            blocks.append([body])

        facts = []
        if details.category:
            facts.append(f"Kategorie: {details.category[:1].upper()}{details.category[1:]}")
        if details.max_participants:
            facts.append(f"Max. Teilnehmer: {details.max_participants}")
        if facts:
            blocks.append(facts)

        for label, value in (
            ("Anfahrt", details.location_instructions),
            ("Voraussetzungen", details.requirements),
            ("Sicherheitshinweise", details.safety_notes),
            ("Vorbereitung", details.preparation_notes),
        ):
            if value:
                blocks.append([f"{label}: {value.strip()}"])

        if details.organizer_name or details.organizer_email:
            contact = ["Kontakt:"]
            if details.organizer_name:
                contact.append(f"Name: {details.organizer_name}")
            if details.organizer_email:
                contact.append(f"E-Mail: {details.organizer_email}")
            blocks.append(contact)

        if event_url:
            blocks.append([f"Mehr Informationen: {event_url}"])

        return "\n\n".join("\n".join(block) for block in blocks)
