"""Human-readable (German) rule summaries and rule string building."""

import logging
from typing import Mapping, Optional

from ..timezone import DEFAULT_TZID, ensure_timezone_aware
from .rule_parser import parse_by_day, parse_rule_components, parse_until

logger = logging.getLogger(__name__)

FREQUENCY_SINGULAR = {
    "DAILY": "Täglich",
    "WEEKLY": "Wöchentlich",
    "MONTHLY": "Monatlich",
    "YEARLY": "Jährlich",
}

FREQUENCY_PLURAL = {
    "DAILY": "Tage",
    "WEEKLY": "Wochen",
    "MONTHLY": "Monate",
    "YEARLY": "Jahre",
}

DAY_NAMES = {
    "MO": "Montag",
    "TU": "Dienstag",
    "WE": "Mittwoch",
    "TH": "Donnerstag",
    "FR": "Freitag",
    "SA": "Samstag",
    "SU": "Sonntag",
}


def describe_rule(raw: str, tzid: str = DEFAULT_TZID) -> str:
    """Summarize a rule for display, e.g. ``Wöchentlich (Dienstag) für 10 Termine``.

    A missing FREQ reads as weekly. Unparseable UNTIL values are left out.
    """
    components = parse_rule_components(raw)
    freq = components.get("FREQ", "WEEKLY").upper()
    try:
        interval = int(components.get("INTERVAL", "1"))
    except ValueError:
        interval = 1

    if interval == 1:
        parts = [FREQUENCY_SINGULAR.get(freq, freq)]
    else:
        parts = [f"Alle {interval} {FREQUENCY_PLURAL.get(freq, freq)}"]

    if components.get("BYDAY"):
        days = [DAY_NAMES.get(code, code) for code in parse_by_day(components["BYDAY"])]
        if days:
            parts.append("(" + ", ".join(days) + ")")

    if components.get("COUNT"):
        parts.append(f"für {components['COUNT']} Termine")

    if components.get("UNTIL"):
        try:
            until = ensure_timezone_aware(parse_until(components["UNTIL"], tzid), tzid)
            parts.append("bis " + until.strftime("%d.%m.%Y"))
        except ValueError:
            logger.debug("Leaving unparseable UNTIL out of description: %s", components["UNTIL"])

    return " ".join(parts)


def build_rule(components: Mapping[str, Optional[object]]) -> str:
    """Serialize rule components to ``FREQ=...;KEY=VALUE`` with FREQ first.

    Keys are uppercased; ``None`` and empty values are skipped.
    """
    normalized = {str(key).upper(): value for key, value in components.items()}
    parts = []

    freq = normalized.pop("FREQ", None)
    if freq is not None and freq != "":
        parts.append(f"FREQ={str(freq).upper()}")

    for key, value in normalized.items():
        if value is None or value == "":
            continue
        parts.append(f"{key}={value}")

    return ";".join(parts)
