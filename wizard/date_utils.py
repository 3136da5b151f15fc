"""Date helper utilities shared across wizard sections."""

from __future__ import annotations

import re
from datetime import date

_DISPLAY_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$", re.ASCII)
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)


def is_display_date(value: str) -> bool:
    """Return ``True`` when ``value`` is shaped like ``DD/MM/AAAA``."""

    return bool(_DISPLAY_DATE_RE.match(value.strip()))


def parse_display_date(value: str | None) -> date | None:
    """Parse a ``DD/MM/AAAA`` string, returning ``None`` for invalid dates."""

    if not value:
        return None
    match = _DISPLAY_DATE_RE.match(value.strip())
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_iso_date(value: str | None) -> str | None:
    """Convert ``DD/MM/AAAA`` to ``YYYY-MM-DD``; ISO input passes through."""

    if not value:
        return None
    candidate = value.strip()
    if _ISO_DATE_RE.match(candidate):
        return candidate
    parsed = parse_display_date(candidate)
    if parsed is None:
        return candidate or None
    return parsed.isoformat()


def age_in_days(birth: date, today: date) -> int:
    """Return the number of days between ``birth`` and ``today``."""

    return (today - birth).days


def whole_years_between(earlier: date, later: date) -> int:
    """Return completed years from ``earlier`` to ``later`` (negative if reversed)."""

    if later < earlier:
        return -whole_years_between(later, earlier)
    years = later.year - earlier.year
    if (later.month, later.day) < (earlier.month, earlier.day):
        years -= 1
    return years


def whole_months_between(earlier: date, later: date) -> int:
    """Return completed months from ``earlier`` to ``later``."""

    if later < earlier:
        return -whole_months_between(later, earlier)
    months = (later.year - earlier.year) * 12 + (later.month - earlier.month)
    if later.day < earlier.day:
        months -= 1
    return months


__all__ = [
    "age_in_days",
    "is_display_date",
    "parse_display_date",
    "to_iso_date",
    "whole_months_between",
    "whole_years_between",
]
