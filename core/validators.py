"""Field-level validators for identifiers, postal codes and phone numbers.

These helpers only look at a single value. Rules that compare several
fields or sections live in :mod:`wizard.validation`.
"""

from __future__ import annotations

import re
from typing import Final

HEALTH_ID_LENGTH: Final[int] = 15
_HEALTH_ID_RE = re.compile(r"^\d{15}$", re.ASCII)
# Weights for the first 14 digits; the 15th digit is the check digit.
_HEALTH_ID_WEIGHTS: Final[tuple[int, ...]] = tuple(range(15, 1, -1))

_POSTAL_CODE_RE = re.compile(r"^(\d{5})-(\d{3})$", re.ASCII)
POSTAL_CODE_PLACEHOLDER: Final[str] = "12345-678"
POSTAL_CODE_BLACKLIST: Final[frozenset[str]] = frozenset(
    {f"{digit * 5}-{digit * 3}" for digit in "0123456789"} | {POSTAL_CODE_PLACEHOLDER}
)
# Inclusive ranges over the first five digits, one per postal region.
POSTAL_REGION_RANGES: Final[tuple[tuple[int, int], ...]] = (
    (1000, 9999),
    (10000, 19999),
    (20000, 28999),
    (29000, 29999),
    (30000, 39999),
    (40000, 49999),
    (50000, 59999),
    (60000, 69999),
    (70000, 79999),
    (80000, 89999),
    (90000, 99999),
)

_PHONE_RE = re.compile(r"^\((\d{2})\) (\d{4,5})-(\d{4})$", re.ASCII)
VALID_AREA_CODES: Final[frozenset[str]] = frozenset(
    {
        "11", "12", "13", "14", "15", "16", "17", "18", "19",
        "21", "22", "24", "27", "28",
        "31", "32", "33", "34", "35", "37", "38",
        "41", "42", "43", "44", "45", "46", "47", "48", "49",
        "51", "53", "54", "55",
        "61", "62", "63", "64", "65", "66", "67", "68", "69",
        "71", "73", "74", "75", "77", "79",
        "81", "82", "83", "84", "85", "86", "87", "88", "89",
        "91", "92", "93", "94", "95", "96", "97", "98", "99",
    }
)


def is_ascii_digits(value: str) -> bool:
    """Return ``True`` when ``value`` is non-empty and made of ``0-9`` only.

    ``str.isdigit`` also accepts superscripts and other scripts' digits,
    which ``int()`` either rejects or silently converts.
    """

    return value.isascii() and value.isdigit()


def health_id_check_digit(prefix: str) -> int:
    """Return the check digit for the first 14 digits of a health id.

    Raises:
        ValueError: If ``prefix`` is not exactly 14 digits.
    """

    if len(prefix) != HEALTH_ID_LENGTH - 1 or not is_ascii_digits(prefix):
        raise ValueError("health id prefix must contain exactly 14 digits")
    total = sum(int(digit) * weight for digit, weight in zip(prefix, _HEALTH_ID_WEIGHTS))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def is_health_id_shape(value: str) -> bool:
    """Return ``True`` when ``value`` is exactly 15 digits."""

    return bool(_HEALTH_ID_RE.match(value))


def is_valid_health_id(value: str) -> bool:
    """Return ``True`` when ``value`` has 15 digits and a matching check digit."""

    if not is_health_id_shape(value):
        return False
    return health_id_check_digit(value[:14]) == int(value[14])


def is_postal_code_shape(value: str) -> bool:
    """Return ``True`` when ``value`` matches ``XXXXX-XXX``."""

    return bool(_POSTAL_CODE_RE.match(value))


def is_blacklisted_postal_code(value: str) -> bool:
    """Return ``True`` for structurally valid but known-fake postal codes."""

    return value in POSTAL_CODE_BLACKLIST


def postal_region_index(value: str) -> int | None:
    """Return the index of the region range containing ``value`` or ``None``."""

    match = _POSTAL_CODE_RE.match(value)
    if not match:
        return None
    prefix = int(match.group(1))
    for index, (minimum, maximum) in enumerate(POSTAL_REGION_RANGES):
        if minimum <= prefix <= maximum:
            return index
    return None


def is_valid_postal_code(value: str) -> bool:
    """Return ``True`` when ``value`` is well-formed, not blacklisted and in a region."""

    if not is_postal_code_shape(value) or is_blacklisted_postal_code(value):
        return False
    return postal_region_index(value) is not None


def is_phone_shape(value: str) -> bool:
    """Return ``True`` when ``value`` matches ``(DD) XXXX-XXXX`` or ``(DD) XXXXX-XXXX``."""

    return bool(_PHONE_RE.match(value))


def phone_area_code(value: str) -> str | None:
    """Return the two-digit area code of a formatted phone number."""

    match = _PHONE_RE.match(value)
    return match.group(1) if match else None


def is_valid_subscriber_number(value: str) -> bool:
    """Mobile numbers have 5 digits starting with 9; landlines 4 digits not starting with 9."""

    match = _PHONE_RE.match(value)
    if not match:
        return False
    subscriber = match.group(2)
    if len(subscriber) == 5:
        return subscriber.startswith("9")
    return not subscriber.startswith("9")


def is_valid_phone(value: str) -> bool:
    """Return ``True`` for a well-formed number with a known area code."""

    if not is_valid_subscriber_number(value):
        return False
    return phone_area_code(value) in VALID_AREA_CODES


__all__ = [
    "HEALTH_ID_LENGTH",
    "POSTAL_CODE_BLACKLIST",
    "POSTAL_REGION_RANGES",
    "VALID_AREA_CODES",
    "health_id_check_digit",
    "is_ascii_digits",
    "is_blacklisted_postal_code",
    "is_health_id_shape",
    "is_phone_shape",
    "is_postal_code_shape",
    "is_valid_health_id",
    "is_valid_phone",
    "is_valid_postal_code",
    "is_valid_subscriber_number",
    "phone_area_code",
    "postal_region_index",
]
