"""Utilities for identifying unanswered values in the field buffer.

The buffer only holds keys the user has touched. A missing key means the
field was never visited, which is reported separately from a key holding
an empty string or an empty tag list.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any


class FieldPresence(StrEnum):
    """Presence tag for a single field in the buffer."""

    UNSET = "unset"
    EMPTY = "empty"
    FILLED = "filled"


def is_blank(value: Any) -> bool:
    """Return ``True`` when ``value`` should be treated as missing."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def field_presence(values: Mapping[str, Any], field_id: str) -> FieldPresence:
    """Return whether ``field_id`` is unset, explicitly empty or filled."""

    if field_id not in values:
        return FieldPresence.UNSET
    if is_blank(values[field_id]):
        return FieldPresence.EMPTY
    return FieldPresence.FILLED


def is_filled(values: Mapping[str, Any], field_id: str) -> bool:
    """Return ``True`` when ``field_id`` carries a non-empty answer."""

    return field_presence(values, field_id) is FieldPresence.FILLED


def missing_fields(values: Mapping[str, Any], field_ids: Iterable[str]) -> list[str]:
    """Return the subset of ``field_ids`` that are unset or empty in ``values``."""

    return [field_id for field_id in field_ids if not is_filled(values, field_id)]


__all__ = [
    "FieldPresence",
    "field_presence",
    "is_blank",
    "is_filled",
    "missing_fields",
]
