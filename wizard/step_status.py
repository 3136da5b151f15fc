"""Helpers for computing wizard section completion status."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from wizard.conditional_rules import is_required
from wizard.missing_fields import is_filled
from wizard.sections import LAST_SECTION_ID, get_section


@dataclass(frozen=True)
class SectionCompletion:
    """Required/filled counters for a single section."""

    required: int
    filled: int

    @property
    def ratio(self) -> float:
        """Return ``filled / required`` in ``[0, 1]``; an empty requirement set counts as done."""

        if self.required <= 0:
            return 1.0
        return min(self.filled, self.required) / self.required

    @property
    def complete(self) -> bool:
        return self.filled >= self.required


def required_fields_for_section(section_id: int, values: Mapping[str, Any]) -> tuple[str, ...]:
    """Return the fields of ``section_id`` that are required under ``values``."""

    section = get_section(section_id)
    return tuple(field_id for field_id in section.field_names if is_required(field_id, values))


def compute_section_completion(section_id: int, values: Mapping[str, Any]) -> SectionCompletion:
    """Count required and filled fields for ``section_id``.

    Only required fields (static or conditionally active) contribute, so
    ``filled`` never exceeds ``required``. Correctness is not checked here.
    """

    required_fields = required_fields_for_section(section_id, values)
    filled = sum(1 for field_id in required_fields if is_filled(values, field_id))
    return SectionCompletion(required=len(required_fields), filled=filled)


def missing_required_fields(section_id: int, values: Mapping[str, Any]) -> tuple[str, ...]:
    return tuple(
        field_id
        for field_id in required_fields_for_section(section_id, values)
        if not is_filled(values, field_id)
    )


def overall_progress(completed_section_ids: Iterable[int]) -> float:
    """Return the fraction of committed sections out of all eight."""

    completed = {section_id for section_id in completed_section_ids if 1 <= section_id <= LAST_SECTION_ID}
    return len(completed) / LAST_SECTION_ID


__all__ = [
    "SectionCompletion",
    "compute_section_completion",
    "missing_required_fields",
    "overall_progress",
    "required_fields_for_section",
]
