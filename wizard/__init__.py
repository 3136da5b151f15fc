"""Intake wizard: field catalog, validation and navigation."""

from __future__ import annotations

from .catalog import FIELD_CATALOG, FieldDefinition, FieldType, get_field
from .sections import WIZARD_SECTIONS, Section, get_section
from .validation import FieldError, SectionValidationResult, validate_section

__all__ = [
    "FIELD_CATALOG",
    "FieldDefinition",
    "FieldError",
    "FieldType",
    "Section",
    "SectionValidationResult",
    "WIZARD_SECTIONS",
    "get_field",
    "get_section",
    "validate_section",
]
