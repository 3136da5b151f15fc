"""Shared type aliases for the wizard package."""

from __future__ import annotations

from typing import Mapping, Union


LangPair = tuple[str, str]

# Bilingual text pair (pt, en) used for every user-facing message
LocalizedText = LangPair

# A field holds either a scalar answer or a list of enum tags
FieldValue = Union[str, list[str]]

SectionId = int
SectionData = dict[str, FieldValue]
CommittedSections = Mapping[SectionId, SectionData]


__all__ = [
    "CommittedSections",
    "FieldValue",
    "LangPair",
    "LocalizedText",
    "SectionData",
    "SectionId",
]
