"""Registry for wizard sections and their canonical order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from wizard.catalog import fields_for_section
from wizard.types import LocalizedText

FIRST_SECTION_ID: Final[int] = 1
LAST_SECTION_ID: Final[int] = 8


@dataclass(frozen=True)
class Section:
    """Static metadata describing an individual wizard section."""

    id: int
    title: LocalizedText
    field_names: tuple[str, ...]

    def title_for(self, lang: str) -> str:
        """Return the localised section title."""

        if lang.lower().startswith("en"):
            return self.title[1]
        return self.title[0]


_TITLES: Final[dict[int, LocalizedText]] = {
    1: ("Informações da Criança", "Child information"),
    2: ("Informações dos Pais ou Responsáveis", "Parents or guardians"),
    3: ("Informação sobre a Gestação e o Parto", "Pregnancy and birth"),
    4: ("Condição Clínica da Criança e Traqueostomia", "Clinical condition and tracheostomy"),
    5: ("Acompanhamento Médico e Dificuldades", "Medical follow-up and barriers"),
    6: ("Cuidados Diários em Casa", "Daily care at home"),
    7: ("Acesso a Recursos e Suporte Social", "Resources and social support"),
    8: ("Observações Adicionais", "Additional notes"),
}

WIZARD_SECTIONS: Final[tuple[Section, ...]] = tuple(
    Section(
        id=section_id,
        title=title,
        field_names=tuple(field.id for field in fields_for_section(section_id)),
    )
    for section_id, title in sorted(_TITLES.items())
)


def section_ids() -> tuple[int, ...]:
    """Return section ids in canonical order."""

    return tuple(section.id for section in WIZARD_SECTIONS)


def is_valid_section_id(section_id: object) -> bool:
    """Return ``True`` when ``section_id`` names one of the eight sections."""

    return isinstance(section_id, int) and not isinstance(section_id, bool) and (
        FIRST_SECTION_ID <= section_id <= LAST_SECTION_ID
    )


def get_section(section_id: int) -> Section:
    """Lookup section metadata by id.

    Raises:
        KeyError: If ``section_id`` is outside ``1..8``.
    """

    if not is_valid_section_id(section_id):
        raise KeyError(f"Unknown wizard section: {section_id!r}")
    return WIZARD_SECTIONS[section_id - FIRST_SECTION_ID]


__all__ = [
    "FIRST_SECTION_ID",
    "LAST_SECTION_ID",
    "Section",
    "WIZARD_SECTIONS",
    "get_section",
    "is_valid_section_id",
    "section_ids",
]
