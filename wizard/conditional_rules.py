"""Conditional requirement table for dependent wizard fields.

Each rule ties a trigger field and value to the fields that only matter
while the trigger holds that value. For list answers the trigger holds
when the tag is among the selected ones.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from wizard.catalog import FIELDS_BY_ID, get_field


@dataclass(frozen=True)
class ConditionalRule:
    """A trigger value that makes ``dependent_fields`` relevant."""

    section_id: int
    trigger_field: str
    trigger_value: str
    dependent_fields: tuple[str, ...]

    def is_active(self, value: Any) -> bool:
        """Return ``True`` when ``value`` activates the dependent fields."""

        if isinstance(value, (list, tuple, set, frozenset)):
            return self.trigger_value in value
        if isinstance(value, str):
            return value.strip() == self.trigger_value
        return False

    def is_active_in(self, values: Mapping[str, Any]) -> bool:
        return self.is_active(values.get(self.trigger_field))


CONDITIONAL_RULES: Final[tuple[ConditionalRule, ...]] = (
    ConditionalRule(1, "complicacoes_parto", "sim", ("complicacoes_detalhes",)),
    ConditionalRule(2, "parentesco", "outro", ("outro_parentesco",)),
    ConditionalRule(3, "acompanhamento_pre_natal", "sim", ("quantidade_consultas",)),
    ConditionalRule(3, "problemas_gravidez", "outros", ("outros_problemas_gravidez",)),
    ConditionalRule(3, "ajuda_especial_respiracao", "sim", ("tipos_ajuda_sala_parto",)),
    ConditionalRule(4, "motivos_traqueostomia", "outro_motivo", ("outro_motivo_traqueostomia",)),
    ConditionalRule(4, "equipamentos_medicos", "outros_equipamentos", ("outros_equipamentos",)),
    ConditionalRule(5, "acompanhamento_medico", "outro_especialista", ("outro_especialista",)),
    ConditionalRule(5, "dificuldades_atendimento", "outra_dificuldade", ("outra_dificuldade",)),
    ConditionalRule(7, "beneficio_financeiro", "sim", ("qual_beneficio",)),
)


def _check_rules(rules: tuple[ConditionalRule, ...]) -> None:
    for rule in rules:
        trigger = FIELDS_BY_ID.get(rule.trigger_field)
        if trigger is None or trigger.section_id != rule.section_id:
            raise ValueError(f"Trigger {rule.trigger_field!r} does not belong to section {rule.section_id}")
        for dependent in rule.dependent_fields:
            if get_field(dependent).section_id != rule.section_id:
                raise ValueError(f"Dependent {dependent!r} does not belong to section {rule.section_id}")


_check_rules(CONDITIONAL_RULES)


def rules_for_dependent(field_id: str) -> tuple[ConditionalRule, ...]:
    """Return every rule that lists ``field_id`` as a dependent."""

    return tuple(rule for rule in CONDITIONAL_RULES if field_id in rule.dependent_fields)


def rules_for_trigger(field_id: str) -> tuple[ConditionalRule, ...]:
    """Return every rule triggered by ``field_id``."""

    return tuple(rule for rule in CONDITIONAL_RULES if rule.trigger_field == field_id)


def is_conditionally_active(field_id: str, current_values: Mapping[str, Any]) -> bool:
    """Return ``True`` when some rule currently makes ``field_id`` relevant."""

    return any(rule.is_active_in(current_values) for rule in rules_for_dependent(field_id))


def is_required(field_id: str, current_values: Mapping[str, Any]) -> bool:
    """Return whether ``field_id`` must be answered given ``current_values``."""

    if get_field(field_id).statically_required:
        return True
    return is_conditionally_active(field_id, current_values)


def on_field_changed(field_id: str, new_value: Any, current_values: Mapping[str, Any]) -> tuple[str, ...]:
    """Return the dependent fields to reset after ``field_id`` changed to ``new_value``.

    A dependent is cleared as soon as its trigger stops holding the
    activating value, unless another rule still keeps it relevant.
    """

    triggered = rules_for_trigger(field_id)
    if not triggered:
        return ()
    updated = dict(current_values)
    updated[field_id] = new_value
    to_clear: list[str] = []
    for rule in triggered:
        if rule.is_active(new_value):
            continue
        for dependent in rule.dependent_fields:
            if dependent in to_clear or is_conditionally_active(dependent, updated):
                continue
            to_clear.append(dependent)
    return tuple(to_clear)


__all__ = [
    "CONDITIONAL_RULES",
    "ConditionalRule",
    "is_conditionally_active",
    "is_required",
    "on_field_changed",
    "rules_for_dependent",
    "rules_for_trigger",
]
