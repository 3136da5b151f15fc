"""Section validation for the intake wizard.

Every field of a section is first checked on its own (requiredness, option
membership, formats such as the health id check digit). Rules that look
at other fields of the same section, or at sections committed earlier,
only run for fields that passed those structural checks. Validation
never stops at the first problem so the caller can highlight every
offending field at once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Final

from core.validators import (
    is_ascii_digits,
    is_blacklisted_postal_code,
    is_health_id_shape,
    is_phone_shape,
    is_postal_code_shape,
    is_valid_health_id,
    is_valid_subscriber_number,
    phone_area_code,
    postal_region_index,
    VALID_AREA_CODES,
)
from utils.i18n import (
    REQUIRED_FIELD_MESSAGE,
    SELECT_AT_LEAST_ONE_MESSAGE,
    SELECT_OPTION_MESSAGE,
    tr,
)
from wizard.catalog import FieldDefinition, FieldType, fields_for_section
from wizard.conditional_rules import is_conditionally_active, is_required, rules_for_dependent
from wizard.date_utils import (
    age_in_days,
    is_display_date,
    parse_display_date,
    whole_months_between,
    whole_years_between,
)
from wizard.missing_fields import is_blank
from wizard.sections import get_section
from wizard.types import CommittedSections, FieldValue, LocalizedText, SectionData

logger = logging.getLogger(__name__)

MIN_GUARDIAN_AGE_YEARS: Final[int] = 14
MIN_GUARDIAN_AGE_GAP_YEARS: Final[int] = 14
MAX_GUARDIAN_AGE_GAP_YEARS: Final[int] = 70

# Acceptable birth weight in grams for each gestational-age bucket.
GESTATIONAL_WEIGHT_RANGES: Final[Mapping[str, tuple[int, int]]] = {
    "menos_28": (300, 1800),
    "28_36": (600, 3800),
    "37_41": (1500, 5500),
    "mais_41": (2000, 6000),
}

_GESTATIONAL_BUCKET_LABELS: Final[Mapping[str, LocalizedText]] = {
    "menos_28": ("menos de 28 semanas", "under 28 weeks"),
    "28_36": ("entre 28 e 36 semanas", "28 to 36 weeks"),
    "37_41": ("entre 37 e 41 semanas", "37 to 41 weeks"),
    "mais_41": ("mais de 41 semanas", "over 41 weeks"),
}

# Youngest plausible current age, in months, for each procedure-age answer.
TRACHEOSTOMY_MIN_AGE_MONTHS: Final[Mapping[str, int]] = {
    "nascimento": 0,
    "primeiro_mes": 0,
    "primeiros_6_meses": 1,
    "primeiro_ano": 6,
    "apos_primeiro_ano": 12,
    "nao_sei": 0,
}

_DATE_FORMAT_ERROR: Final[LocalizedText] = (
    "Data deve estar no formato DD/MM/AAAA",
    "Date must use the DD/MM/YYYY format",
)
_DATE_INVALID_ERROR: Final[LocalizedText] = ("Data inválida", "Invalid date")
_DATE_FUTURE_ERROR: Final[LocalizedText] = (
    "A data não pode estar no futuro",
    "The date cannot be in the future",
)
_NAME_TOO_SHORT_ERROR: Final[LocalizedText] = (
    "Nome deve ter pelo menos 2 caracteres",
    "Name must have at least 2 characters",
)
_HEALTH_ID_SHAPE_ERROR: Final[LocalizedText] = (
    "Número do SUS deve ter 15 dígitos",
    "The SUS number must have 15 digits",
)
_HEALTH_ID_CHECK_ERROR: Final[LocalizedText] = (
    "Número do SUS inválido. Confira os dígitos do cartão",
    "Invalid SUS number. Please check the digits on the card",
)
_WEIGHT_FORMAT_ERROR: Final[LocalizedText] = (
    "Digite apenas números (em gramas)",
    "Enter digits only (in grams)",
)
_PHONE_FORMAT_ERROR: Final[LocalizedText] = (
    "Telefone deve estar no formato (00) 00000-0000",
    "Phone must use the (00) 00000-0000 format",
)
_PHONE_SUBSCRIBER_ERROR: Final[LocalizedText] = (
    "Celulares têm 9 dígitos começando com 9; fixos têm 8 dígitos",
    "Mobile numbers have 9 digits starting with 9; landlines have 8 digits",
)
_PHONE_AREA_CODE_ERROR: Final[LocalizedText] = ("DDD inválido", "Invalid area code")
_POSTAL_FORMAT_ERROR: Final[LocalizedText] = (
    "CEP deve estar no formato 00000-000",
    "Postal code must use the 00000-000 format",
)
_POSTAL_FAKE_ERROR: Final[LocalizedText] = ("CEP inválido", "Invalid postal code")
_POSTAL_REGION_ERROR: Final[LocalizedText] = (
    "CEP não pertence a nenhuma região postal",
    "Postal code does not belong to any postal region",
)
_GUARDIAN_TOO_YOUNG_ERROR: Final[LocalizedText] = (
    "O responsável deve ter pelo menos 14 anos",
    "The guardian must be at least 14 years old",
)
_GUARDIAN_GAP_ERROR: Final[LocalizedText] = (
    "O responsável deve ser de 14 a 70 anos mais velho que a criança",
    "The guardian must be 14 to 70 years older than the child",
)
_PARENT_NAME_ERROR: Final[LocalizedText] = (
    "Preencha pelo menos um nome: Pai, Mãe ou Responsável Legal",
    "Fill in at least one name: father, mother or legal guardian",
)
_TRACHEOSTOMY_AGE_ERROR: Final[LocalizedText] = (
    "A idade informada para a traqueostomia é incompatível com a data de nascimento da criança",
    "The tracheostomy age is incompatible with the child's date of birth",
)

_REQUIRED_MESSAGES: Final[Mapping[str, LocalizedText]] = {
    "nome_completo": ("Nome completo é obrigatório", "Full name is required"),
    "data_nascimento": ("Data de nascimento é obrigatória", "Date of birth is required"),
    "numero_sus": ("Número do SUS é obrigatório", "SUS number is required"),
    "peso_nascer": ("Peso ao nascer é obrigatório", "Birth weight is required"),
    "complicacoes_detalhes": ("Por favor, explique as complicações", "Please describe the complications"),
    "outro_parentesco": ("Especifique o parentesco", "Specify the relationship"),
    "telefone_contato": ("Telefone é obrigatório", "Phone is required"),
    "cep": ("CEP é obrigatório", "Postal code is required"),
    "quantidade_consultas": ("Informe a quantidade de consultas", "Enter the number of appointments"),
    "outros_problemas_gravidez": ("Especifique os outros problemas", "Specify the other problems"),
    "tipos_ajuda_sala_parto": ("Selecione pelo menos um tipo de ajuda", "Select at least one type of support"),
    "motivos_traqueostomia": ("Selecione pelo menos um motivo", "Select at least one reason"),
    "outro_motivo_traqueostomia": ("Especifique o outro motivo", "Specify the other reason"),
    "equipamentos_medicos": ("Selecione pelo menos um equipamento", "Select at least one piece of equipment"),
    "outros_equipamentos": ("Especifique os outros equipamentos", "Specify the other equipment"),
    "outro_especialista": ("Especifique qual outro especialista", "Specify the other specialist"),
    "outra_dificuldade": ("Especifique qual outra dificuldade", "Specify the other barrier"),
    "qual_beneficio": ("Especifique qual benefício recebe", "Specify which benefit you receive"),
}


@dataclass(frozen=True)
class FieldError:
    """A problem with a single field, produced transiently by validation."""

    field_id: str
    message: LocalizedText

    def text(self, lang: str | None = None) -> str:
        """Return the localised message."""

        return tr(*self.message, lang=lang)


@dataclass(frozen=True)
class SectionValidationResult:
    """Outcome of validating one section."""

    section_id: int
    data: SectionData | None = None
    errors: tuple[FieldError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error_fields(self) -> tuple[str, ...]:
        """Return the offending field ids in display order, without repeats."""

        return tuple(dict.fromkeys(error.field_id for error in self.errors))

    @property
    def first_error_field(self) -> str | None:
        """Field the UI should scroll into view."""

        return self.errors[0].field_id if self.errors else None

    def error_map(self) -> dict[str, LocalizedText]:
        """Return the first message per field."""

        mapping: dict[str, LocalizedText] = {}
        for error in self.errors:
            mapping.setdefault(error.field_id, error.message)
        return mapping


FormatCheck = Callable[[str, date], LocalizedText | None]


def _check_full_name(value: str, _today: date) -> LocalizedText | None:
    if len(value) < 2:
        return _NAME_TOO_SHORT_ERROR
    return None


def _check_health_id(value: str, _today: date) -> LocalizedText | None:
    if not is_health_id_shape(value):
        return _HEALTH_ID_SHAPE_ERROR
    if not is_valid_health_id(value):
        return _HEALTH_ID_CHECK_ERROR
    return None


def _check_weight(value: str, _today: date) -> LocalizedText | None:
    if not is_ascii_digits(value):
        return _WEIGHT_FORMAT_ERROR
    return None


def _check_phone(value: str, _today: date) -> LocalizedText | None:
    if not is_phone_shape(value):
        return _PHONE_FORMAT_ERROR
    if not is_valid_subscriber_number(value):
        return _PHONE_SUBSCRIBER_ERROR
    if phone_area_code(value) not in VALID_AREA_CODES:
        return _PHONE_AREA_CODE_ERROR
    return None


def _check_postal_code(value: str, _today: date) -> LocalizedText | None:
    if not is_postal_code_shape(value):
        return _POSTAL_FORMAT_ERROR
    if is_blacklisted_postal_code(value):
        return _POSTAL_FAKE_ERROR
    if postal_region_index(value) is None:
        return _POSTAL_REGION_ERROR
    return None


def _check_guardian_age(value: str, today: date) -> LocalizedText | None:
    birth = parse_display_date(value)
    if birth is not None and whole_years_between(birth, today) < MIN_GUARDIAN_AGE_YEARS:
        return _GUARDIAN_TOO_YOUNG_ERROR
    return None


FIELD_FORMAT_CHECKS: Final[Mapping[str, FormatCheck]] = {
    "nome_completo": _check_full_name,
    "numero_sus": _check_health_id,
    "peso_nascer": _check_weight,
    "telefone_contato": _check_phone,
    "cep": _check_postal_code,
    "data_nascimento_responsavel": _check_guardian_age,
}


def _required_message(definition: FieldDefinition) -> LocalizedText:
    if definition.id in _REQUIRED_MESSAGES:
        return _REQUIRED_MESSAGES[definition.id]
    if definition.type is FieldType.MULTI_ENUM:
        return SELECT_AT_LEAST_ONE_MESSAGE
    if definition.type is FieldType.ENUM:
        return SELECT_OPTION_MESSAGE
    return REQUIRED_FIELD_MESSAGE


def _check_date(value: str, today: date) -> LocalizedText | None:
    if not is_display_date(value):
        return _DATE_FORMAT_ERROR
    parsed = parse_display_date(value)
    if parsed is None:
        return _DATE_INVALID_ERROR
    if age_in_days(parsed, today) < 0:
        return _DATE_FUTURE_ERROR
    return None


def _structural_error(
    definition: FieldDefinition,
    value: Any,
    values: Mapping[str, Any],
    today: date,
) -> LocalizedText | None:
    """Return the first structural problem for ``definition`` or ``None``."""

    if is_blank(value):
        if is_required(definition.id, values):
            return _required_message(definition)
        return None

    if definition.type is FieldType.MULTI_ENUM:
        if not isinstance(value, (list, tuple)):
            return SELECT_OPTION_MESSAGE
        if any(not isinstance(tag, str) or tag not in definition.options for tag in value):
            return SELECT_OPTION_MESSAGE
        return None

    if not isinstance(value, str):
        return SELECT_OPTION_MESSAGE if definition.type is FieldType.ENUM else REQUIRED_FIELD_MESSAGE
    candidate = value.strip()

    if definition.type is FieldType.ENUM:
        return None if candidate in definition.options else SELECT_OPTION_MESSAGE
    if definition.type is FieldType.DATE:
        date_error = _check_date(candidate, today)
        if date_error:
            return date_error

    format_check = FIELD_FORMAT_CHECKS.get(definition.id)
    if format_check is not None:
        return format_check(candidate, today)
    return None


def _normalize_value(definition: FieldDefinition, value: Any, values: Mapping[str, Any]) -> FieldValue:
    if rules_for_dependent(definition.id) and not is_conditionally_active(definition.id, values):
        if not definition.statically_required:
            return definition.empty_value
    if is_blank(value):
        return definition.empty_value
    if definition.type is FieldType.MULTI_ENUM:
        return list(dict.fromkeys(value))
    return str(value).strip()


def gestational_weight_range(bucket: str) -> tuple[int, int] | None:
    """Return the acceptable ``(min, max)`` birth weight for ``bucket``."""

    return GESTATIONAL_WEIGHT_RANGES.get(bucket)


def compatible_gestational_buckets(weight_grams: int) -> tuple[str, ...]:
    """Return the buckets whose weight range admits ``weight_grams``."""

    return tuple(
        bucket
        for bucket, (minimum, maximum) in GESTATIONAL_WEIGHT_RANGES.items()
        if minimum <= weight_grams <= maximum
    )


def _weight_outside_bucket_error(bucket: str) -> LocalizedText:
    minimum, maximum = GESTATIONAL_WEIGHT_RANGES[bucket]
    label_pt, label_en = _GESTATIONAL_BUCKET_LABELS[bucket]
    return (
        f"Para {label_pt} de gestação o peso ao nascer deve estar entre {minimum} e {maximum} gramas",
        f"For {label_en} of gestation the birth weight must be between {minimum} and {maximum} grams",
    )


def _bucket_incompatible_error(weight_grams: int) -> LocalizedText:
    return (
        f"As semanas de gestação não são compatíveis com o peso informado ({weight_grams} g)",
        f"The gestational weeks are not compatible with the entered weight ({weight_grams} g)",
    )


def _committed_birth_date(context: CommittedSections) -> date | None:
    child = context.get(1)
    if not child:
        return None
    raw = child.get("data_nascimento")
    return parse_display_date(raw) if isinstance(raw, str) else None


SectionRule = Callable[
    [Mapping[str, Any], CommittedSections, frozenset[str], date],
    list[FieldError],
]


def _section_1_rules(
    values: Mapping[str, Any],
    _context: CommittedSections,
    passed: frozenset[str],
    _today: date,
) -> list[FieldError]:
    errors: list[FieldError] = []
    if {"peso_nascer", "semanas_prematuridade"} <= passed:
        weight_raw = values.get("peso_nascer")
        bucket = values.get("semanas_prematuridade")
        if not is_blank(weight_raw) and not is_blank(bucket):
            weight = int(str(weight_raw).strip())
            bucket = str(bucket).strip()
            minimum, maximum = GESTATIONAL_WEIGHT_RANGES[bucket]
            if not minimum <= weight <= maximum:
                errors.append(FieldError("peso_nascer", _weight_outside_bucket_error(bucket)))
                errors.append(FieldError("semanas_prematuridade", _bucket_incompatible_error(weight)))
    return errors


def _section_2_rules(
    values: Mapping[str, Any],
    context: CommittedSections,
    passed: frozenset[str],
    _today: date,
) -> list[FieldError]:
    errors: list[FieldError] = []
    name_fields = ("nome_pai", "nome_mae", "nome_responsavel")
    if all(is_blank(values.get(name)) for name in name_fields):
        errors.extend(FieldError(name, _PARENT_NAME_ERROR) for name in name_fields if name in passed)

    if "data_nascimento_responsavel" in passed:
        guardian_birth = parse_display_date(values.get("data_nascimento_responsavel"))
        child_birth = _committed_birth_date(context)
        if guardian_birth is not None and child_birth is None:
            logger.debug("Child birth date not committed yet; skipping guardian age gap check.")
        elif guardian_birth is not None and child_birth is not None:
            gap = whole_years_between(guardian_birth, child_birth)
            if not MIN_GUARDIAN_AGE_GAP_YEARS <= gap <= MAX_GUARDIAN_AGE_GAP_YEARS:
                errors.append(FieldError("data_nascimento_responsavel", _GUARDIAN_GAP_ERROR))
    return errors


def _section_4_rules(
    values: Mapping[str, Any],
    context: CommittedSections,
    passed: frozenset[str],
    today: date,
) -> list[FieldError]:
    errors: list[FieldError] = []
    if "idade_traqueostomia" in passed:
        category = values.get("idade_traqueostomia")
        child_birth = _committed_birth_date(context)
        if isinstance(category, str) and child_birth is not None:
            minimum_months = TRACHEOSTOMY_MIN_AGE_MONTHS.get(category.strip(), 0)
            if whole_months_between(child_birth, today) < minimum_months:
                errors.append(FieldError("idade_traqueostomia", _TRACHEOSTOMY_AGE_ERROR))
    return errors


SECTION_RULES: Final[Mapping[int, SectionRule]] = {
    1: _section_1_rules,
    2: _section_2_rules,
    4: _section_4_rules,
}


def validate_section(
    section_id: int,
    values: Mapping[str, Any],
    context: CommittedSections | None = None,
    *,
    today: date | None = None,
) -> SectionValidationResult:
    """Validate the fields of ``section_id`` and build its committed data.

    Args:
        section_id: Section to validate (``1..8``).
        values: Current field buffer. Keys of other sections are ignored.
        context: Read-only data of sections committed earlier.
        today: Reference date for age and future-date rules.

    Returns:
        A result holding the normalised section data, or every field error.
    """

    section = get_section(section_id)
    reference_day = today or date.today()
    committed = context or {}
    errors: list[FieldError] = []
    passed: set[str] = set()
    definitions = fields_for_section(section.id)

    for definition in definitions:
        message = _structural_error(definition, values.get(definition.id), values, reference_day)
        if message is None:
            passed.add(definition.id)
        else:
            errors.append(FieldError(definition.id, message))

    section_rule = SECTION_RULES.get(section.id)
    if section_rule is not None:
        errors.extend(section_rule(values, committed, frozenset(passed), reference_day))

    if errors:
        order = {field_id: index for index, field_id in enumerate(section.field_names)}
        ordered = sorted(errors, key=lambda error: order.get(error.field_id, len(order)))
        logger.info(
            "Section %s failed validation on fields: %s",
            section.id,
            ", ".join(dict.fromkeys(error.field_id for error in ordered)),
        )
        return SectionValidationResult(section_id=section.id, errors=tuple(ordered))

    data: SectionData = {
        definition.id: _normalize_value(definition, values.get(definition.id), values)
        for definition in definitions
    }
    return SectionValidationResult(section_id=section.id, data=data)


__all__ = [
    "FIELD_FORMAT_CHECKS",
    "FieldError",
    "GESTATIONAL_WEIGHT_RANGES",
    "MAX_GUARDIAN_AGE_GAP_YEARS",
    "MIN_GUARDIAN_AGE_GAP_YEARS",
    "MIN_GUARDIAN_AGE_YEARS",
    "SECTION_RULES",
    "SectionValidationResult",
    "TRACHEOSTOMY_MIN_AGE_MONTHS",
    "compatible_gestational_buckets",
    "gestational_weight_range",
    "validate_section",
]
