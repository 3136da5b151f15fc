"""Static catalog of every intake field, its section and its answer type."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Mapping

from wizard.types import FieldValue, LocalizedText


class FieldType(StrEnum):
    """Primitive answer types supported by the wizard."""

    TEXT = "text"
    DATE = "date"
    ENUM = "enum"
    MULTI_ENUM = "multiEnum"


@dataclass(frozen=True)
class FieldDefinition:
    """Immutable description of a single wizard field."""

    id: str
    section_id: int
    type: FieldType
    statically_required: bool
    label: LocalizedText
    options: tuple[str, ...] = ()

    @property
    def empty_value(self) -> FieldValue:
        """Return the value a cleared field is reset to."""

        return [] if self.type is FieldType.MULTI_ENUM else ""


YES_NO: Final[tuple[str, ...]] = ("sim", "nao")
YES_NO_UNKNOWN: Final[tuple[str, ...]] = ("sim", "nao", "nao_sei")

GESTATIONAL_BUCKETS: Final[tuple[str, ...]] = ("menos_28", "28_36", "37_41", "mais_41")

TRACHEOSTOMY_AGE_OPTIONS: Final[tuple[str, ...]] = (
    "nascimento",
    "primeiro_mes",
    "primeiros_6_meses",
    "primeiro_ano",
    "apos_primeiro_ano",
    "nao_sei",
)


def _text(field_id: str, section_id: int, label: LocalizedText, *, required: bool = True) -> FieldDefinition:
    return FieldDefinition(field_id, section_id, FieldType.TEXT, required, label)


def _date(field_id: str, section_id: int, label: LocalizedText) -> FieldDefinition:
    return FieldDefinition(field_id, section_id, FieldType.DATE, True, label)


def _enum(
    field_id: str,
    section_id: int,
    label: LocalizedText,
    options: tuple[str, ...],
    *,
    required: bool = True,
) -> FieldDefinition:
    return FieldDefinition(field_id, section_id, FieldType.ENUM, required, label, options)


def _multi(
    field_id: str,
    section_id: int,
    label: LocalizedText,
    options: tuple[str, ...],
    *,
    required: bool = True,
) -> FieldDefinition:
    return FieldDefinition(field_id, section_id, FieldType.MULTI_ENUM, required, label, options)


FIELD_CATALOG: Final[tuple[FieldDefinition, ...]] = (
    # Section 1: child
    _text("nome_completo", 1, ("Nome completo da criança", "Child's full name")),
    _date("data_nascimento", 1, ("Data de nascimento", "Date of birth")),
    _enum("genero", 1, ("Gênero", "Gender"), ("masculino", "feminino")),
    _text("numero_sus", 1, ("Número do Cartão SUS", "SUS card number")),
    _text("estado_nascimento", 1, ("Estado de nascimento", "State of birth")),
    _text("cidade_nascimento", 1, ("Cidade de nascimento", "City of birth")),
    _text("peso_nascer", 1, ("Peso ao nascer (gramas)", "Birth weight (grams)")),
    _enum(
        "semanas_prematuridade",
        1,
        ("Semanas de gestação ao nascer", "Gestational weeks at birth"),
        GESTATIONAL_BUCKETS,
    ),
    _enum("complicacoes_parto", 1, ("Complicações no parto", "Birth complications"), YES_NO),
    _text(
        "complicacoes_detalhes",
        1,
        ("Explique as complicações", "Describe the complications"),
        required=False,
    ),
    # Section 2: parents or guardians
    _text("nome_pai", 2, ("Nome do pai", "Father's name"), required=False),
    _text("nome_mae", 2, ("Nome da mãe", "Mother's name"), required=False),
    _text("nome_responsavel", 2, ("Nome do responsável legal", "Legal guardian's name"), required=False),
    _enum(
        "parentesco",
        2,
        ("Parentesco com a criança", "Relationship to the child"),
        ("pai", "mae", "avo", "tio", "outro", "cuidador"),
    ),
    _text("outro_parentesco", 2, ("Especifique o parentesco", "Specify the relationship"), required=False),
    _date(
        "data_nascimento_responsavel",
        2,
        ("Data de nascimento do responsável", "Guardian's date of birth"),
    ),
    _text("telefone_contato", 2, ("Telefone para contato", "Contact phone")),
    _text("cep", 2, ("CEP", "Postal code")),
    _text("rua", 2, ("Rua", "Street")),
    _text("numero", 2, ("Número", "Number")),
    _text("bairro", 2, ("Bairro", "District")),
    _text("cidade_endereco", 2, ("Cidade", "City")),
    _text("estado_endereco", 2, ("Estado", "State")),
    _enum(
        "nivel_estudo",
        2,
        ("Nível de estudo", "Education level"),
        (
            "nao_estudei",
            "fundamental_incompleto",
            "fundamental_completo",
            "medio_incompleto",
            "medio_completo",
            "superior_incompleto",
            "superior_completo",
            "pos_graduacao",
        ),
    ),
    # Section 3: pregnancy and birth
    _enum("gravidez_planejada", 3, ("A gravidez foi planejada?", "Was the pregnancy planned?"), YES_NO_UNKNOWN),
    _enum("acompanhamento_pre_natal", 3, ("Fez pré-natal?", "Prenatal care?"), YES_NO),
    _enum(
        "quantidade_consultas",
        3,
        ("Quantidade de consultas", "Number of appointments"),
        ("nenhuma", "menos_5", "entre_5_7", "8_ou_mais"),
        required=False,
    ),
    _multi(
        "problemas_gravidez",
        3,
        ("Problemas durante a gravidez", "Problems during pregnancy"),
        ("pressao_alta", "diabetes", "infeccoes", "substancias", "outros", "nenhum"),
        required=False,
    ),
    _text(
        "outros_problemas_gravidez",
        3,
        ("Especifique os outros problemas", "Specify the other problems"),
        required=False,
    ),
    _enum("tipo_parto", 3, ("Tipo de parto", "Type of delivery"), ("normal", "cesarea", "forceps", "nao_sei")),
    _enum(
        "ajuda_especial_respiracao",
        3,
        ("Precisou de ajuda para respirar ao nascer?", "Needed breathing support at birth?"),
        YES_NO_UNKNOWN,
    ),
    _multi(
        "tipos_ajuda_sala_parto",
        3,
        ("Tipos de ajuda na sala de parto", "Support received in the delivery room"),
        ("oxigenio", "mascara_balao", "intubacao", "massagem_cardiaca", "medicamentos", "nao_sei_detalhes"),
        required=False,
    ),
    # Section 4: clinical condition and tracheostomy
    _enum(
        "idade_traqueostomia",
        4,
        ("Idade ao fazer a traqueostomia", "Age at tracheostomy"),
        TRACHEOSTOMY_AGE_OPTIONS,
    ),
    _multi(
        "motivos_traqueostomia",
        4,
        ("Motivos da traqueostomia", "Reasons for the tracheostomy"),
        (
            "problema_nascimento",
            "malformacao_vias_aereas",
            "obstrucao_vias_aereas",
            "ventilacao_prolongada",
            "paralisia_cordas_vocais",
            "sindrome_genetica",
            "trauma_acidente",
            "infeccao_grave",
            "outro_motivo",
            "nao_sei_motivo",
        ),
    ),
    _text(
        "outro_motivo_traqueostomia",
        4,
        ("Especifique o outro motivo", "Specify the other reason"),
        required=False,
    ),
    _enum(
        "tipo_traqueostomia",
        4,
        ("Tipo de traqueostomia", "Type of tracheostomy"),
        ("permanente", "temporaria", "nao_sei_tipo"),
    ),
    _multi(
        "equipamentos_medicos",
        4,
        ("Equipamentos médicos em casa", "Medical equipment at home"),
        (
            "canula_traqueostomia",
            "ventilador_mecanico",
            "concentrador_oxigenio",
            "cilindro_oxigenio",
            "aspirador_secrecoes",
            "monitor_saturacao",
            "umidificador",
            "gerador_energia",
            "cama_hospitalar",
            "cadeira_rodas",
            "outros_equipamentos",
            "nenhum_equipamento",
        ),
    ),
    _text(
        "outros_equipamentos",
        4,
        ("Especifique os outros equipamentos", "Specify the other equipment"),
        required=False,
    ),
    # Section 5: medical follow-up and barriers
    _enum(
        "internacoes_pos_traqueostomia",
        5,
        ("Internações após a traqueostomia", "Hospital stays after the tracheostomy"),
        ("nenhuma", "1_a_5", "mais_de_5", "nao_sei_internacoes"),
    ),
    _multi(
        "acompanhamento_medico",
        5,
        ("Acompanhamento médico", "Medical follow-up"),
        (
            "pediatra",
            "otorrinolaringologista",
            "pneumologista",
            "cirurgiao_toracico",
            "cirurgiao_pediatrico",
            "cirurgiao_geral",
            "neurologista",
            "fonoaudiologo",
            "fisioterapeuta",
            "nutricionista",
            "outro_especialista",
            "nao_tem_acompanhamento",
        ),
    ),
    _text("outro_especialista", 5, ("Qual outro especialista?", "Which other specialist?"), required=False),
    _multi(
        "dificuldades_atendimento",
        5,
        ("Dificuldades para o atendimento", "Barriers to care"),
        (
            "falta_transporte",
            "muito_caro",
            "demora_consulta",
            "especialista_longe",
            "falta_informacao",
            "outra_dificuldade",
            "nao_tem_dificuldades",
        ),
    ),
    _text("outra_dificuldade", 5, ("Qual outra dificuldade?", "Which other barrier?"), required=False),
    # Section 6: daily care at home
    _enum(
        "principal_cuidador",
        6,
        ("Principal cuidador", "Main caregiver"),
        ("pai", "mae", "outro_familiar", "cuidador_profissional"),
    ),
    _enum(
        "horas_cuidados_diarios",
        6,
        ("Horas de cuidado por dia", "Hours of care per day"),
        ("menos_1_hora", "entre_1_3_horas", "mais_3_horas"),
    ),
    _enum(
        "treinamento_hospital",
        6,
        ("Treinamento recebido no hospital", "Training received at the hospital"),
        ("sim_seguro", "sim_com_duvidas", "nao_suficiente", "nao_recebi"),
    ),
    # Section 7: resources and social support
    _enum("beneficio_financeiro", 7, ("Recebe benefício financeiro?", "Receives financial benefit?"), YES_NO),
    _text("qual_beneficio", 7, ("Qual benefício?", "Which benefit?"), required=False),
    _enum(
        "acesso_materiais",
        7,
        ("Acesso aos materiais", "Access to supplies"),
        ("sempre_conseguimos", "as_vezes", "muita_dificuldade", "nao_conseguimos"),
    ),
    # Section 8: additional notes
    _text(
        "observacoes_adicionais",
        8,
        ("Observações adicionais", "Additional notes"),
        required=False,
    ),
)

FIELDS_BY_ID: Final[Mapping[str, FieldDefinition]] = {field.id: field for field in FIELD_CATALOG}


def get_field(field_id: str) -> FieldDefinition:
    """Return the definition for ``field_id``.

    Raises:
        KeyError: If the field is not part of the catalog.
    """

    try:
        return FIELDS_BY_ID[field_id]
    except KeyError:
        raise KeyError(f"Unknown intake field: {field_id}") from None


def fields_for_section(section_id: int) -> tuple[FieldDefinition, ...]:
    """Return the catalog entries for ``section_id`` in display order."""

    return tuple(field for field in FIELD_CATALOG if field.section_id == section_id)


__all__ = [
    "FIELD_CATALOG",
    "FIELDS_BY_ID",
    "FieldDefinition",
    "FieldType",
    "GESTATIONAL_BUCKETS",
    "TRACHEOSTOMY_AGE_OPTIONS",
    "YES_NO",
    "YES_NO_UNKNOWN",
    "fields_for_section",
    "get_field",
]
