"""Record-store boundary for finalized intake records."""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from threading import Lock
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import DuplicateRecordError, RecordSubmissionError
from core.validators import is_ascii_digits
from wizard.catalog import FIELD_CATALOG, FieldType
from wizard.date_utils import to_iso_date
from wizard.missing_fields import is_blank
from wizard.types import LocalizedText

logger = logging.getLogger(__name__)

_NON_DIGITS_RE = re.compile(r"\D", re.ASCII)

INVALID_DATA_MESSAGE: LocalizedText = (
    "Dados inválidos fornecidos. Verifique se todos os campos estão preenchidos corretamente",
    "Invalid data provided. Check that every field is filled in correctly",
)
MISSING_COLUMNS_MESSAGE: LocalizedText = (
    "Campos obrigatórios não preenchidos",
    "Required fields are missing",
)


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome reported by a record store."""

    record_id: str | None = None
    error: str | None = None
    duplicate: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.record_id is not None


class RecordStore(Protocol):
    """External collaborator that persists a finalized record."""

    def submit(self, record: Mapping[str, Any]) -> SubmissionResult: ...


def _digits(value: object) -> str:
    return _NON_DIGITS_RE.sub("", value) if isinstance(value, str) else ""


class IntakeRecord(BaseModel):
    """Storage shape of a finalized intake.

    Columns without special handling pass through as extras; the catalog
    transform in :func:`to_storage_record` has already trimmed them.
    """

    model_config = ConfigDict(extra="allow")

    nome_completo: str = Field(min_length=2)
    data_nascimento: date
    numero_sus: str = Field(pattern=r"^[0-9]{15}$")
    peso_nascer: int = Field(gt=0)
    data_nascimento_responsavel: date
    cep: str = Field(pattern=r"^[0-9]{8}$")
    observacoes_adicionais: str | None = None

    @field_validator("data_nascimento", "data_nascimento_responsavel", mode="before")
    @classmethod
    def _parse_display_dates(cls, value: object) -> object:
        return to_iso_date(value) if isinstance(value, str) else value

    @field_validator("numero_sus", "cep", mode="before")
    @classmethod
    def _strip_separators(cls, value: object) -> object:
        return _digits(value) if isinstance(value, str) else value

    @field_validator("peso_nascer", mode="before")
    @classmethod
    def _parse_weight(cls, value: object) -> object:
        if isinstance(value, str) and is_ascii_digits(value.strip()):
            return int(value.strip())
        return value


def _storage_value(field_type: FieldType, value: object) -> object:
    if field_type is FieldType.MULTI_ENUM:
        return list(value) if isinstance(value, (list, tuple)) else []
    if is_blank(value):
        return None
    if isinstance(value, str):
        return value.strip()
    return value


def to_storage_record(merged: Mapping[str, Any]) -> dict[str, Any]:
    """Transform the merged wizard answers into the stored column layout.

    Raises:
        RecordSubmissionError: If the merged answers cannot form a valid row.
    """

    columns = {field.id: _storage_value(field.type, merged.get(field.id)) for field in FIELD_CATALOG}
    try:
        record = IntakeRecord.model_validate(columns)
    except ValidationError as exc:
        failing = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
        logger.error("Merged record failed storage validation on %s", ", ".join(failing))
        raise RecordSubmissionError(
            f"storage validation failed: {', '.join(failing)}",
            user_message=INVALID_DATA_MESSAGE,
        ) from exc
    payload = record.model_dump(mode="json")
    payload["name"] = payload["nome_completo"]
    payload["birth_date"] = payload["data_nascimento"]
    payload["observations"] = payload["observacoes_adicionais"]
    return payload


def translate_store_error(reason: str, *, duplicate: bool = False) -> RecordSubmissionError:
    """Map an opaque store failure onto the error the caller surfaces."""

    if duplicate or "duplicate key value" in reason:
        return DuplicateRecordError(reason)
    if "violates check constraint" in reason:
        return RecordSubmissionError(reason, user_message=INVALID_DATA_MESSAGE)
    if "null value in column" in reason:
        return RecordSubmissionError(reason, user_message=MISSING_COLUMNS_MESSAGE)
    return RecordSubmissionError(reason)


def submit_record(store: RecordStore, merged: Mapping[str, Any]) -> str:
    """Persist ``merged`` through ``store`` and return the new record id.

    Raises:
        RecordSubmissionError: If the store fails or rejects the record.
        DuplicateRecordError: If the store reports the health id already exists.
    """

    payload = to_storage_record(merged)
    try:
        result = store.submit(payload)
    except RecordSubmissionError:
        raise
    except Exception as exc:
        logger.error("Record store raised during submission", exc_info=True)
        raise translate_store_error(str(exc)) from exc
    if not result.ok:
        reason = result.error or "record store returned no identifier"
        logger.error("Record store rejected submission: %s", reason)
        raise translate_store_error(reason, duplicate=result.duplicate)
    logger.info("Intake record %s stored", result.record_id)
    return str(result.record_id)


class InMemoryRecordStore:
    """Process-local store that enforces one record per health id."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._lock = Lock()

    @property
    def records(self) -> dict[str, dict[str, Any]]:
        return dict(self._records)

    def submit(self, record: Mapping[str, Any]) -> SubmissionResult:
        health_id = record.get("numero_sus")
        with self._lock:
            if any(existing.get("numero_sus") == health_id for existing in self._records.values()):
                return SubmissionResult(
                    error='duplicate key value violates unique constraint "children_numero_sus_key"',
                    duplicate=True,
                )
            record_id = uuid.uuid4().hex
            self._records[record_id] = dict(record)
        return SubmissionResult(record_id=record_id)


__all__ = [
    "InMemoryRecordStore",
    "IntakeRecord",
    "RecordStore",
    "SubmissionResult",
    "submit_record",
    "to_storage_record",
    "translate_store_error",
]
