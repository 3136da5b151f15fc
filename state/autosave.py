"""Debounced draft autosave for the intake wizard."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Callable, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

import config
from config import DraftScope, IntakeSettings
from state.draft_backends import DraftBackend, build_draft_backend
from utils.debounce import Debouncer, TimerFactory
from wizard.sections import FIRST_SECTION_ID, LAST_SECTION_ID
from wizard.types import FieldValue, SectionData

logger = logging.getLogger(__name__)

DRAFT_SCHEMA_VERSION: Final[int] = 1

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DraftRecord(BaseModel):
    """Serialized snapshot of in-progress answers."""

    model_config = ConfigDict(extra="ignore")

    version: int = DRAFT_SCHEMA_VERSION
    section_id: int = Field(ge=FIRST_SECTION_ID, le=LAST_SECTION_ID)
    captured_fields: dict[str, FieldValue] = Field(default_factory=dict)
    saved_at: datetime
    committed_sections: dict[int, dict[str, FieldValue]] = Field(default_factory=dict)


def _copy_values(values: Mapping[str, FieldValue]) -> SectionData:
    return {key: list(value) if isinstance(value, (list, tuple)) else value for key, value in values.items()}


class DraftStore:
    """Write at most one draft per ``key``, coalescing rapid saves.

    ``save`` snapshots the values immediately and defers the write by the
    debounce delay. Backend failures never reach the caller: writes log a
    warning and loads fall back to "no draft".
    """

    def __init__(
        self,
        backend: DraftBackend,
        *,
        key: str = config.DEFAULT_DRAFT_KEY,
        debounce_seconds: float = 1.0,
        max_age: timedelta | None = timedelta(hours=168),
        scope: DraftScope = DraftScope.ACTIVE_SECTION,
        clock: Clock | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.backend = backend
        self.key = key
        self.max_age = max_age
        self.scope = scope
        self._clock = clock or _utcnow
        self._debouncer = Debouncer(debounce_seconds, timer_factory=timer_factory)
        # Serializes backend writes against deletes. ``_epoch`` moves on every
        # clear so a write scheduled before it can never land after it.
        self._io_lock = RLock()
        self._epoch = 0

    @classmethod
    def from_settings(
        cls,
        settings: IntakeSettings | None = None,
        *,
        backend: DraftBackend | None = None,
        clock: Clock | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> "DraftStore":
        resolved = settings or config.SETTINGS
        return cls(
            backend or build_draft_backend(resolved),
            key=resolved.draft_key,
            debounce_seconds=resolved.draft_debounce_seconds,
            max_age=timedelta(hours=resolved.draft_max_age_hours),
            scope=resolved.draft_scope,
            clock=clock,
            timer_factory=timer_factory,
        )

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def build_record(
        self,
        active_section_id: int,
        values: Mapping[str, FieldValue],
        committed_sections: Mapping[int, Mapping[str, FieldValue]] | None = None,
    ) -> DraftRecord:
        committed: dict[int, dict[str, FieldValue]] = {}
        if self.scope is DraftScope.FULL and committed_sections:
            committed = {section_id: _copy_values(data) for section_id, data in committed_sections.items()}
        return DraftRecord(
            section_id=active_section_id,
            captured_fields=_copy_values(values),
            saved_at=self._clock(),
            committed_sections=committed,
        )

    def save(
        self,
        active_section_id: int,
        values: Mapping[str, FieldValue],
        committed_sections: Mapping[int, Mapping[str, FieldValue]] | None = None,
    ) -> None:
        """Schedule a debounced overwrite of the draft."""

        record = self.build_record(active_section_id, values, committed_sections)
        epoch = self._epoch
        self._debouncer.schedule(lambda: self._write(record, epoch))

    def save_now(
        self,
        active_section_id: int,
        values: Mapping[str, FieldValue],
        committed_sections: Mapping[int, Mapping[str, FieldValue]] | None = None,
    ) -> None:
        self._debouncer.cancel()
        self._write(self.build_record(active_section_id, values, committed_sections), self._epoch)

    def flush(self) -> bool:
        """Write a pending draft right away."""

        return self._debouncer.flush()

    def cancel_pending(self) -> bool:
        """Drop a scheduled write without performing it."""

        cancelled = self._debouncer.cancel()
        if cancelled:
            logger.debug("Pending draft write for %s cancelled", self.key)
        return cancelled

    def _write(self, record: DraftRecord, epoch: int) -> None:
        with self._io_lock:
            if epoch != self._epoch:
                logger.debug("Skipping draft %s snapshot taken before it was cleared", self.key)
                return
            try:
                self.backend.write(self.key, record.model_dump_json())
            except Exception:  # noqa: BLE001 - draft writes are best effort
                logger.warning("Failed to write draft %s", self.key, exc_info=True)
                return
        logger.debug("Draft %s written for section %s", self.key, record.section_id)

    def load(self) -> DraftRecord | None:
        """Return the stored draft, or ``None`` when absent, stale or unreadable."""

        try:
            blob = self.backend.read(self.key)
        except Exception:  # noqa: BLE001 - a broken backend means "no draft"
            logger.warning("Failed to read draft %s", self.key, exc_info=True)
            return None
        if not blob:
            return None
        try:
            record = DraftRecord.model_validate_json(blob)
        except ValidationError:
            logger.warning("Discarding unreadable draft %s", self.key)
            self._discard()
            return None
        if record.version != DRAFT_SCHEMA_VERSION:
            logger.info("Discarding draft %s with schema version %s", self.key, record.version)
            self._discard()
            return None
        if self._is_stale(record):
            logger.info("Discarding stale draft %s saved at %s", self.key, record.saved_at.isoformat())
            self._discard()
            return None
        return record

    def _is_stale(self, record: DraftRecord) -> bool:
        if self.max_age is None:
            return False
        saved_at = record.saved_at
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        return self._clock() - saved_at > self.max_age

    def clear(self) -> None:
        """Cancel pending writes and delete the stored draft.

        A write already in progress finishes first and is then deleted; a
        snapshot taken earlier but not yet written is dropped.
        """

        self._debouncer.cancel()
        with self._io_lock:
            self._epoch += 1
            self._discard()

    def _discard(self) -> None:
        with self._io_lock:
            try:
                self.backend.delete(self.key)
            except Exception:  # noqa: BLE001 - deletes are best effort like writes
                logger.warning("Failed to delete draft %s", self.key, exc_info=True)


__all__ = [
    "DRAFT_SCHEMA_VERSION",
    "DraftRecord",
    "DraftStore",
]
