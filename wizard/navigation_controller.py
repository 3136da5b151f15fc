"""State machine driving the intake wizard across its eight sections."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, MutableMapping
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Callable, cast

import streamlit as st

from constants.keys import StateKeys
from core.errors import WizardStateError
from services.record_store import RecordStore, submit_record
from state.autosave import DraftRecord, DraftStore
from utils.logging_context import configure_logging, log_context, set_session_id
from wizard.catalog import get_field
from wizard.conditional_rules import on_field_changed
from wizard.sections import FIRST_SECTION_ID, LAST_SECTION_ID, get_section
from wizard.step_status import SectionCompletion, compute_section_completion, overall_progress
from wizard.types import FieldValue, SectionData
from wizard.validation import FieldError, SectionValidationResult, validate_section

logger = logging.getLogger(__name__)

TodayProvider = Callable[[], date]


class WizardStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"


@dataclass
class WizardState:
    """Mutable progress of a single wizard instance.

    ``buffer`` holds only keys the user has touched in the active section;
    ``committed_sections`` is the source of truth for sections already passed.
    """

    active_section_id: int = FIRST_SECTION_ID
    committed_sections: dict[int, SectionData] = field(default_factory=dict)
    completed_section_ids: set[int] = field(default_factory=set)
    buffer: dict[str, FieldValue] = field(default_factory=dict)
    status: WizardStatus = WizardStatus.IN_PROGRESS


@dataclass(frozen=True)
class AdvanceResult:
    """Outcome of :meth:`WizardController.advance` and :meth:`WizardController.finalize`."""

    section_id: int
    errors: tuple[FieldError, ...] = ()
    record_id: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def submitted(self) -> bool:
        return self.record_id is not None

    @property
    def first_error_field(self) -> str | None:
        return self.errors[0].field_id if self.errors else None


def _copy_section(data: Mapping[str, FieldValue]) -> dict[str, FieldValue]:
    return {key: list(value) if isinstance(value, list) else value for key, value in data.items()}


class WizardController:
    """Drive advance/retreat/finalize transitions over sections ``1..8``."""

    def __init__(
        self,
        record_store: RecordStore,
        draft_store: DraftStore | None = None,
        *,
        today: TodayProvider | None = None,
        session_id: str | None = None,
    ) -> None:
        self._record_store = record_store
        self._draft_store = draft_store
        self._today = today or date.today
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._state = WizardState()
        self._started = False

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def active_section_id(self) -> int:
        return self._state.active_section_id

    @property
    def status(self) -> WizardStatus:
        return self._state.status

    @property
    def values(self) -> Mapping[str, FieldValue]:
        """Read-only view of the active field buffer."""

        return MappingProxyType(self._state.buffer)

    @property
    def committed_sections(self) -> Mapping[int, SectionData]:
        return MappingProxyType(self._state.committed_sections)

    def _log_scope(self) -> AbstractContextManager[None]:
        return log_context(session_id=self.session_id, section=self._state.active_section_id)

    def _ensure_in_progress(self) -> None:
        if self._state.status is not WizardStatus.IN_PROGRESS:
            raise WizardStateError(f"Wizard is {self._state.status.value}; no further transitions allowed")

    def start(self) -> DraftRecord | None:
        """Restore a saved draft once, on mount. Returns the restored draft, if any."""

        if self._started:
            return None
        self._started = True
        if self._draft_store is None:
            return None
        with self._log_scope():
            draft = self._draft_store.load()
            if draft is None:
                return None
            self._restore(draft)
            logger.info(
                "Draft restored (%d fields, resuming at section %s)",
                len(draft.captured_fields),
                self._state.active_section_id,
            )
        return draft

    def _restore(self, draft: DraftRecord) -> None:
        state = self._state
        state.buffer = _copy_section(draft.captured_fields)
        if not draft.committed_sections:
            state.active_section_id = FIRST_SECTION_ID
            return
        state.committed_sections = {
            section_id: _copy_section(data) for section_id, data in draft.committed_sections.items()
        }
        state.completed_section_ids = set(state.committed_sections)
        state.active_section_id = draft.section_id

    def set_value(self, field_id: str, value: FieldValue) -> tuple[str, ...]:
        """Store ``value`` in the active buffer and reset stale dependents.

        Returns:
            The dependent field ids that were emptied by this change.

        Raises:
            KeyError: If ``field_id`` is not part of the catalog.
            WizardStateError: If the field belongs to another section or the
                wizard is no longer in progress.
        """

        self._ensure_in_progress()
        definition = get_field(field_id)
        state = self._state
        if definition.section_id != state.active_section_id:
            raise WizardStateError(
                f"Field {field_id!r} belongs to section {definition.section_id}, "
                f"not the active section {state.active_section_id}"
            )
        to_clear = on_field_changed(field_id, value, state.buffer)
        state.buffer[field_id] = list(value) if isinstance(value, (list, tuple)) else value
        cleared: list[str] = []
        for dependent in to_clear:
            if dependent in state.buffer:
                state.buffer[dependent] = get_field(dependent).empty_value
                cleared.append(dependent)
        self._schedule_draft()
        return tuple(cleared)

    def advance(self) -> AdvanceResult:
        """Validate and commit the active section, then move forward.

        On section 8 this finalizes the wizard instead. A failed advance
        never touches ``committed_sections``: a revisited section keeps the
        data from its last successful commit while the edited, invalid
        values stay in the buffer only.

        Raises:
            RecordSubmissionError: If finalizing and the record store fails.
            WizardStateError: If the wizard is no longer in progress.
        """

        self._ensure_in_progress()
        state = self._state
        if state.active_section_id == LAST_SECTION_ID:
            return self.finalize()
        with self._log_scope():
            result = self._validate_active()
            if not result.ok:
                return AdvanceResult(section_id=state.active_section_id, errors=result.errors)
            section_id = state.active_section_id
            state.committed_sections[section_id] = cast(SectionData, result.data)
            state.completed_section_ids.add(section_id)
            state.active_section_id = section_id + 1
            state.buffer = _copy_section(state.committed_sections.get(state.active_section_id, {}))
            logger.info("Section %s committed", section_id)
        self._schedule_draft()
        return AdvanceResult(section_id=section_id)

    def retreat(self) -> bool:
        """Move back one section without committing. Returns ``False`` on section 1."""

        self._ensure_in_progress()
        state = self._state
        if state.active_section_id == FIRST_SECTION_ID:
            return False
        state.active_section_id -= 1
        state.buffer = _copy_section(state.committed_sections.get(state.active_section_id, {}))
        with self._log_scope():
            logger.debug("Moved back to section %s", state.active_section_id)
        self._schedule_draft()
        return True

    def finalize(self) -> AdvanceResult:
        """Validate section 8, submit the merged record and clear the draft.

        Raises:
            WizardStateError: If not on section 8, already finished, or an
                earlier section was never committed.
            RecordSubmissionError: If the record store fails; the wizard stays
                on section 8 so the caller can retry.
        """

        self._ensure_in_progress()
        state = self._state
        if state.active_section_id != LAST_SECTION_ID:
            raise WizardStateError(f"finalize() requires section {LAST_SECTION_ID}, active is {state.active_section_id}")
        with self._log_scope():
            result = self._validate_active()
            if not result.ok:
                return AdvanceResult(section_id=LAST_SECTION_ID, errors=result.errors)
            missing = [
                section_id
                for section_id in range(FIRST_SECTION_ID, LAST_SECTION_ID)
                if section_id not in state.committed_sections
            ]
            if missing:
                raise WizardStateError(f"Sections {missing} were never committed")
            merged: dict[str, Any] = {}
            for section_id in range(FIRST_SECTION_ID, LAST_SECTION_ID):
                merged.update(state.committed_sections[section_id])
            final_data = cast(SectionData, result.data)
            merged.update(final_data)
            record_id = submit_record(self._record_store, merged)
            state.committed_sections[LAST_SECTION_ID] = final_data
            state.completed_section_ids.add(LAST_SECTION_ID)
            state.buffer = {}
            state.status = WizardStatus.SUBMITTED
            if self._draft_store is not None:
                self._draft_store.clear()
            logger.info("Wizard submitted as record %s", record_id)
        return AdvanceResult(section_id=LAST_SECTION_ID, record_id=record_id)

    def abandon(self, *, discard_draft: bool = False) -> None:
        """Stop the wizard, dropping any pending draft write.

        The stored draft is destroyed only with ``discard_draft=True``. By
        default it is kept so an interrupted caregiver can resume with
        :meth:`start`; pass ``discard_draft=True`` when the user explicitly
        gives up on the registration.
        """

        if self._state.status is not WizardStatus.IN_PROGRESS:
            return
        if self._draft_store is not None:
            if discard_draft:
                self._draft_store.clear()
            else:
                self._draft_store.cancel_pending()
        self._state.status = WizardStatus.ABANDONED
        with self._log_scope():
            logger.info("Wizard abandoned")

    def completion(self) -> SectionCompletion:
        """Live required/filled counters for the active section."""

        return compute_section_completion(self._state.active_section_id, self._state.buffer)

    def overall_progress(self) -> float:
        return overall_progress(self._state.completed_section_ids)

    def section_title(self, lang: str) -> str:
        return get_section(self._state.active_section_id).title_for(lang)

    def _validate_active(self) -> SectionValidationResult:
        state = self._state
        return validate_section(
            state.active_section_id,
            state.buffer,
            MappingProxyType(state.committed_sections),
            today=self._today(),
        )

    def _schedule_draft(self) -> None:
        if self._draft_store is None or self._state.status is not WizardStatus.IN_PROGRESS:
            return
        self._draft_store.save(
            self._state.active_section_id,
            self._state.buffer,
            self._state.committed_sections,
        )


def get_session_controller(
    record_store: RecordStore,
    *,
    draft_store: DraftStore | None = None,
    session_state: MutableMapping[str, object] | None = None,
) -> WizardController:
    """Return the controller bound to the current Streamlit session, creating it once."""

    state = cast(MutableMapping[str, object], session_state if session_state is not None else st.session_state)
    existing = state.get(StateKeys.WIZARD)
    if isinstance(existing, WizardController) and existing.status is WizardStatus.IN_PROGRESS:
        return existing
    session_id = state.get(StateKeys.SESSION_ID)
    if not isinstance(session_id, str):
        session_id = uuid.uuid4().hex[:12]
        state[StateKeys.SESSION_ID] = session_id
    configure_logging()
    set_session_id(session_id)
    controller = WizardController(
        record_store,
        draft_store or DraftStore.from_settings(),
        session_id=session_id,
    )
    state[StateKeys.DRAFT_RESTORED] = controller.start() is not None
    state[StateKeys.WIZARD] = controller
    return controller


__all__ = [
    "AdvanceResult",
    "WizardController",
    "WizardState",
    "WizardStatus",
    "get_session_controller",
]
