from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any

import pytest

from config import DraftScope
from core.errors import DuplicateRecordError, RecordSubmissionError, WizardStateError
from services.record_store import InMemoryRecordStore, SubmissionResult
from state.autosave import DraftStore
from state.draft_backends import InMemoryDraftBackend
from wizard.navigation_controller import WizardController, WizardStatus

TODAY = date(2025, 6, 1)
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FlakyStore:
    """Fails the first ``failures`` submissions, then accepts."""

    def __init__(self, failures: int = 1, reason: str = "connection reset") -> None:
        self.failures = failures
        self.reason = reason
        self.submitted: list[dict[str, Any]] = []

    def submit(self, record: Mapping[str, Any]) -> SubmissionResult:
        if self.failures > 0:
            self.failures -= 1
            return SubmissionResult(error=self.reason)
        self.submitted.append(dict(record))
        return SubmissionResult(record_id="rec-1")


def _draft_store(fake_timers, backend=None, scope=DraftScope.ACTIVE_SECTION) -> DraftStore:
    return DraftStore(
        backend or InMemoryDraftBackend(),
        key="test_draft",
        debounce_seconds=1.0,
        scope=scope,
        clock=lambda: NOW,
        timer_factory=fake_timers,
    )


def _controller(store=None, draft_store=None) -> WizardController:
    return WizardController(
        store or InMemoryRecordStore(),
        draft_store,
        today=lambda: TODAY,
        session_id="test-session",
    )


def _fill(controller: WizardController, values: Mapping[str, object]) -> None:
    for field_id, value in values.items():
        controller.set_value(field_id, value)  # type: ignore[arg-type]


def _advance_through(controller: WizardController, sections: Mapping[int, Mapping[str, object]], last: int) -> None:
    for section_id in range(controller.active_section_id, last + 1):
        _fill(controller, sections[section_id])
        result = controller.advance()
        assert result.ok, result.errors


def test_initial_state() -> None:
    controller = _controller()
    assert controller.active_section_id == 1
    assert controller.status is WizardStatus.IN_PROGRESS
    assert dict(controller.values) == {}
    assert dict(controller.committed_sections) == {}


def test_advance_failure_is_idempotent(valid_sections) -> None:
    controller = _controller()
    values = dict(valid_sections[1], numero_sus="123456789012345")
    _fill(controller, values)

    first = controller.advance()
    second = controller.advance()

    assert not first.ok
    assert first.errors == second.errors
    assert first.first_error_field == "numero_sus"
    assert controller.active_section_id == 1
    assert dict(controller.committed_sections) == {}
    assert controller.values["numero_sus"] == "123456789012345"


def test_advance_commits_and_clears_buffer(valid_sections) -> None:
    controller = _controller()
    _fill(controller, valid_sections[1])

    result = controller.advance()

    assert result.ok
    assert result.section_id == 1
    assert controller.active_section_id == 2
    assert dict(controller.values) == {}
    assert controller.committed_sections[1]["nome_completo"] == "Ana Souza"
    assert controller.state.completed_section_ids == {1}
    assert controller.overall_progress() == pytest.approx(1 / 8)


def test_retreat_reloads_committed_data(valid_sections) -> None:
    controller = _controller()
    _advance_through(controller, valid_sections, 1)
    committed = dict(controller.committed_sections[1])

    assert controller.retreat() is True
    assert controller.active_section_id == 1
    assert dict(controller.values) == committed

    assert controller.advance().ok
    assert controller.committed_sections[1] == committed


def test_retreat_on_first_section_is_noop() -> None:
    controller = _controller()
    assert controller.retreat() is False
    assert controller.active_section_id == 1


def test_revisited_section_prepopulates_buffer(valid_sections) -> None:
    controller = _controller()
    _advance_through(controller, valid_sections, 2)
    controller.retreat()
    controller.retreat()
    controller.advance()

    assert controller.active_section_id == 2
    assert controller.values["nome_mae"] == "Maria Souza"


def test_trigger_change_clears_dependent_immediately(valid_sections) -> None:
    controller = _controller()
    controller.set_value("complicacoes_parto", "sim")
    controller.set_value("complicacoes_detalhes", "Hipóxia")

    cleared = controller.set_value("complicacoes_parto", "nao")

    assert cleared == ("complicacoes_detalhes",)
    assert controller.values["complicacoes_detalhes"] == ""


def test_multi_enum_dependent_cleared_as_empty_list(valid_sections) -> None:
    controller = _controller()
    _advance_through(controller, valid_sections, 2)
    controller.set_value("ajuda_especial_respiracao", "sim")
    controller.set_value("tipos_ajuda_sala_parto", ["oxigenio"])

    controller.set_value("ajuda_especial_respiracao", "nao")

    assert controller.values["tipos_ajuda_sala_parto"] == []


def test_untouched_dependent_stays_unset() -> None:
    controller = _controller()
    controller.set_value("complicacoes_parto", "sim")
    assert controller.set_value("complicacoes_parto", "nao") == ()
    assert "complicacoes_detalhes" not in controller.values


def test_set_value_rejects_other_sections_and_unknown_fields() -> None:
    controller = _controller()
    with pytest.raises(WizardStateError):
        controller.set_value("cep", "01310-100")
    with pytest.raises(KeyError):
        controller.set_value("unknown", "x")


def test_completion_tracks_active_buffer(valid_sections) -> None:
    controller = _controller()
    controller.set_value("nome_completo", "Ana")
    completion = controller.completion()
    assert (completion.required, completion.filled) == (9, 1)


def test_finalize_requires_last_section() -> None:
    controller = _controller()
    with pytest.raises(WizardStateError):
        controller.finalize()


def test_full_submission(valid_sections, fake_timers) -> None:
    store = InMemoryRecordStore()
    backend = InMemoryDraftBackend()
    controller = _controller(store, _draft_store(fake_timers, backend))

    _advance_through(controller, valid_sections, 7)
    assert controller.active_section_id == 8
    _fill(controller, valid_sections[8])
    result = controller.advance()

    assert result.ok and result.submitted
    assert controller.status is WizardStatus.SUBMITTED
    assert controller.overall_progress() == 1.0
    stored = store.records[result.record_id]
    assert stored["numero_sus"] == "123456789012348"
    assert stored["data_nascimento"] == "2024-03-15"
    assert stored["observations"] == "Usa cânula 3.5"
    assert backend.read("test_draft") is None
    assert fake_timers.live == []
    with pytest.raises(WizardStateError):
        controller.advance()
    with pytest.raises(WizardStateError):
        controller.set_value("observacoes_adicionais", "x")


def test_submission_failure_keeps_last_section(valid_sections) -> None:
    store = FlakyStore(failures=1)
    controller = _controller(store)
    _advance_through(controller, valid_sections, 7)
    _fill(controller, valid_sections[8])

    with pytest.raises(RecordSubmissionError) as excinfo:
        controller.finalize()

    assert excinfo.value.reason == "connection reset"
    assert not excinfo.value.duplicate
    assert controller.active_section_id == 8
    assert controller.status is WizardStatus.IN_PROGRESS
    assert 8 not in controller.committed_sections

    retry = controller.finalize()
    assert retry.record_id == "rec-1"
    assert len(store.submitted) == 1


def test_duplicate_health_id_is_distinguishable(valid_sections) -> None:
    store = InMemoryRecordStore()
    first = _controller(store)
    _advance_through(first, valid_sections, 8)
    assert first.status is WizardStatus.SUBMITTED

    second = _controller(store)
    _advance_through(second, valid_sections, 7)
    with pytest.raises(DuplicateRecordError) as excinfo:
        second.advance()

    assert excinfo.value.duplicate
    assert excinfo.value.user_message[0] == "Já existe uma criança cadastrada com este número do SUS"
    assert second.active_section_id == 8


def test_set_value_schedules_debounced_draft(valid_sections, fake_timers) -> None:
    backend = InMemoryDraftBackend()
    controller = _controller(draft_store=_draft_store(fake_timers, backend))

    controller.set_value("nome_completo", "An")
    controller.set_value("nome_completo", "Ana")

    assert backend.read("test_draft") is None
    assert len(fake_timers.live) == 1
    fake_timers.fire_all()
    assert '"nome_completo":"Ana"' in (backend.read("test_draft") or "")


def test_start_restores_draft_at_first_section(valid_sections, fake_timers) -> None:
    backend = InMemoryDraftBackend()
    writer = _controller(draft_store=_draft_store(fake_timers, backend))
    _advance_through(writer, valid_sections, 2)
    writer.set_value("gravidez_planejada", "sim")
    fake_timers.fire_all()

    reader = _controller(draft_store=_draft_store(fake_timers, backend))
    draft = reader.start()

    assert draft is not None
    assert draft.section_id == 3
    assert reader.active_section_id == 1
    assert dict(reader.committed_sections) == {}
    assert reader.values["gravidez_planejada"] == "sim"
    assert reader.start() is None


def test_full_scope_restores_committed_sections(valid_sections, fake_timers) -> None:
    backend = InMemoryDraftBackend()
    writer = _controller(draft_store=_draft_store(fake_timers, backend, DraftScope.FULL))
    _advance_through(writer, valid_sections, 2)
    writer.set_value("gravidez_planejada", "sim")
    fake_timers.fire_all()

    reader = _controller(draft_store=_draft_store(fake_timers, backend, DraftScope.FULL))
    reader.start()

    assert reader.active_section_id == 3
    assert set(reader.committed_sections) == {1, 2}
    assert reader.state.completed_section_ids == {1, 2}
    assert reader.values["gravidez_planejada"] == "sim"


def test_abandon_cancels_pending_draft(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    controller = _controller(draft_store=_draft_store(fake_timers, backend))
    controller.set_value("nome_completo", "Ana")

    controller.abandon()
    fake_timers.fire_all()

    assert backend.read("test_draft") is None
    assert controller.status is WizardStatus.ABANDONED
    with pytest.raises(WizardStateError):
        controller.retreat()


def test_abandon_can_discard_saved_draft(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    controller = _controller(draft_store=_draft_store(fake_timers, backend))
    controller.set_value("nome_completo", "Ana")
    fake_timers.fire_all()
    assert backend.read("test_draft") is not None

    controller.abandon(discard_draft=True)

    assert backend.read("test_draft") is None


def test_session_controller_created_once(fake_timers) -> None:
    import streamlit as st

    from constants.keys import StateKeys
    from wizard.navigation_controller import get_session_controller

    store = InMemoryRecordStore()
    draft_store = _draft_store(fake_timers)

    first = get_session_controller(store, draft_store=draft_store)
    second = get_session_controller(store, draft_store=draft_store)

    assert first is second
    assert st.session_state[StateKeys.WIZARD] is first
    assert st.session_state[StateKeys.DRAFT_RESTORED] is False
    assert first.session_id == st.session_state[StateKeys.SESSION_ID]


def test_failed_revisit_keeps_last_committed_data(valid_sections) -> None:
    controller = _controller()
    _advance_through(controller, valid_sections, 1)
    committed = dict(controller.committed_sections[1])
    controller.retreat()

    controller.set_value("numero_sus", "123456789012345")
    result = controller.advance()

    assert not result.ok
    assert result.first_error_field == "numero_sus"
    assert controller.active_section_id == 1
    assert controller.committed_sections[1] == committed
    assert controller.values["numero_sus"] == "123456789012345"


def test_abandon_keeps_saved_draft_for_resume(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    controller = _controller(draft_store=_draft_store(fake_timers, backend))
    controller.set_value("nome_completo", "Ana")
    fake_timers.fire_all()

    controller.abandon()

    resumed = _controller(draft_store=_draft_store(fake_timers, backend))
    assert resumed.start() is not None
    assert resumed.values["nome_completo"] == "Ana"
