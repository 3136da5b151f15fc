from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from config import DraftBackendKind, DraftScope, IntakeSettings
from constants.keys import StateKeys
from core.errors import DraftPersistenceError
from state.autosave import DRAFT_SCHEMA_VERSION, DraftRecord, DraftStore
from state.draft_backends import (
    FileDraftBackend,
    InMemoryDraftBackend,
    SessionStateDraftBackend,
    build_draft_backend,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class _BrokenBackend:
    def write(self, key: str, blob: str) -> None:
        raise DraftPersistenceError("disk full")

    def read(self, key: str) -> str | None:
        raise DraftPersistenceError("unreadable")

    def delete(self, key: str) -> None:
        raise DraftPersistenceError("read-only")


def _store(fake_timers, backend=None, clock=None, **kwargs) -> DraftStore:
    return DraftStore(
        backend if backend is not None else InMemoryDraftBackend(),
        key="draft",
        clock=clock or _Clock(NOW),
        timer_factory=fake_timers,
        **kwargs,
    )


def test_rapid_saves_coalesce_into_one_write(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    store = _store(fake_timers, backend)

    store.save(1, {"nome_completo": "A"})
    store.save(1, {"nome_completo": "An"})
    store.save(1, {"nome_completo": "Ana"})

    assert store.pending
    assert len(fake_timers.live) == 1
    assert fake_timers.live[0].delay == 1.0
    fake_timers.fire_all()

    record = store.load()
    assert record is not None
    assert record.captured_fields == {"nome_completo": "Ana"}
    assert record.section_id == 1
    assert record.version == DRAFT_SCHEMA_VERSION
    assert not store.pending


def test_save_snapshots_values(fake_timers) -> None:
    store = _store(fake_timers)
    values = {"motivos_traqueostomia": ["trauma_acidente"]}

    store.save(4, values)
    values["motivos_traqueostomia"].append("outro_motivo")
    fake_timers.fire_all()

    record = store.load()
    assert record is not None
    assert record.captured_fields == {"motivos_traqueostomia": ["trauma_acidente"]}


def test_active_scope_drops_committed_sections(fake_timers) -> None:
    store = _store(fake_timers)
    store.save_now(2, {"cep": "01310-100"}, {1: {"nome_completo": "Ana"}})
    record = store.load()
    assert record is not None
    assert record.committed_sections == {}


def test_full_scope_keeps_committed_sections(fake_timers) -> None:
    store = _store(fake_timers, scope=DraftScope.FULL)
    store.save_now(2, {"cep": "01310-100"}, {1: {"nome_completo": "Ana"}})
    record = store.load()
    assert record is not None
    assert record.committed_sections == {1: {"nome_completo": "Ana"}}


def test_write_failure_is_logged_and_swallowed(fake_timers, caplog: pytest.LogCaptureFixture) -> None:
    store = _store(fake_timers, _BrokenBackend())

    with caplog.at_level(logging.WARNING, logger="state.autosave"):
        store.save(1, {"nome_completo": "Ana"})
        fake_timers.fire_all()

    assert "Failed to write draft draft" in caplog.text
    assert "Ana" not in caplog.text


def test_read_failure_means_no_draft(fake_timers) -> None:
    store = _store(fake_timers, _BrokenBackend())
    assert store.load() is None
    store.clear()


def test_corrupt_draft_discarded(fake_timers) -> None:
    backend = InMemoryDraftBackend({"draft": "{not json"})
    store = _store(fake_timers, backend)

    assert store.load() is None
    assert backend.read("draft") is None


def test_unknown_version_discarded(fake_timers) -> None:
    blob = json.dumps(
        {"version": 99, "section_id": 1, "captured_fields": {}, "saved_at": NOW.isoformat()}
    )
    backend = InMemoryDraftBackend({"draft": blob})
    assert _store(fake_timers, backend).load() is None
    assert backend.read("draft") is None


def test_stale_draft_discarded(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    clock = _Clock(NOW)
    store = _store(fake_timers, backend, clock, max_age=timedelta(hours=168))
    store.save_now(1, {"nome_completo": "Ana"})

    clock.now = NOW + timedelta(hours=167)
    assert store.load() is not None

    clock.now = NOW + timedelta(hours=169)
    assert store.load() is None
    assert backend.read("draft") is None


def test_clear_cancels_pending_and_deletes(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    store = _store(fake_timers, backend)
    store.save_now(1, {"nome_completo": "Ana"})
    store.save(1, {"nome_completo": "Ana Souza"})

    store.clear()
    fake_timers.fire_all()

    assert backend.read("draft") is None


def test_cancel_pending_keeps_previous_draft(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    store = _store(fake_timers, backend)
    store.save_now(1, {"nome_completo": "Ana"})
    store.save(1, {"nome_completo": "Ana Souza"})

    assert store.cancel_pending() is True
    record = store.load()
    assert record is not None
    assert record.captured_fields == {"nome_completo": "Ana"}


def test_flush_writes_immediately(fake_timers) -> None:
    store = _store(fake_timers)
    store.save(1, {"nome_completo": "Ana"})
    assert store.flush() is True
    assert store.load() is not None
    assert store.flush() is False


def test_draft_record_rejects_unknown_section() -> None:
    with pytest.raises(ValueError):
        DraftRecord(section_id=9, saved_at=NOW)


def test_session_backend_uses_session_state() -> None:
    backend = SessionStateDraftBackend()
    backend.write("draft", "{}")
    assert st.session_state[StateKeys.DRAFTS] == {"draft": "{}"}
    assert backend.read("draft") == "{}"
    backend.delete("draft")
    assert backend.read("draft") is None


def test_file_backend_roundtrip(tmp_path) -> None:
    backend = FileDraftBackend(tmp_path / "drafts")
    assert backend.read("child/registration") is None
    backend.write("child/registration", '{"a": 1}')
    assert backend.read("child/registration") == '{"a": 1}'
    assert [path.name for path in (tmp_path / "drafts").iterdir()] == ["child_registration.json"]
    backend.delete("child/registration")
    backend.delete("child/registration")
    assert backend.read("child/registration") is None


def test_file_backend_wraps_os_errors(tmp_path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    backend = FileDraftBackend(blocker)
    with pytest.raises(DraftPersistenceError):
        backend.write("draft", "{}")


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (DraftBackendKind.SESSION, SessionStateDraftBackend),
        (DraftBackendKind.FILE, FileDraftBackend),
        (DraftBackendKind.MEMORY, InMemoryDraftBackend),
    ],
)
def test_build_draft_backend(kind: DraftBackendKind, expected: type, tmp_path) -> None:
    settings = IntakeSettings(draft_backend=kind, draft_dir=tmp_path)
    assert isinstance(build_draft_backend(settings), expected)


def test_store_from_settings(fake_timers, tmp_path) -> None:
    settings = IntakeSettings(
        draft_key="custom",
        draft_debounce_seconds=0.25,
        draft_max_age_hours=1,
        draft_backend=DraftBackendKind.FILE,
        draft_dir=tmp_path,
        draft_scope=DraftScope.FULL,
    )
    store = DraftStore.from_settings(settings, timer_factory=fake_timers)

    assert store.key == "custom"
    assert store.max_age == timedelta(hours=1)
    assert store.scope is DraftScope.FULL
    store.save(1, {"nome_completo": "Ana"})
    assert fake_timers.live[0].delay == 0.25
    fake_timers.fire_all()
    assert (tmp_path / "custom.json").is_file()


class _BlockingBackend(InMemoryDraftBackend):
    """Holds every write until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def write(self, key: str, blob: str) -> None:
        self.entered.set()
        assert self.release.wait(timeout=5)
        super().write(key, blob)


def test_clear_during_in_flight_write_leaves_no_draft(fake_timers) -> None:
    backend = _BlockingBackend()
    store = _store(fake_timers, backend)
    store.save(1, {"nome_completo": "Ana"})

    writer = threading.Thread(target=fake_timers.fire_all)
    writer.start()
    assert backend.entered.wait(timeout=5)

    clearer = threading.Thread(target=store.clear)
    clearer.start()
    backend.release.set()
    writer.join(timeout=5)
    clearer.join(timeout=5)

    assert not writer.is_alive() and not clearer.is_alive()
    assert backend.read("draft") is None
    assert store.load() is None


def test_saves_after_clear_are_written(fake_timers) -> None:
    backend = InMemoryDraftBackend()
    store = _store(fake_timers, backend)
    store.clear()

    store.save(2, {"nome_mae": "Maria"})
    fake_timers.fire_all()

    record = store.load()
    assert record is not None and record.section_id == 2


class _ExplodingBackend:
    def write(self, key: str, blob: str) -> None:
        raise RuntimeError("backend offline")

    def read(self, key: str) -> str | None:
        raise RuntimeError("backend offline")

    def delete(self, key: str) -> None:
        raise RuntimeError("backend offline")


def test_unexpected_backend_errors_never_reach_caller(fake_timers, caplog: pytest.LogCaptureFixture) -> None:
    store = _store(fake_timers, _ExplodingBackend())

    with caplog.at_level(logging.WARNING, logger="state.autosave"):
        assert store.load() is None
        store.save_now(1, {"nome_completo": "Ana"})
        store.clear()

    assert "Failed to read draft draft" in caplog.text
    assert "Failed to delete draft draft" in caplog.text


@pytest.mark.streamlit_runtime
def test_debounced_session_draft_written_under_streamlit(tmp_path: Path) -> None:
    app_file = tmp_path / "draft_app.py"
    app_file.write_text(
        """
import time

import streamlit as st
from state.autosave import DraftStore
from state.draft_backends import SessionStateDraftBackend

if "draft_scheduled" not in st.session_state:
    st.session_state["draft_scheduled"] = True
    store = DraftStore(SessionStateDraftBackend(), key="apptest_draft", debounce_seconds=0.05)
    store.save(1, {"nome_completo": "Ana"})
    time.sleep(0.5)
""".lstrip(),
        encoding="utf-8",
    )

    app = AppTest.from_file(str(app_file))
    app.run(timeout=30)

    assert not app.exception
    drafts = app.session_state[StateKeys.DRAFTS]
    assert json.loads(drafts["apptest_draft"])["captured_fields"] == {"nome_completo": "Ana"}
