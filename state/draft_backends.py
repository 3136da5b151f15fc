"""Key-value backends that hold serialized drafts."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import MutableMapping, Protocol, cast

import streamlit as st

import config
from config import DraftBackendKind, IntakeSettings
from constants.keys import StateKeys
from core.errors import DraftPersistenceError

logger = logging.getLogger(__name__)

_SAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]")


class DraftBackend(Protocol):
    """Storage collaborator for draft blobs, keyed by one logical key."""

    def write(self, key: str, blob: str) -> None: ...

    def read(self, key: str) -> str | None: ...

    def delete(self, key: str) -> None: ...


class InMemoryDraftBackend:
    """Process-local draft storage, mainly for tests and local runs."""

    def __init__(self, store: MutableMapping[str, str] | None = None) -> None:
        self._store: MutableMapping[str, str] = store if store is not None else {}

    def write(self, key: str, blob: str) -> None:
        self._store[key] = blob

    def read(self, key: str) -> str | None:
        return self._store.get(key)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class SessionStateDraftBackend:
    """Keep drafts inside ``st.session_state`` under ``StateKeys.DRAFTS``."""

    def __init__(self, session_state: MutableMapping[str, object] | None = None) -> None:
        self._session_state = session_state

    def _drafts(self) -> dict[str, str]:
        state = cast(MutableMapping[str, object], self._session_state if self._session_state is not None else st.session_state)
        drafts = state.get(StateKeys.DRAFTS)
        if not isinstance(drafts, dict):
            drafts = {}
            state[StateKeys.DRAFTS] = drafts
        return cast(dict[str, str], drafts)

    def write(self, key: str, blob: str) -> None:
        self._drafts()[key] = blob

    def read(self, key: str) -> str | None:
        value = self._drafts().get(key)
        return value if isinstance(value, str) else None

    def delete(self, key: str) -> None:
        self._drafts().pop(key, None)


class FileDraftBackend:
    """Store each draft as a UTF-8 JSON file inside ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY_RE.sub('_', key)}.json"

    def write(self, key: str, blob: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(blob, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise DraftPersistenceError(f"Could not write draft to {path}") from exc

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DraftPersistenceError(f"Could not read draft from {path}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise DraftPersistenceError(f"Could not delete draft {key}") from exc


def build_draft_backend(settings: IntakeSettings | None = None) -> DraftBackend:
    """Return the backend selected by ``INTAKE_DRAFT_BACKEND``."""

    resolved = settings or config.SETTINGS
    if resolved.draft_backend is DraftBackendKind.FILE:
        return FileDraftBackend(resolved.draft_dir)
    if resolved.draft_backend is DraftBackendKind.MEMORY:
        return InMemoryDraftBackend()
    return SessionStateDraftBackend()


__all__ = [
    "DraftBackend",
    "FileDraftBackend",
    "InMemoryDraftBackend",
    "SessionStateDraftBackend",
    "build_draft_backend",
]
