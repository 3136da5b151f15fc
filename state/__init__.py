"""Draft persistence for in-progress wizard sessions."""

from .autosave import DraftRecord, DraftStore
from .draft_backends import build_draft_backend

__all__ = ["DraftRecord", "DraftStore", "build_draft_backend"]
