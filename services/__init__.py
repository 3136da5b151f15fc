"""External collaborators used by the intake wizard."""

from .record_store import (
    InMemoryRecordStore,
    RecordStore,
    SubmissionResult,
    submit_record,
)

__all__ = ["InMemoryRecordStore", "RecordStore", "SubmissionResult", "submit_record"]
