"""Custom exception types for the intake wizard."""

from __future__ import annotations

from wizard.types import LocalizedText


class IntakeError(Exception):
    """Base exception for intake wizard issues."""


class WizardStateError(IntakeError):
    """Raised when a wizard transition is requested from an invalid state."""


class PersistenceError(IntakeError):
    """Base exception for record-store and draft collaborator failures."""


class DraftPersistenceError(PersistenceError):
    """Raised by draft backends when a draft cannot be read or written."""


SUBMISSION_FAILED_MESSAGE: LocalizedText = (
    "Ocorreu um erro ao salvar os dados. Tente novamente.",
    "Something went wrong while saving the data. Please try again.",
)

DUPLICATE_RECORD_MESSAGE: LocalizedText = (
    "Já existe uma criança cadastrada com este número do SUS",
    "A child with this SUS number is already registered",
)


class RecordSubmissionError(PersistenceError):
    """Raised when the record store rejects or fails a submission.

    ``reason`` keeps the collaborator's opaque text for logs; ``user_message``
    is what the caller shows next to the retry affordance.
    """

    duplicate = False

    def __init__(self, reason: str, *, user_message: LocalizedText | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.user_message: LocalizedText = user_message or SUBMISSION_FAILED_MESSAGE


class DuplicateRecordError(RecordSubmissionError):
    """Raised when the record store reports that the identifier already exists."""

    duplicate = True

    def __init__(self, reason: str, *, user_message: LocalizedText | None = None) -> None:
        super().__init__(reason, user_message=user_message or DUPLICATE_RECORD_MESSAGE)
