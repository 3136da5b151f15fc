"""Core validators and error types for the intake wizard."""

from .errors import IntakeError, PersistenceError, RecordSubmissionError, WizardStateError

__all__ = ["IntakeError", "PersistenceError", "RecordSubmissionError", "WizardStateError"]
