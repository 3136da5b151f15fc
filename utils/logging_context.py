from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator

_DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [session=%(session)s section=%(section)s] %(name)s: %(message)s"

_session_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("session_id", default="-")
_wizard_section_var: contextvars.ContextVar[str] = contextvars.ContextVar("wizard_section", default="-")
_DEFAULT_RECORD_FACTORY = logging.getLogRecordFactory()
_RECORD_FACTORY_INSTALLED = False


def _apply_context(record: logging.LogRecord) -> None:
    record.session = _session_id_var.get("-")
    record.section = _wizard_section_var.get("-")


class _ContextFilter(logging.Filter):
    """Inject contextual fields into log records for consistent formatting."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - logging protocol
        _apply_context(record)
        return True


def _coerce(value: str | int | None) -> str:
    if value is None:
        return "-"
    stripped = str(value).strip()
    return stripped or "-"


def configure_logging(*, level: int | None = None) -> None:
    """Ensure the root logger formats records with contextual metadata."""

    root = logging.getLogger()
    if not root.handlers:
        if level is None:
            import config

            level = config.SETTINGS.log_level
        logging.basicConfig(level=level, format=_DEFAULT_LOG_FORMAT)
        root = logging.getLogger()
    elif level is not None:
        root.setLevel(level)
    for handler in root.handlers:
        formatter = handler.formatter or logging.Formatter(_DEFAULT_LOG_FORMAT)
        handler.setFormatter(formatter)
    has_filter = any(isinstance(flt, _ContextFilter) for flt in root.filters)
    if not has_filter:
        root.addFilter(_ContextFilter())
    global _RECORD_FACTORY_INSTALLED
    if not _RECORD_FACTORY_INSTALLED:
        default_factory = _DEFAULT_RECORD_FACTORY

        def _record_factory(*args: object, **kwargs: object) -> logging.LogRecord:
            record = default_factory(*args, **kwargs)
            _apply_context(record)
            return record

        logging.setLogRecordFactory(_record_factory)
        _RECORD_FACTORY_INSTALLED = True


def set_session_id(session_id: str | None) -> None:
    """Bind an intake session identifier for subsequent log records."""

    configure_logging()
    _session_id_var.set(_coerce(session_id))


def set_wizard_section(section_id: int | str | None) -> None:
    """Bind the active wizard section to the logging context."""

    _wizard_section_var.set(_coerce(section_id))


def current_wizard_section() -> str:
    return _wizard_section_var.get("-")


@contextmanager
def log_context(
    *,
    session_id: str | None = None,
    section: int | str | None = None,
) -> Iterator[None]:
    """Temporarily override logging context variables."""

    tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []
    if session_id is not None:
        tokens.append((_session_id_var, _session_id_var.set(_coerce(session_id))))
    if section is not None:
        tokens.append((_wizard_section_var, _wizard_section_var.set(_coerce(section))))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
