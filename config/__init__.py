"""Central configuration for the child-registration intake wizard.

Settings resolve in this order: Streamlit secrets (``[intake]`` section,
then top-level keys), environment variables, built-in defaults. A local
``.env`` file is loaded on import through ``python-dotenv``.

``INTAKE_DRAFT_SCOPE`` selects what an interrupted session keeps:
``active_section`` stores only the fields of the section being edited,
``full`` also stores every committed section.
"""

from __future__ import annotations

import logging
import os
import tempfile
import warnings
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Mapping

import streamlit as st
from dotenv import load_dotenv

load_dotenv()


logger = logging.getLogger(__name__)

_TRUTHY_ENV_VALUES: tuple[str, ...] = ("1", "true", "yes", "on")
_SECRETS_SECTION = "intake"

DEFAULT_DRAFT_KEY = "child_registration_draft"
DEFAULT_DEBOUNCE_SECONDS = 1.0
DEFAULT_DRAFT_MAX_AGE_HOURS = 168.0


class DraftBackendKind(StrEnum):
    """Enumerate the supported draft persistence backends."""

    SESSION = "session"
    FILE = "file"
    MEMORY = "memory"


class DraftScope(StrEnum):
    """What a draft captures when it is written."""

    ACTIVE_SECTION = "active_section"
    FULL = "full"


def _is_truthy_flag(value: str | None) -> bool:
    """Return ``True`` when ``value`` matches a truthy environment token."""

    if value is None:
        return False
    return value.strip().lower() in _TRUTHY_ENV_VALUES


def _secret_value(name: str) -> object | None:
    try:
        section = st.secrets[_SECRETS_SECTION]
    except Exception:
        section = None
    if isinstance(section, Mapping) and name in section:
        return section.get(name)
    try:
        return st.secrets[name]
    except Exception:
        return None


def _read_setting(name: str) -> str | None:
    """Return the raw setting for ``name`` from secrets or the environment."""

    secret = _secret_value(name)
    if secret is not None:
        cleaned = str(secret).strip()
        if cleaned:
            return cleaned
    env_value = os.getenv(name)
    if env_value is None:
        return None
    cleaned = env_value.strip()
    return cleaned or None


def _parse_positive_float(value: str | None, *, name: str, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        warnings.warn(
            "%s is not a number; using default for %s" % (value, name),
            RuntimeWarning,
        )
        return default
    if parsed < 0:
        warnings.warn("%s must not be negative; using default" % name, RuntimeWarning)
        return default
    return parsed


def _parse_enum(value: str | None, enum_type: type[StrEnum], *, name: str, default: StrEnum) -> StrEnum:
    if value is None:
        return default
    try:
        return enum_type(value.lower())
    except ValueError:
        warnings.warn(
            "Unsupported %s value '%s'; falling back to '%s'." % (name, value, default),
            RuntimeWarning,
        )
        return default


def _parse_log_level(value: str | None) -> int:
    if value is None:
        return logging.INFO
    if value.isascii() and value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if isinstance(level, int):
        return level
    warnings.warn("Unknown log level '%s'; using INFO" % value, RuntimeWarning)
    return logging.INFO


@dataclass(frozen=True, slots=True)
class IntakeSettings:
    """Resolved runtime settings for the intake wizard."""

    draft_key: str = DEFAULT_DRAFT_KEY
    draft_debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    draft_max_age_hours: float = DEFAULT_DRAFT_MAX_AGE_HOURS
    draft_backend: DraftBackendKind = DraftBackendKind.FILE
    draft_dir: Path = Path(tempfile.gettempdir())
    draft_scope: DraftScope = DraftScope.ACTIVE_SECTION
    log_level: int = logging.INFO
    default_lang: str = "pt"
    debug: bool = False


def load_settings() -> IntakeSettings:
    """Build :class:`IntakeSettings` from secrets and environment variables."""

    draft_dir_raw = _read_setting("INTAKE_DRAFT_DIR")
    lang = (_read_setting("INTAKE_DEFAULT_LANG") or "pt").lower()
    settings = IntakeSettings(
        draft_key=_read_setting("INTAKE_DRAFT_KEY") or DEFAULT_DRAFT_KEY,
        draft_debounce_seconds=_parse_positive_float(
            _read_setting("INTAKE_DRAFT_DEBOUNCE_SECONDS"),
            name="INTAKE_DRAFT_DEBOUNCE_SECONDS",
            default=DEFAULT_DEBOUNCE_SECONDS,
        ),
        draft_max_age_hours=_parse_positive_float(
            _read_setting("INTAKE_DRAFT_MAX_AGE_HOURS"),
            name="INTAKE_DRAFT_MAX_AGE_HOURS",
            default=DEFAULT_DRAFT_MAX_AGE_HOURS,
        ),
        draft_backend=DraftBackendKind(
            _parse_enum(
                _read_setting("INTAKE_DRAFT_BACKEND"),
                DraftBackendKind,
                name="INTAKE_DRAFT_BACKEND",
                default=DraftBackendKind.FILE,
            )
        ),
        draft_dir=Path(draft_dir_raw) if draft_dir_raw else Path(tempfile.gettempdir()),
        draft_scope=DraftScope(
            _parse_enum(
                _read_setting("INTAKE_DRAFT_SCOPE"),
                DraftScope,
                name="INTAKE_DRAFT_SCOPE",
                default=DraftScope.ACTIVE_SECTION,
            )
        ),
        log_level=_parse_log_level(_read_setting("INTAKE_LOG_LEVEL")),
        default_lang="en" if lang.startswith("en") else "pt",
        debug=_is_truthy_flag(_read_setting("INTAKE_DEBUG")),
    )
    if settings.draft_scope is DraftScope.FULL:
        logger.info("Draft scope 'full' enabled: committed sections survive restarts.")
    return settings


SETTINGS = load_settings()


__all__ = [
    "DEFAULT_DRAFT_KEY",
    "DraftBackendKind",
    "DraftScope",
    "IntakeSettings",
    "SETTINGS",
    "load_settings",
]
