"""Simple i18n helper utilities."""

from __future__ import annotations

from typing import Final

import streamlit as st

import config

REQUIRED_FIELD_MESSAGE: Final[tuple[str, str]] = (
    "Este campo é obrigatório",
    "This field is required",
)
SELECT_OPTION_MESSAGE: Final[tuple[str, str]] = (
    "Selecione uma opção válida",
    "Select a valid option",
)
SELECT_AT_LEAST_ONE_MESSAGE: Final[tuple[str, str]] = (
    "Selecione pelo menos uma opção",
    "Select at least one option",
)


def tr(pt: str, en: str, lang: str | None = None) -> str:
    """Return the string matching the current language.

    Args:
        pt: Portuguese text.
        en: English text.
        lang: Optional language override (``"pt"`` or ``"en"``).

    Returns:
        The localized string for the requested language.
    """
    code = lang or st.session_state.get("lang") or config.SETTINGS.default_lang
    return en if str(code).lower().startswith("en") else pt
