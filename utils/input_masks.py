"""Progressive input masks applied to raw keystrokes before they reach the buffer."""

from __future__ import annotations

import re
from typing import Callable, Final, Mapping

_NON_DIGITS_RE = re.compile(r"\D", re.ASCII)


def only_digits(text: str | None) -> str:
    return _NON_DIGITS_RE.sub("", text or "")


def format_date(text: str | None) -> str:
    """Shape ``text`` as ``DD/MM/AAAA`` while the user types."""

    digits = only_digits(text)
    if len(digits) <= 2:
        return digits
    if len(digits) <= 4:
        return f"{digits[:2]}/{digits[2:]}"
    return f"{digits[:2]}/{digits[2:4]}/{digits[4:8]}"


def format_health_id(text: str | None) -> str:
    return only_digits(text)[:15]


def format_weight(text: str | None) -> str:
    return only_digits(text)


def format_phone(text: str | None) -> str:
    """Shape ``text`` as ``(DD) XXXX-XXXX`` and switch to the mobile layout at 11 digits."""

    digits = only_digits(text)
    if len(digits) <= 2:
        return digits
    if len(digits) <= 6:
        return f"({digits[:2]}) {digits[2:]}"
    if len(digits) <= 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return f"({digits[:2]}) {digits[2:7]}-{digits[7:11]}"


def format_postal_code(text: str | None) -> str:
    digits = only_digits(text)
    if len(digits) <= 5:
        return digits
    return f"{digits[:5]}-{digits[5:8]}"


FIELD_MASKS: Final[Mapping[str, Callable[[str | None], str]]] = {
    "data_nascimento": format_date,
    "data_nascimento_responsavel": format_date,
    "numero_sus": format_health_id,
    "peso_nascer": format_weight,
    "telefone_contato": format_phone,
    "cep": format_postal_code,
}


def apply_mask(field_id: str, text: str | None) -> str:
    """Return ``text`` masked for ``field_id``; unmasked fields pass through."""

    mask = FIELD_MASKS.get(field_id)
    if mask is None:
        return text or ""
    return mask(text)


__all__ = [
    "FIELD_MASKS",
    "apply_mask",
    "format_date",
    "format_health_id",
    "format_phone",
    "format_postal_code",
    "format_weight",
    "only_digits",
]
