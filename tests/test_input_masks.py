from __future__ import annotations

import pytest

from utils.input_masks import (
    apply_mask,
    format_date,
    format_health_id,
    format_phone,
    format_postal_code,
    format_weight,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", ""), ("1", "1"), ("15", "15"), ("150", "15/0"), ("1503", "15/03"), ("15032", "15/03/2"), ("150320245", "15/03/2024")],
)
def test_format_date(raw: str, expected: str) -> None:
    assert format_date(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1", "1"),
        ("119", "(11) 9"),
        ("113456", "(11) 3456"),
        ("1134567", "(11) 3456-7"),
        ("1134567890", "(11) 3456-7890"),
        ("11987654321", "(11) 98765-4321"),
        ("(11) 98765-43219", "(11) 98765-4321"),
    ],
)
def test_format_phone(raw: str, expected: str) -> None:
    assert format_phone(raw) == expected


def test_format_postal_code() -> None:
    assert format_postal_code("01310") == "01310"
    assert format_postal_code("013101") == "01310-1"
    assert format_postal_code("01310-1009") == "01310-100"


def test_digit_only_masks() -> None:
    assert format_health_id("1234 5678 9012 3489") == "123456789012348"
    assert format_weight("3.200 g") == "3200"
    assert format_weight(None) == ""


def test_apply_mask_by_field() -> None:
    assert apply_mask("cep", "01310100") == "01310-100"
    assert apply_mask("data_nascimento_responsavel", "01012000") == "01/01/2000"
    assert apply_mask("nome_completo", "Ana 2") == "Ana 2"
