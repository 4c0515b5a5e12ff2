# tests/unit/test_address.py
from __future__ import annotations

import pytest

from src.core.normalize import (
    UNKNOWN_ADDRESS,
    format_postal_address,
    normalize_state,
    normalize_zip,
    parse_address_line,
)


def test_single_line_address_is_split() -> None:
    res = parse_address_line("123 Main St, Springfield, IL 62704")
    assert res is not None
    assert res.address_line == "123 Main St"
    assert res.city == "Springfield"
    assert res.state == "IL"
    assert res.zip_code == "62704"


def test_zip_plus_four_is_truncated() -> None:
    res = parse_address_line("456 Market Ave, Portland, OR 97205-1234")
    assert res is not None
    assert res.zip_code == "97205"


@pytest.mark.parametrize("text", [None, "", "   "])
def test_blank_input_yields_none(text) -> None:
    assert parse_address_line(text) is None


@pytest.mark.parametrize(
    "value,expected",
    [("il", "IL"), ("Illinois", "IL"), ("new york", "NY"), ("D.C.", None), ("Narnia", None), (None, None)],
)
def test_normalize_state(value, expected) -> None:
    assert normalize_state(value) == expected


def test_normalize_zip() -> None:
    assert normalize_zip("62704-0001") == "62704"
    assert normalize_zip("abc") is None


def test_postal_address_joins_present_parts() -> None:
    assert format_postal_address("123 Main St", "Springfield", "IL", "62704") == "123 Main St, Springfield, IL, 62704"
    assert format_postal_address(None, "Springfield", None, "62704") == "Springfield, 62704"


def test_postal_address_sentinel_when_empty() -> None:
    assert format_postal_address(None, None, None, None) == UNKNOWN_ADDRESS
    assert format_postal_address("  ", "") == "Property Address Unknown"
