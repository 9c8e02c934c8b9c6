from __future__ import annotations

from decimal import Decimal

import pytest

from swapdesk.quantity import (
    EditBuffer,
    Quantity,
    edit_percent,
    edit_value,
    edit_value_or_percent,
    format_quantity,
    parse_value,
    parse_value_or_percent,
)


def test_parse_absolute_value() -> None:
    quantity = parse_value_or_percent("12.5")

    assert quantity.value == Decimal("12.5")
    assert quantity.absolute == Decimal("12.5")
    assert quantity.relative is None


def test_parse_percent_value() -> None:
    quantity = parse_value_or_percent("5%")

    assert quantity.value == Decimal("0.05")
    assert quantity.relative == Decimal("0.05")
    assert quantity.absolute is None


@pytest.mark.parametrize("text", ["", "   ", "abc", "%", None])
def test_parse_invalid_is_unset(text: str | None) -> None:
    quantity = parse_value_or_percent(text)

    assert quantity.value.is_nan()
    assert quantity.relative is None
    assert quantity.absolute is None
    assert not quantity.is_set


def test_parse_accepts_comma_separator() -> None:
    assert parse_value_or_percent("1,5").value == Decimal("1.5")
    assert parse_value("2,25") == Decimal("2.25")


def test_parse_value_rejects_percent() -> None:
    assert parse_value("5%").is_nan()
    assert parse_value("5") == Decimal(5)


def test_relative_quantity_resolves_against_reference() -> None:
    assert parse_value_or_percent("50%").resolve(Decimal(200)) == Decimal(100)
    assert parse_value_or_percent("30").resolve(Decimal(200)) == Decimal(30)
    assert parse_value_or_percent("50%").resolve(None).is_nan()


def test_format_quantity() -> None:
    assert format_quantity(parse_value_or_percent("2.5%")) == "2.5%"
    assert format_quantity(parse_value_or_percent("0.10")) == "0.1"
    assert format_quantity(Quantity()) == ""


@pytest.mark.parametrize(
    ("previous", "raw", "expected"),
    [
        ("", "1.", "1."),
        ("1.5", "1.50", "1.50"),
        ("", "0.0", "0.0"),
        ("5", "5%", "5%"),
        ("", "1,25", "1.25"),
        ("", "1a2b", "12"),
        ("1.5", "1.5.", "1.5"),
        ("5%", "5%1", "5%"),
        ("5%", "5%%", "5%"),
        ("", "-3", "3"),
    ],
)
def test_edit_value_or_percent(previous: str, raw: str, expected: str) -> None:
    assert edit_value_or_percent(previous, raw) == expected


@pytest.mark.parametrize(
    ("previous", "raw", "expected"),
    [
        ("", "0.5", "0.5%"),
        ("0.15%", "0.155%", "0.155%"),
        ("0.15%", "0.1%5", "0.15%"),
        ("0.15%", "0.1.5%", "0.15%"),
        ("0.15%", "-1", "1%"),
        ("0.15%", "", ""),
        ("0.15%", "%", ""),
    ],
)
def test_edit_percent_always_ends_in_percent(previous: str, raw: str, expected: str) -> None:
    assert edit_percent(previous, raw) == expected


def test_edit_value_strips_percent() -> None:
    assert edit_value("", "5%") == "5"


def test_leading_minus_only_for_negative_fields() -> None:
    assert edit_value("", "-3") == "3"
    assert edit_value("", "-3", negative=True) == "-3"
    assert edit_value_or_percent("", "-", negative=True) == "-"
    assert edit_value_or_percent("", "-0.5%", negative=True) == "-0.5%"


def test_inner_minus_is_rejected() -> None:
    assert edit_value("1", "1-2", negative=True) == "1"


def test_edit_buffer_keeps_text_while_typing() -> None:
    buffer = EditBuffer().edit("1.")

    assert buffer.text == "1."
    assert buffer.quantity.value == Decimal(1)
    assert buffer.is_positive

    buffer = buffer.edit("1.0")
    assert buffer.text == "1.0"


def test_edit_buffer_absolute_flavour() -> None:
    buffer = EditBuffer(percent=False).edit("5%")

    assert buffer.text == "5"
    assert buffer.quantity.absolute == Decimal(5)


def test_edit_buffer_rejected_edit_keeps_previous_text() -> None:
    buffer = EditBuffer().edit("2.5")

    assert buffer.edit("2.5.").text == "2.5"
