"""User-entered quantity parsing and keystroke-safe field editing.

Ticket fields are stored as the literal text the user typed. Turning that text
into a Decimal and back would erase input that is still being written
(``"1."``, ``"1.50"``, ``"5%"``), so parsing is one-way: the text is kept and
the parsed value is derived from it on demand.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from functools import cached_property

from swapdesk.numeric import NAN, fmt, gt, safe_div, to_decimal

HUNDRED = Decimal(100)


@dataclass(frozen=True)
class Quantity:
    """Parsed quantity: either absolute, relative (fraction of a balance), or unset."""

    value: Decimal = NAN
    relative: Decimal | None = None
    absolute: Decimal | None = None

    @property
    def is_set(self) -> bool:
        return not self.value.is_nan()

    def resolve(self, reference: Decimal | None) -> Decimal:
        """Absolute amount, scaling a relative quantity by ``reference``."""
        if self.relative is not None:
            if reference is None or reference.is_nan():
                return NAN
            return self.relative * reference
        return self.value


def _clean_number(text: str) -> str:
    return text.strip().replace(",", ".")


def parse_value(text: str | None) -> Decimal:
    """Parse an absolute number; percent text and garbage give NaN."""
    if text is None:
        return NAN
    cleaned = _clean_number(text)
    if not cleaned or cleaned.endswith("%"):
        return NAN
    return to_decimal(cleaned)


def parse_value_or_percent(text: str | None) -> Quantity:
    """Parse ``"12.5"`` as absolute or ``"12.5%"`` as the fraction 0.125."""
    if text is None:
        return Quantity()
    cleaned = _clean_number(text)
    if not cleaned:
        return Quantity()
    if cleaned.endswith("%"):
        number = to_decimal(cleaned[:-1])
        if number.is_nan():
            return Quantity()
        relative = safe_div(number, HUNDRED)
        return Quantity(value=relative, relative=relative)
    number = to_decimal(cleaned)
    if number.is_nan():
        return Quantity()
    return Quantity(value=number, absolute=number)


def format_quantity(quantity: Quantity) -> str:
    """Render a parsed quantity back to text (percent when relative)."""
    if not quantity.is_set:
        return ""
    if quantity.relative is not None:
        return f"{fmt(quantity.relative * HUNDRED)}%"
    return fmt(quantity.value)


def apply_edit(previous: str, raw: str, *, percent: bool = False, negative: bool = False) -> str:
    """Normalize a raw field edit without fighting text that is still being typed.

    Invalid characters are stripped. Edits that cannot become a number (a second
    dot, input after ``%``, a minus past the first position) are rejected by
    returning ``previous`` unchanged.
    """
    text = raw.replace(",", ".")
    allowed = {".", "%", "-"}
    cleaned = "".join(ch for ch in text if ch.isdigit() or ch in allowed)
    if not cleaned:
        return ""

    sign = ""
    if cleaned.startswith("-"):
        cleaned = cleaned[1:]
        if negative:
            sign = "-"
    if "-" in cleaned:
        return previous

    suffix = ""
    if "%" in cleaned:
        if not percent:
            cleaned = cleaned.replace("%", "")
        elif cleaned.count("%") > 1 or not cleaned.endswith("%"):
            return previous
        else:
            cleaned = cleaned[:-1]
            suffix = "%"

    if cleaned.count(".") > 1:
        return previous
    return f"{sign}{cleaned}{suffix}"


def edit_value(previous: str, raw: str, *, negative: bool = False) -> str:
    return apply_edit(previous, raw, percent=False, negative=negative)


def edit_value_or_percent(previous: str, raw: str, *, negative: bool = False) -> str:
    return apply_edit(previous, raw, percent=True, negative=negative)


def edit_percent(previous: str, raw: str) -> str:
    """Percent-only field: digits are edited bare and the result always ends in one ``%``."""
    if not raw:
        return ""
    cleaned = apply_edit(previous.replace("%", ""), raw.replace("%", ""))
    return f"{cleaned}%" if cleaned else ""


@dataclass(frozen=True)
class EditBuffer:
    """Raw field text with a lazily parsed quantity."""

    text: str = ""
    percent: bool = True
    negative: bool = False

    def edit(self, raw: str) -> EditBuffer:
        updated = apply_edit(self.text, raw, percent=self.percent, negative=self.negative)
        return replace(self, text=updated)

    @cached_property
    def quantity(self) -> Quantity:
        if self.percent:
            return parse_value_or_percent(self.text)
        value = parse_value(self.text)
        if value.is_nan():
            return Quantity()
        return Quantity(value=value, absolute=value)

    @property
    def is_positive(self) -> bool:
        return gt(self.quantity.value)
