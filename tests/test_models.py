from __future__ import annotations

from decimal import Decimal

import pytest

from swapdesk.domain.models import order_progress


@pytest.mark.parametrize(
    ("starting_value", "value", "expected"),
    [
        (Decimal(4), Decimal(1), Decimal("0.75")),
        (Decimal(4), Decimal(4), Decimal(0)),
        (Decimal(4), Decimal(0), Decimal(1)),
        (Decimal(0), Decimal(5), Decimal(1)),
        (Decimal(-2), Decimal(0), Decimal(1)),
        (Decimal(4), Decimal(5), Decimal(0)),
    ],
)
def test_order_progress_is_clamped(starting_value: Decimal, value: Decimal, expected: Decimal) -> None:
    assert order_progress(starting_value, value) == expected
