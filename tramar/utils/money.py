"""
Money helpers.

Amounts are stored and summed as integer minor units (cents). ``Decimal`` is
only used when parsing configured amounts and rendering API responses.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Amount = Union[Decimal, int, str, float]


def to_cents(amount: Amount) -> int:
    """Convert a major-unit amount (e.g. ``Decimal("19.99")``) to cents."""
    value = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    return int(value * 100)


def from_cents(cents: int) -> Decimal:
    """Convert cents back to a two-place ``Decimal``."""
    return (Decimal(cents) / 100).quantize(CENT)


def round_to_cent(value: Decimal) -> int:
    """Round a fractional cent amount half-up to a whole cent."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
