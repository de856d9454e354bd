# tramar/services/pricing_engine.py

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from ..core.config import settings
from ..utils.money import to_cents, from_cents, round_to_cent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceBreakdown:
    """Order price components, all in cents."""
    items_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int

    @property
    def items_price(self) -> Decimal:
        return from_cents(self.items_cents)

    @property
    def tax_price(self) -> Decimal:
        return from_cents(self.tax_cents)

    @property
    def shipping_price(self) -> Decimal:
        return from_cents(self.shipping_cents)

    @property
    def total_price(self) -> Decimal:
        return from_cents(self.total_cents)


class PricingEngine:
    """
    Authoritative order pricing.

    Works only from server-side unit prices; whatever price a client sent is
    never an input here. Each component is rounded to the cent when it is
    computed, so the total is an exact integer sum.
    """

    def __init__(
        self,
        tax_rate: Optional[Decimal] = None,
        free_shipping_threshold: Optional[Decimal] = None,
        shipping_fee: Optional[Decimal] = None,
    ):
        self.tax_rate = Decimal(str(tax_rate if tax_rate is not None else settings.TAX_RATE))
        self.free_shipping_threshold_cents = to_cents(
            free_shipping_threshold if free_shipping_threshold is not None else settings.FREE_SHIPPING_THRESHOLD
        )
        self.shipping_fee_cents = to_cents(
            shipping_fee if shipping_fee is not None else settings.SHIPPING_FEE
        )

    def price(self, lines: Iterable[Tuple[int, int]]) -> PriceBreakdown:
        """
        Price a set of order lines.

        Args:
            lines: (unit_price_cents, quantity) pairs

        Returns:
            PriceBreakdown with items, tax, shipping and total in cents
        """
        items_cents = sum(unit_price_cents * quantity for unit_price_cents, quantity in lines)
        tax_cents = self.tax_for(items_cents)
        shipping_cents = self.shipping_for(items_cents)
        breakdown = PriceBreakdown(
            items_cents=items_cents,
            tax_cents=tax_cents,
            shipping_cents=shipping_cents,
            total_cents=items_cents + tax_cents + shipping_cents,
        )
        logger.debug(f"Priced order: {breakdown}")
        return breakdown

    def tax_for(self, items_cents: int) -> int:
        return round_to_cent(Decimal(items_cents) * self.tax_rate)

    def shipping_for(self, items_cents: int) -> int:
        # Fee applies at and below the threshold
        if items_cents > self.free_shipping_threshold_cents:
            return 0
        return self.shipping_fee_cents
