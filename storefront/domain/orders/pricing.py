from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from storefront.core.config import get_settings
from storefront.domain.orders.aggregates import OrderLine, Pricing

CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def shipping_fee(subtotal: Decimal, threshold: Decimal, fee: Decimal) -> Decimal:
    # Threshold is inclusive: a subtotal exactly at it ships free.
    return Decimal("0") if subtotal >= threshold else fee


def compute_pricing(
    lines: Iterable[OrderLine],
    tax_rate: Decimal | None = None,
    free_shipping_threshold: Decimal | None = None,
    standard_shipping_fee: Decimal | None = None,
) -> Pricing:
    settings = get_settings()
    rate = settings.tax_rate if tax_rate is None else tax_rate
    threshold = settings.free_shipping_threshold if free_shipping_threshold is None else free_shipping_threshold
    fee = settings.standard_shipping_fee if standard_shipping_fee is None else standard_shipping_fee

    subtotal = _money(sum((line.line_total for line in lines), Decimal("0")))
    return Pricing(
        subtotal=subtotal,
        # Rounded half-up to the cent; equals subtotal * rate exactly for whole-unit VND prices.
        tax=_money(subtotal * rate),
        shipping=_money(shipping_fee(subtotal, threshold, fee)),
        # Promotions are not computed yet; kept so total has a stable shape.
        discount=_money(Decimal("0")),
    )
