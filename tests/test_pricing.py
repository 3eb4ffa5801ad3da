from __future__ import annotations

from decimal import Decimal

from storefront.domain.orders.aggregates import OrderLine
from storefront.domain.orders.formatting import format_vnd, generate_order_number, status_label
from storefront.domain.orders.pricing import compute_pricing


def _line(price: int, qty: int, product_id: str = "p1") -> OrderLine:
    return OrderLine(product_id=product_id, product_name=product_id, quantity=qty, unit_price=Decimal(price))


def test_two_units_over_threshold_ship_free():
    pricing = compute_pricing([_line(600000, 2)])

    assert pricing.subtotal == Decimal("1200000")
    assert pricing.tax == Decimal("120000")
    assert pricing.shipping == Decimal("0")
    assert pricing.discount == Decimal("0")
    assert pricing.total == Decimal("1320000")


def test_free_shipping_threshold_is_inclusive():
    at_threshold = compute_pricing([_line(1000000, 1)])
    below = compute_pricing([_line(999999, 1)])

    assert at_threshold.shipping == Decimal("0")
    assert below.shipping == Decimal("50000")


def test_total_identity_and_tax_rate_hold_across_carts():
    carts = [
        [_line(1, 1)],
        [_line(999999, 1)],
        [_line(250000, 3), _line(125000, 1, "p2")],
        [_line(33333, 7), _line(10, 9, "p2"), _line(28000000, 1, "p3")],
    ]
    for lines in carts:
        pricing = compute_pricing(lines)
        assert pricing.subtotal == sum((line.line_total for line in lines), Decimal("0"))
        assert pricing.tax == pricing.subtotal * Decimal("0.10")
        assert pricing.total == pricing.subtotal + pricing.tax + pricing.shipping - pricing.discount


def test_pricing_overrides_take_precedence_over_settings():
    pricing = compute_pricing(
        [_line(100, 1)],
        tax_rate=Decimal("0.08"),
        free_shipping_threshold=Decimal("50"),
        standard_shipping_fee=Decimal("30000"),
    )
    assert pricing.tax == Decimal("8.00")
    assert pricing.shipping == Decimal("0")


def test_formatting_helpers():
    assert format_vnd(Decimal("1320000.00")) == "1.320.000 ₫"
    assert format_vnd(0) == "0 ₫"
    assert status_label("shipped") == "Đang giao hàng"
    assert status_label("unknown") == "unknown"

    number = generate_order_number()
    assert number.startswith("ORD-")
    assert len(number.split("-")[2]) == 6


def test_fractional_cent_tax_rounds_half_up_to_the_cent():
    line = OrderLine(product_id="p1", product_name="p1", quantity=1, unit_price=Decimal("0.05"))
    pricing = compute_pricing([line])

    assert pricing.tax == Decimal("0.01")
    assert pricing.total == Decimal("50000.06")
