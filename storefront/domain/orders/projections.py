from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

from storefront.api.utils import as_utc, isoformat_utc
from storefront.catalog.store import ProductSnapshot
from storefront.domain.orders.aggregates import (
    Address,
    OrderAggregate,
    OrderLine,
    Pricing,
    Timeline,
    TimelineEntry,
)
from storefront.domain.orders.formatting import format_vnd, payment_method_label, status_label
from storefront.persistence.models import OrderModel


def _address(raw: Mapping[str, Any]) -> Address:
    return Address(
        first_name=raw.get("first_name", ""),
        last_name=raw.get("last_name", ""),
        street=raw.get("street", ""),
        city=raw.get("city", ""),
        state=raw.get("state", ""),
        zip_code=raw.get("zip_code", ""),
        phone=raw.get("phone", ""),
        email=raw.get("email"),
        country=raw.get("country", "VN"),
    )


def to_aggregate(row: OrderModel) -> OrderAggregate:
    lines = tuple(
        OrderLine(
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=int(item.quantity),
            unit_price=Decimal(item.unit_price),
        )
        for item in row.items
    )
    timeline = Timeline(
        entries=tuple(
            TimelineEntry(
                status=entry.status,
                note=entry.note,
                actor_id=entry.actor_id,
                actor_role=entry.actor_role,
                at=as_utc(entry.created_at),
            )
            for entry in row.timeline
        )
    )
    return OrderAggregate(
        order_id=row.id,
        order_number=row.order_number,
        customer_id=row.customer_id,
        lines=lines,
        pricing=Pricing(
            subtotal=Decimal(row.subtotal),
            tax=Decimal(row.tax),
            shipping=Decimal(row.shipping),
            discount=Decimal(row.discount),
        ),
        payment_method=row.payment_method,
        shipping_address=_address(row.shipping_address or {}),
        billing_address=_address(row.billing_address or {}),
        status=row.status,
        timeline=timeline,
        created_at=as_utc(row.created_at),
        customer_note=row.customer_note or "",
        payment_status=row.payment_status,
        delivered_at=as_utc(row.delivered_at),
        updated_at=as_utc(row.updated_at),
    )


def _product_summary(product: ProductSnapshot | None) -> dict | None:
    if product is None:
        return None
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "status": product.status,
    }


def pricing_view(pricing: Pricing) -> dict:
    return {
        "subtotal": pricing.subtotal,
        "tax": pricing.tax,
        "shipping": pricing.shipping,
        "discount": pricing.discount,
        "total": pricing.total,
        "display": {
            "subtotal": format_vnd(pricing.subtotal),
            "tax": format_vnd(pricing.tax),
            "shipping": format_vnd(pricing.shipping),
            "discount": format_vnd(pricing.discount),
            "total": format_vnd(pricing.total),
        },
    }


def timeline_view(timeline: Timeline) -> list[dict]:
    return [
        {
            "status": entry.status,
            "note": entry.note,
            "updated_by": {"id": entry.actor_id, "role": entry.actor_role},
            "timestamp": isoformat_utc(entry.at),
        }
        for entry in timeline
    ]


def order_summary_view(order: OrderAggregate) -> dict:
    return {
        "id": order.order_id,
        "order_number": order.order_number,
        "status": order.status,
        "status_label": status_label(order.status),
        "payment_status": order.payment_status,
        "total": order.pricing.total,
        "item_count": sum(line.quantity for line in order.lines),
        "created_at": isoformat_utc(order.created_at),
    }


def order_view(order: OrderAggregate, products: Mapping[str, ProductSnapshot] | None = None) -> dict:
    """Full order document with product references resolved for display.

    ``unit_price``/``line_total`` are the frozen snapshot; ``product`` reflects
    the catalog now and is ``None`` for products no longer in it.
    """
    products = products or {}
    return {
        "id": order.order_id,
        "order_number": order.order_number,
        "customer": {"id": order.customer_id},
        "status": order.status,
        "status_label": status_label(order.status),
        "items": [
            {
                "product_id": line.product_id,
                "product_name": line.product_name,
                "product": _product_summary(products.get(line.product_id)),
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "line_total": line.line_total,
            }
            for line in order.lines
        ],
        "pricing": pricing_view(order.pricing),
        "payment_method": order.payment_method,
        "payment_method_label": payment_method_label(order.payment_method),
        "payment_status": order.payment_status,
        "shipping_address": order.shipping_address.as_dict(),
        "billing_address": order.billing_address.as_dict(),
        "notes": {"customer": order.customer_note},
        "timeline": timeline_view(order.timeline),
        "created_at": isoformat_utc(order.created_at),
        "updated_at": isoformat_utc(order.updated_at),
        "delivered_at": isoformat_utc(order.delivered_at),
    }
