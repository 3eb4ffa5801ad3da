"""Order status rules.

Customer cancellation is gated; admin updates may move an order to any
status from any status. Every transition, whichever path produced it, is
recorded as a new timeline entry.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from storefront.core.errors import AlreadyCancelled, NotCancellable, ValidationError
from storefront.domain.orders.aggregates import OrderAggregate, TimelineEntry


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


ORDER_STATUSES: tuple[str, ...] = tuple(s.value for s in OrderStatus)
INITIAL_STATUS = OrderStatus.PENDING.value

CUSTOMER_NON_CANCELLABLE = frozenset({OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value})

DEFAULT_CREATED_NOTE = "Order created"
DEFAULT_CANCEL_NOTE = "Order cancelled by customer"


def parse_status(value: str) -> str:
    if value not in ORDER_STATUSES:
        raise ValidationError(
            "Validation failed",
            details=[{"field": "status", "message": "Invalid status"}],
        )
    return value


def ensure_customer_cancellable(order_id: str, status: str) -> None:
    if status == OrderStatus.CANCELLED.value:
        raise AlreadyCancelled(order_id)
    if status in CUSTOMER_NON_CANCELLABLE:
        raise NotCancellable(order_id, status)


def default_admin_note(status: str) -> str:
    return f"Status updated to {status}"


def make_entry(status: str, note: str, actor_id: str, actor_role: str, at: datetime | None = None) -> TimelineEntry:
    return TimelineEntry(
        status=status,
        note=note,
        actor_id=actor_id,
        actor_role=actor_role,
        at=at or datetime.now(timezone.utc),
    )


def initial_entry(actor_id: str, actor_role: str, at: datetime | None = None) -> TimelineEntry:
    return make_entry(INITIAL_STATUS, DEFAULT_CREATED_NOTE, actor_id, actor_role, at)


def customer_cancel(
    order: OrderAggregate,
    actor_id: str,
    actor_role: str,
    reason: str | None = None,
    at: datetime | None = None,
) -> OrderAggregate:
    ensure_customer_cancellable(order.order_id, order.status)
    entry = make_entry(OrderStatus.CANCELLED.value, reason or DEFAULT_CANCEL_NOTE, actor_id, actor_role, at)
    return order.with_transition(entry)


def admin_transition(
    order: OrderAggregate,
    new_status: str,
    actor_id: str,
    actor_role: str,
    note: str | None = None,
    at: datetime | None = None,
) -> OrderAggregate:
    # No transition graph: backward moves such as delivered -> pending are accepted.
    status = parse_status(new_status)
    entry = make_entry(status, note or default_admin_note(status), actor_id, actor_role, at)
    delivered_at = entry.at if status == OrderStatus.DELIVERED.value else None
    return order.with_transition(entry, delivered_at=delivered_at)
