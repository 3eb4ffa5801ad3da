from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterator


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Pricing:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.tax + self.shipping - self.discount


@dataclass(frozen=True)
class TimelineEntry:
    status: str
    note: str
    actor_id: str
    actor_role: str
    at: datetime


@dataclass(frozen=True)
class Timeline:
    """Append-only status history.

    ``append`` returns a new timeline; existing entries are never touched.
    """

    entries: tuple[TimelineEntry, ...] = ()

    def append(self, entry: TimelineEntry) -> Timeline:
        return Timeline(entries=self.entries + (entry,))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TimelineEntry]:
        return iter(self.entries)

    @property
    def first(self) -> TimelineEntry | None:
        return self.entries[0] if self.entries else None

    @property
    def latest(self) -> TimelineEntry | None:
        return self.entries[-1] if self.entries else None


@dataclass(frozen=True)
class Address:
    first_name: str
    last_name: str
    street: str
    city: str
    state: str
    zip_code: str
    phone: str
    email: str | None = None
    country: str = "VN"

    def as_dict(self) -> dict:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "phone": self.phone,
            "email": self.email,
            "country": self.country,
        }


@dataclass(frozen=True)
class OrderAggregate:
    order_id: str
    order_number: str
    customer_id: str
    lines: tuple[OrderLine, ...]
    pricing: Pricing
    payment_method: str
    shipping_address: Address
    billing_address: Address
    status: str
    timeline: Timeline
    created_at: datetime
    customer_note: str = ""
    payment_status: str = "pending"
    delivered_at: datetime | None = None
    updated_at: datetime | None = None

    def with_transition(self, entry: TimelineEntry, delivered_at: datetime | None = None) -> OrderAggregate:
        return replace(
            self,
            status=entry.status,
            timeline=self.timeline.append(entry),
            updated_at=entry.at,
            delivered_at=delivered_at if delivered_at is not None else self.delivered_at,
        )
