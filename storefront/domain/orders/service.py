"""Order creation and lifecycle operations.

Every operation runs inside the caller's session and never commits; the
request's ``session_scope`` does. Order rows, timeline rows and stock
counters therefore change in one database transaction. Each operation
writes under a SAVEPOINT: when it fails part-way only its own writes are
rolled back, so a rejected order leaves neither an order row nor a stock
change behind while earlier work in the same session survives.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from storefront.api.utils import clamp_page, now_utc, pagination
from storefront.catalog.store import ProductCatalog, ProductSnapshot
from storefront.core.config import get_settings
from storefront.core.errors import (
    InsufficientStock,
    OrderNotFound,
    ProductUnavailable,
    StateConflictError,
    StorefrontError,
)
from storefront.core.security import Principal, require_admin
from storefront.domain.orders import state_machine
from storefront.domain.orders.aggregates import OrderAggregate, OrderLine, TimelineEntry
from storefront.domain.orders.commands import CreateOrderRequest, OrderItemRequest, parse_create_order
from storefront.domain.orders.formatting import generate_order_number
from storefront.domain.orders.pricing import compute_pricing
from storefront.domain.orders.projections import order_summary_view, order_view, to_aggregate
from storefront.persistence.models import OrderItemModel, OrderModel, OrderTimelineModel

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, session: Session, catalog: ProductCatalog | None = None):
        self.session = session
        self.catalog = catalog or ProductCatalog(session)

    # -- commands ---------------------------------------------------------

    def create_order(self, principal: Principal, request: CreateOrderRequest | Mapping[str, Any]) -> dict:
        req = parse_create_order(request)
        try:
            with self.session.begin_nested():
                lines = self._resolve_lines(req.items)
                pricing = compute_pricing(lines)
                now = now_utc()
                shipping = req.shipping_address.to_address()
                billing = req.billing_address.to_address() if req.billing_address else shipping

                row = OrderModel(
                    order_number=generate_order_number(now),
                    customer_id=principal.id,
                    status=state_machine.INITIAL_STATUS,
                    payment_method=req.payment_method,
                    payment_status="pending",
                    subtotal=pricing.subtotal,
                    tax=pricing.tax,
                    shipping=pricing.shipping,
                    discount=pricing.discount,
                    total=pricing.total,
                    shipping_address=shipping.as_dict(),
                    billing_address=billing.as_dict(),
                    shipping_first_name=shipping.first_name,
                    shipping_last_name=shipping.last_name,
                    customer_note=req.notes.customer if req.notes else "",
                    created_at=now,
                    updated_at=now,
                )
                row.items = [
                    OrderItemModel(
                        position=position,
                        product_id=line.product_id,
                        product_name=line.product_name,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        line_total=line.line_total,
                    )
                    for position, line in enumerate(lines)
                ]
                self.session.add(row)
                self.session.flush()
                self._record(row.id, state_machine.initial_entry(principal.id, principal.role, now))

                for line in lines:
                    self.catalog.adjust_stock(line.product_id, -line.quantity)
        except StorefrontError as exc:
            logger.info("order rejected: customer_id=%s code=%s", principal.id, exc.code)
            raise

        logger.info(
            "order created: order_number=%s customer_id=%s items=%s total=%s",
            row.order_number,
            principal.id,
            len(lines),
            pricing.total,
        )
        return self._view(self._reload(row.id))

    def cancel_order(self, principal: Principal, order_id: str, reason: str | None = None) -> dict:
        try:
            with self.session.begin_nested():
                order = to_aggregate(self._owned(principal, order_id))
                cancelled = state_machine.customer_cancel(order, principal.id, principal.role, reason)
                entry = cancelled.timeline.latest
                swapped = self.session.execute(
                    update(OrderModel)
                    .where(OrderModel.id == order_id)
                    .where(OrderModel.customer_id == principal.id)
                    .where(OrderModel.status.not_in(["cancelled", *state_machine.CUSTOMER_NON_CANCELLABLE]))
                    .values(status=entry.status, updated_at=entry.at)
                    .execution_options(synchronize_session=False)
                ).rowcount
                if swapped == 0:
                    self._raise_cancel_conflict(principal, order_id)
                self._record(order_id, entry)

                for line in order.lines:
                    self.catalog.adjust_stock(line.product_id, line.quantity)
        except StorefrontError as exc:
            logger.info("cancel rejected: order_id=%s customer_id=%s code=%s", order_id, principal.id, exc.code)
            raise

        logger.info("order cancelled: order_number=%s customer_id=%s", order.order_number, principal.id)
        return self._view(self._reload(order_id))

    def admin_update_status(
        self,
        principal: Principal,
        order_id: str,
        new_status: str,
        note: str | None = None,
    ) -> dict:
        try:
            require_admin(principal)
            with self.session.begin_nested():
                order = to_aggregate(self._get(order_id))
                updated = state_machine.admin_transition(order, new_status, principal.id, principal.role, note)
                entry = updated.timeline.latest
                values: dict[str, Any] = {"status": entry.status, "updated_at": entry.at}
                if entry.status == state_machine.OrderStatus.DELIVERED.value:
                    values["delivered_at"] = updated.delivered_at
                # Last writer wins on status; the timeline keeps every update.
                self.session.execute(
                    update(OrderModel)
                    .where(OrderModel.id == order_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                self._record(order_id, entry)
        except StorefrontError as exc:
            logger.warning(
                "status update rejected: order_id=%s actor_id=%s code=%s",
                order_id,
                principal.id,
                exc.code,
            )
            raise

        logger.info(
            "order status updated: order_number=%s %s -> %s by %s",
            order.order_number,
            order.status,
            entry.status,
            principal.id,
        )
        return self._view(self._reload(order_id))

    # -- queries ----------------------------------------------------------

    def get_order(self, principal: Principal, order_id: str) -> dict:
        return self._view(self._owned(principal, order_id))

    def list_orders(
        self,
        principal: Principal,
        page: int | None = None,
        limit: int | None = None,
        status: str | None = None,
    ) -> dict:
        settings = get_settings()
        page, limit = clamp_page(page, limit, settings.orders_page_size, settings.max_page_size)
        filters = [OrderModel.customer_id == principal.id]
        if status:
            filters.append(OrderModel.status == status)
        return self._page(filters, page, limit)

    def order_stats(self, principal: Principal) -> list[dict]:
        rows = self.session.execute(
            select(OrderModel.status, func.count(OrderModel.id), func.coalesce(func.sum(OrderModel.total), 0))
            .where(OrderModel.customer_id == principal.id)
            .group_by(OrderModel.status)
            .order_by(OrderModel.status)
        ).all()
        return [{"status": status, "count": int(count), "total_amount": total} for status, count, total in rows]

    def admin_list_orders(
        self,
        principal: Principal,
        page: int | None = None,
        limit: int | None = None,
        status: str | None = None,
        payment_status: str | None = None,
        search: str | None = None,
    ) -> dict:
        require_admin(principal)
        settings = get_settings()
        page, limit = clamp_page(page, limit, settings.admin_orders_page_size, settings.max_page_size)
        filters = []
        if status:
            filters.append(OrderModel.status == status)
        if payment_status:
            filters.append(OrderModel.payment_status == payment_status)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(
                or_(
                    OrderModel.order_number.ilike(pattern),
                    OrderModel.shipping_first_name.ilike(pattern),
                    OrderModel.shipping_last_name.ilike(pattern),
                )
            )
        return self._page(filters, page, limit)

    # -- helpers ----------------------------------------------------------

    def _resolve_lines(self, items: Iterable[OrderItemRequest]) -> list[OrderLine]:
        lines: list[OrderLine] = []
        for item in items:
            product = self.catalog.find_by_id(item.product_id)
            if not product.is_active:
                raise ProductUnavailable(product.id, product.name)
            if product.stock < item.quantity:
                raise InsufficientStock(product.id, product.name, requested=item.quantity, available=product.stock)
            lines.append(
                OrderLine(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=item.quantity,
                    unit_price=product.price,
                )
            )
        return lines

    def _record(self, order_id: str, entry: TimelineEntry) -> None:
        self.session.add(
            OrderTimelineModel(
                order_id=order_id,
                status=entry.status,
                note=entry.note,
                actor_id=entry.actor_id,
                actor_role=entry.actor_role,
                created_at=entry.at,
            )
        )

    def _raise_cancel_conflict(self, principal: Principal, order_id: str) -> None:
        current = self.session.scalar(
            select(OrderModel.status)
            .where(OrderModel.id == order_id)
            .where(OrderModel.customer_id == principal.id)
        )
        if current is None:
            raise OrderNotFound(order_id)
        state_machine.ensure_customer_cancellable(order_id, current)
        raise StateConflictError("Order status changed concurrently", code="ORDER_STATE_CHANGED")

    def _get(self, order_id: str) -> OrderModel:
        row = self.session.get(OrderModel, order_id)
        if row is None:
            raise OrderNotFound(order_id)
        return row

    def _owned(self, principal: Principal, order_id: str) -> OrderModel:
        row = self.session.scalar(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .where(OrderModel.customer_id == principal.id)
        )
        if row is None:
            raise OrderNotFound(order_id)
        return row

    def _reload(self, order_id: str) -> OrderModel:
        # Core UPDATEs and timeline inserts bypass the identity map.
        self.session.flush()
        self.session.expire_all()
        return self._get(order_id)

    def _products_for(self, order: OrderAggregate) -> dict[str, ProductSnapshot]:
        return self.catalog.find_many(sorted({line.product_id for line in order.lines}))

    def _view(self, row: OrderModel) -> dict:
        order = to_aggregate(row)
        return order_view(order, self._products_for(order))

    def _page(self, filters: list, page: int, limit: int) -> dict:
        count_stmt = select(func.count()).select_from(OrderModel)
        stmt = select(OrderModel)
        if filters:
            count_stmt = count_stmt.where(*filters)
            stmt = stmt.where(*filters)
        total = self.session.scalar(count_stmt) or 0
        rows = self.session.scalars(
            stmt.order_by(OrderModel.created_at.desc(), OrderModel.order_number.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return {
            "orders": [order_summary_view(to_aggregate(row)) for row in rows],
            "pagination": pagination(page, limit, total),
        }
