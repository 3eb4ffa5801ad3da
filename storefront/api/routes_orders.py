from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from storefront.core.security import Principal, get_principal, require_admin
from storefront.domain.orders.commands import CancelOrderRequest, CreateOrderRequest, UpdateOrderStatusRequest
from storefront.domain.orders.service import OrderService
from storefront.persistence.pg import get_session

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _admin(principal: Principal = Depends(get_principal)) -> Principal:
    require_admin(principal)
    return principal


@router.post("", status_code=201)
def create_order(
    payload: CreateOrderRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    order = OrderService(session).create_order(principal, payload)
    return {"message": "Order created successfully", "order": order}


@router.get("")
def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    status: str | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    return OrderService(session).list_orders(principal, page=page, limit=limit, status=status)


@router.get("/stats")
def order_stats(
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    return {"stats": OrderService(session).order_stats(principal)}


@router.get("/admin/all")
def admin_list_orders(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    status: str | None = Query(default=None),
    payment_status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    principal: Principal = Depends(_admin),
    session: Session = Depends(get_session),
):
    return OrderService(session).admin_list_orders(
        principal,
        page=page,
        limit=limit,
        status=status,
        payment_status=payment_status,
        search=search,
    )


@router.put("/admin/{order_id}/status")
def admin_update_status(
    order_id: str,
    payload: UpdateOrderStatusRequest,
    principal: Principal = Depends(_admin),
    session: Session = Depends(get_session),
):
    order = OrderService(session).admin_update_status(principal, order_id, payload.status, payload.note)
    return {"message": "Order status updated successfully", "order": order}


@router.get("/{order_id}")
def get_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    return {"order": OrderService(session).get_order(principal, order_id)}


@router.put("/{order_id}/cancel")
def cancel_order(
    order_id: str,
    payload: CancelOrderRequest | None = Body(default=None),
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    reason = payload.reason if payload else None
    order = OrderService(session).cancel_order(principal, order_id, reason)
    return {"message": "Order cancelled successfully", "order": order}
