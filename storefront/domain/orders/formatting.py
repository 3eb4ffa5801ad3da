from __future__ import annotations

import secrets
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

STATUS_LABELS_VN = {
    "pending": "Chờ xác nhận",
    "confirmed": "Đã xác nhận",
    "processing": "Đang xử lý",
    "shipped": "Đang giao hàng",
    "delivered": "Đã giao hàng",
    "cancelled": "Đã hủy",
    "refunded": "Đã hoàn tiền",
}

PAYMENT_METHOD_LABELS_VN = {
    "cash": "Thanh toán khi nhận hàng",
    "bank_transfer": "Chuyển khoản ngân hàng",
    "credit_card": "Thẻ tín dụng",
    "paypal": "PayPal",
    "momo": "Ví MoMo",
    "zalopay": "ZaloPay",
}

_ORDER_NUMBER_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(6))
    return f"ORD-{now:%Y%m%d}-{suffix}"


def status_label(status: str) -> str:
    return STATUS_LABELS_VN.get(status, status)


def payment_method_label(method: str) -> str:
    return PAYMENT_METHOD_LABELS_VN.get(method, method)


def format_vnd(amount: Decimal | int) -> str:
    """Render an amount the way vi-VN currency formatting does: ``1.320.000 ₫``."""
    whole = Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if whole < 0 else ""
    grouped = f"{abs(int(whole)):,}".replace(",", ".")
    return f"{sign}{grouped} ₫"
