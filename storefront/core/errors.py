from __future__ import annotations

from typing import Any


class StorefrontError(Exception):
    """Base for every error surfaced to API callers.

    Each subclass carries a stable machine-readable ``code`` and the HTTP
    status the API layer renders it with.
    """

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            body["errors"] = self.details
        return body


class ValidationError(StorefrontError):
    status_code = 400
    code = "VALIDATION_FAILED"


class NotFoundError(StorefrontError):
    status_code = 404
    code = "NOT_FOUND"


class ProductNotFound(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class OrderNotFound(NotFoundError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        super().__init__("Order not found")
        self.order_id = order_id


class StateConflictError(StorefrontError):
    status_code = 409
    code = "STATE_CONFLICT"


class ProductUnavailable(StateConflictError):
    code = "PRODUCT_NOT_AVAILABLE"

    def __init__(self, product_id: str, name: str):
        super().__init__(f"Product {name} is not available")
        self.product_id = product_id


class InsufficientStock(StateConflictError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, name: str | None = None, requested: int | None = None, available: int | None = None):
        super().__init__(f"Insufficient stock for product {name or product_id}")
        self.product_id = product_id
        self.requested = requested
        self.available = available


class AlreadyCancelled(StateConflictError):
    code = "ORDER_ALREADY_CANCELLED"

    def __init__(self, order_id: str):
        super().__init__("Order is already cancelled")
        self.order_id = order_id


class NotCancellable(StateConflictError):
    code = "CANNOT_CANCEL_SHIPPED_ORDER"

    def __init__(self, order_id: str, status: str):
        super().__init__(f"Cannot cancel order that has been {status}")
        self.order_id = order_id
        self.status = status


class AuthenticationError(StorefrontError):
    status_code = 401
    code = "INVALID_TOKEN"


class AuthorizationError(StorefrontError):
    status_code = 403
    code = "FORBIDDEN"


class InternalError(StorefrontError):
    status_code = 500
    code = "INTERNAL_ERROR"
