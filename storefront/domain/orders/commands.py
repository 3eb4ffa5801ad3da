from __future__ import annotations

from typing import Any, Iterable, Literal, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from storefront.core.errors import ValidationError
from storefront.domain.orders.aggregates import Address

PaymentMethod = Literal["cash", "bank_transfer", "credit_card", "paypal", "momo", "zalopay"]

PHONE_PATTERN = r"^[0-9]{10,11}$"


class _RequestModel(BaseModel):
    # Accept both snake_case and the camelCase keys older storefront clients send.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class OrderItemRequest(_RequestModel):
    product_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("product_id", "productId", "product"),
    )
    quantity: int = Field(ge=1)


class AddressRequest(_RequestModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    phone: str = Field(pattern=PHONE_PATTERN)
    email: str | None = None
    country: str = "VN"

    def to_address(self) -> Address:
        return Address(
            first_name=self.first_name,
            last_name=self.last_name,
            street=self.street,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            phone=self.phone,
            email=self.email,
            country=self.country,
        )


class OrderNotesRequest(_RequestModel):
    customer: str = ""


class CreateOrderRequest(_RequestModel):
    items: list[OrderItemRequest] = Field(min_length=1)
    payment_method: PaymentMethod
    shipping_address: AddressRequest
    billing_address: AddressRequest | None = None
    notes: OrderNotesRequest | None = None


class CancelOrderRequest(_RequestModel):
    reason: str | None = None


class UpdateOrderStatusRequest(_RequestModel):
    status: Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded"]
    note: str | None = None


def field_errors(errors: Iterable[Mapping[str, Any]], strip_prefix: tuple[str, ...] = ()) -> list[dict[str, str]]:
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in strip_prefix:
            loc = loc[1:]
        details.append({"field": ".".join(loc), "message": str(err.get("msg", "invalid value"))})
    return details


def parse_create_order(payload: CreateOrderRequest | Mapping[str, Any]) -> CreateOrderRequest:
    if isinstance(payload, CreateOrderRequest):
        return payload
    try:
        return CreateOrderRequest.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError("Validation failed", details=field_errors(exc.errors())) from exc
