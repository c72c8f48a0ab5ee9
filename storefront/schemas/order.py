"""Order Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from storefront.models.order import OrderLine, OrderRecord, OrderStatus, PaymentStatus


def _option_name(value: Any) -> Any:
    # Legacy carts send whole option objects; keep the name only
    if isinstance(value, dict):
        return value.get("name")
    return value


class CartLineIn(BaseModel):
    """One untrusted cart entry: a catalog reference and option names.

    Any price the client sends is dropped here; pricing is always
    resolved against the catalog.
    """

    model_config = ConfigDict(extra="ignore")

    item_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("item_id", "_id", "id"),
        description="Catalog item ID",
    )
    size: str | None = Field(default=None, description="Chosen size name")
    extras: list[str] = Field(default_factory=list, description="Chosen extra ingredient names")

    @field_validator("item_id")
    @classmethod
    def _canonical_item_id(cls, value: str) -> str:
        # Catalog keys come back in canonical lowercase UUID form
        try:
            return str(UUID(value))
        except ValueError:
            return value

    @field_validator("size", mode="before")
    @classmethod
    def _size_name(cls, value: Any) -> Any:
        return _option_name(value)

    @field_validator("extras", mode="before")
    @classmethod
    def _extra_names(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [_option_name(entry) for entry in value]
        return value


class OrderCreate(BaseModel):
    """Schema for creating an order intent via POST /orders."""

    name: str = Field(min_length=1, max_length=255, description="Customer name")
    address: str = Field(min_length=5, max_length=1000, description="Delivery address")
    cart: list[CartLineIn] = Field(min_length=1, description="Cart lines")
    coupon_code: str | None = Field(default=None, max_length=64, description="Optional coupon code")


class OrderLineResponse(BaseModel):
    """Priced cart line as stored on the order."""

    model_config = ConfigDict(from_attributes=True)

    item_id: str
    name: str
    image_url: str | None = None
    base_price: int
    unit_price: int
    size: dict[str, Any] | None = None
    extras: list[dict[str, Any]] = Field(default_factory=list)
    line_total: int

    @classmethod
    def from_line(cls, line: OrderLine) -> "OrderLineResponse":
        return cls.model_validate(line.model_dump(mode="json"))


class OrderResponse(BaseModel):
    """Client-facing order. The integrity fingerprint is not part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Order identifier")
    user_email: str
    user_name: str
    address: str
    cart: list[OrderLineResponse]
    subtotal: int
    tax: int
    delivery_fee: int
    coupon_code: str | None = None
    discount_amount: int = 0
    total: int
    currency: str
    gateway_order_id: str
    gateway_payment_id: str | None = None
    payment_status: PaymentStatus
    status: OrderStatus | None = None
    created_at: datetime
    verified_at: datetime | None = None
    canceled_at: datetime | None = None

    @classmethod
    def from_record(cls, order: OrderRecord) -> "OrderResponse":
        """Build the response from a stored order, leaving security_hash behind."""
        data = order.model_dump(exclude={"security_hash", "webhook_received", "cart"})
        return cls(**data, cart=[OrderLineResponse.from_line(line) for line in order.cart])


class OrderIntentResponse(BaseModel):
    """Everything the checkout widget needs to collect payment."""

    gateway_order_id: str = Field(description="Razorpay order ID")
    amount: int = Field(description="Amount in minor currency units (paise)")
    currency: str = Field(description="Currency code")
    key_id: str = Field(description="Public Razorpay key ID for the checkout widget")
    security_hash: str = Field(description="Fingerprint to echo back at verification")
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    items: list[OrderResponse] = Field(description="Orders, newest first")


class OrderStatusUpdate(BaseModel):
    """Schema for PATCH /orders/{id}/status.

    Left as a plain string so unknown values reach the lifecycle rules
    and come back as a validation error rather than a schema error.
    """

    status: str = Field(min_length=1, description="Target status")


class OrderStatusResponse(BaseModel):
    """Lightweight status poll response."""

    status: OrderStatus | None = None
    payment_status: PaymentStatus
