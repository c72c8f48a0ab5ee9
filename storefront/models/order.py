"""Order record types for the orders table."""

from datetime import datetime
from enum import Enum
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """Fulfilment status of an order."""

    PLACED = "placed"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def rank(self) -> int | None:
        """Position along the fulfilment path; canceled sits outside it."""
        return STATUS_RANK.get(self)

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELED)


STATUS_RANK: dict[OrderStatus, int] = {
    OrderStatus.PLACED: 1,
    OrderStatus.CONFIRMED: 2,
    OrderStatus.PREPARING: 3,
    OrderStatus.OUT_FOR_DELIVERY: 4,
    OrderStatus.COMPLETED: 5,
}


class PaymentStatus(str, Enum):
    """Payment status of an order."""

    PENDING = "pending"
    VERIFIED = "verified"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUND_INITIATED = "refund_initiated"


# Orders in these states consume a user's coupon allowance
PAID_STATUSES: tuple[PaymentStatus, ...] = (PaymentStatus.VERIFIED, PaymentStatus.COMPLETED)

# Orders a payment callback may still promote
PROMOTABLE_STATUSES: tuple[PaymentStatus, ...] = (PaymentStatus.PENDING, PaymentStatus.FAILED)

# Orders shown in a customer's history
HISTORY_STATUSES: tuple[PaymentStatus, ...] = (
    PaymentStatus.VERIFIED,
    PaymentStatus.COMPLETED,
    PaymentStatus.REFUND_INITIATED,
)


class SelectedOption(BaseModel):
    """Size or extra as priced when the order was created."""

    model_config = ConfigDict(frozen=True)

    name: str
    extra_price: int = Field(ge=0)


class OrderLine(BaseModel):
    """Frozen snapshot of one purchased item.

    Never a live reference to the catalog: it records what was bought and
    at which price.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    item_id: str
    name: str
    image_url: str | None = None
    base_price: int = Field(ge=0)
    unit_price: int = Field(ge=0)
    size: SelectedOption | None = None
    extras: tuple[SelectedOption, ...] = ()
    line_total: int = Field(ge=0)


class OrderRecord(BaseModel):
    """orders table row.

    security_hash is server-internal and must never leave through an API
    response model.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    user_email: str
    user_name: str
    address: str
    cart: list[OrderLine]
    subtotal: int = Field(ge=0)
    tax: int = Field(ge=0)
    delivery_fee: int = Field(ge=0)
    coupon_code: str | None = None
    discount_amount: int = Field(default=0, ge=0)
    total: int = Field(ge=0)
    currency: str = "INR"
    gateway_order_id: str
    gateway_payment_id: str | None = None
    security_hash: str
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: OrderStatus | None = None
    webhook_received: bool = False
    created_at: datetime
    verified_at: datetime | None = None
    canceled_at: datetime | None = None

    def is_owned_by(self, email: str | None) -> bool:
        return email is not None and self.user_email == email


class OrderInsert(TypedDict):
    """Row written when an order intent is created."""

    user_email: str
    user_name: str
    address: str
    cart: list[dict[str, Any]]
    subtotal: int
    tax: int
    delivery_fee: int
    coupon_code: str | None
    discount_amount: int
    total: int
    currency: str
    gateway_order_id: str
    security_hash: str
    payment_status: str
    created_at: str
