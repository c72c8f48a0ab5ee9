"""Coupon record types for the coupons table."""

from datetime import datetime
from enum import Enum
from typing import TypedDict

from pydantic import BaseModel, ConfigDict, Field


class DiscountType(str, Enum):
    """How a coupon's discount_value is interpreted."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponRecord(BaseModel):
    """coupons table row.

    usage_count is a global counter of verified orders that used the code.
    usage_limit is enforced per user, against that user's own paid orders.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    code: str
    discount_type: DiscountType
    discount_value: float = Field(ge=0)
    min_order_value: int | None = Field(default=None, ge=0)
    max_discount: int | None = Field(default=None, ge=0)
    expiry_date: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=0)
    usage_count: int = Field(default=0, ge=0)
    is_active: bool = True
    created_at: datetime | None = None


class CouponWrite(TypedDict, total=False):
    """Columns an administrator may set on a coupon.

    usage_count is deliberately absent; only payment verification moves it.
    """

    code: str
    discount_type: str
    discount_value: float
    min_order_value: int | None
    max_discount: int | None
    expiry_date: str | None
    usage_limit: int | None
    is_active: bool
