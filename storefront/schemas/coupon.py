"""Coupon Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from storefront.models.coupon import CouponRecord, DiscountType

MAX_PERCENTAGE = 100


def _normalize_code(value: str | None) -> str | None:
    return value.strip().upper() if isinstance(value, str) else value


def check_percentage(discount_type: DiscountType | str | None, discount_value: float | None) -> None:
    """Reject a percentage discount above 100.

    Raises:
        ValueError: Percentage is out of range.
    """
    if discount_value is None or discount_type is None:
        return
    if DiscountType(discount_type) is DiscountType.PERCENTAGE and discount_value > MAX_PERCENTAGE:
        raise ValueError(f"Percentage discount cannot exceed {MAX_PERCENTAGE}")


class CouponCreate(BaseModel):
    """Schema for creating a coupon (admin)."""

    code: str = Field(min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value: float = Field(ge=0)
    min_order_value: int | None = Field(default=None, ge=0)
    max_discount: int | None = Field(default=None, ge=0)
    expiry_date: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=0, description="Uses allowed per user")
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _upper(cls, value: str) -> str:
        return _normalize_code(value)

    @model_validator(mode="after")
    def _percentage_in_range(self) -> "CouponCreate":
        check_percentage(self.discount_type, self.discount_value)
        return self


class CouponUpdate(BaseModel):
    """Partial coupon update (admin). usage_count is not accepted.

    Omitted fields are left alone. Columns that cannot be empty
    (code, discount_type, discount_value, is_active) reject an explicit
    null; the optional limits accept null to clear them.
    """

    model_config = ConfigDict(extra="ignore")

    code: str | None = Field(default=None, min_length=1, max_length=64)
    discount_type: DiscountType | None = None
    discount_value: float | None = Field(default=None, ge=0)
    min_order_value: int | None = Field(default=None, ge=0)
    max_discount: int | None = Field(default=None, ge=0)
    expiry_date: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=0)
    is_active: bool | None = None

    @field_validator("code", "discount_type", "discount_value", "is_active", mode="before")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be null; omit it to keep the current value")
        return value

    @field_validator("code")
    @classmethod
    def _upper(cls, value: str | None) -> str | None:
        return _normalize_code(value)

    @model_validator(mode="after")
    def _percentage_in_range(self) -> "CouponUpdate":
        check_percentage(self.discount_type, self.discount_value)
        return self


class CouponResponse(BaseModel):
    """Schema for coupon API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    discount_type: DiscountType
    discount_value: float
    min_order_value: int | None = None
    max_discount: int | None = None
    expiry_date: datetime | None = None
    usage_limit: int | None = None
    usage_count: int = 0
    is_active: bool = True

    @classmethod
    def from_record(cls, coupon: CouponRecord) -> "CouponResponse":
        return cls.model_validate(coupon, from_attributes=True)


class UserCouponResponse(CouponResponse):
    """Active coupon annotated with the caller's own usage."""

    user_usage_count: int = Field(description="Caller's paid orders that used this code")
    remaining_uses: int | None = Field(description="Uses left for the caller; null when unlimited")


class CouponValidateRequest(BaseModel):
    """Schema for POST /coupons/validate."""

    code: str = Field(min_length=1, max_length=64, description="Coupon code")
    subtotal: int = Field(gt=0, description="Cart subtotal the coupon would apply to")

    @field_validator("code")
    @classmethod
    def _upper(cls, value: str) -> str:
        return _normalize_code(value)


class CouponSummary(BaseModel):
    """Coupon fields echoed back by a successful validation."""

    id: str
    code: str
    discount_type: DiscountType
    discount_value: float
    max_discount: int | None = None


class CouponValidateResponse(BaseModel):
    """Result of checking a coupon against a subtotal."""

    valid: bool
    message: str
    discount: int | None = None
    coupon: CouponSummary | None = None
