"""Database model type definitions."""

from storefront.models.catalog import CatalogItem, OptionEntry
from storefront.models.coupon import CouponRecord, CouponWrite, DiscountType
from storefront.models.order import (
    HISTORY_STATUSES,
    PAID_STATUSES,
    PROMOTABLE_STATUSES,
    OrderInsert,
    OrderLine,
    OrderRecord,
    OrderStatus,
    PaymentStatus,
    SelectedOption,
)
from storefront.models.profile import Profile, ProfileFlags

__all__ = [
    "CatalogItem",
    "OptionEntry",
    "CouponRecord",
    "CouponWrite",
    "DiscountType",
    "HISTORY_STATUSES",
    "PAID_STATUSES",
    "PROMOTABLE_STATUSES",
    "OrderInsert",
    "OrderLine",
    "OrderRecord",
    "OrderStatus",
    "PaymentStatus",
    "SelectedOption",
    "Profile",
    "ProfileFlags",
]
