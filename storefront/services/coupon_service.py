"""Coupon evaluation, usage accounting and administration."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from storefront.api.middleware.error_handler import ConflictError, NotFoundError, ValidationError
from storefront.core.supabase import get_supabase_client
from storefront.models.coupon import CouponRecord, DiscountType
from storefront.models.order import PAID_STATUSES
from storefront.schemas.coupon import CouponCreate, CouponUpdate, check_percentage
from storefront.services.pricing_service import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CouponEvaluation:
    """Outcome of checking a coupon code against a subtotal.

    code and coupon are only set when the coupon is valid.
    """

    valid: bool
    message: str
    discount: int = 0
    code: str | None = None
    coupon: CouponRecord | None = None

    @classmethod
    def rejected(cls, message: str) -> "CouponEvaluation":
        return cls(valid=False, message=message)


def normalize_code(code: str | None) -> str | None:
    """Upper-case and trim a coupon code; blank codes become None."""
    if code is None:
        return None
    normalized = code.strip().upper()
    return normalized or None


def compute_discount(coupon: CouponRecord, subtotal: int) -> int:
    """Discount a coupon grants on a subtotal.

    Percentage discounts are rounded half-up and capped by max_discount.
    Fixed discounts never exceed the subtotal.
    """
    value = Decimal(str(coupon.discount_value))
    if coupon.discount_type is DiscountType.PERCENTAGE:
        discount = round_half_up(Decimal(subtotal) * value / Decimal(100))
        if coupon.max_discount is not None and discount > coupon.max_discount:
            discount = coupon.max_discount
        return discount
    return min(round_half_up(value), subtotal)


class CouponService:
    """Service for coupon validation and management."""

    def __init__(self) -> None:
        """Initialize coupon service with Supabase client."""
        self.client = get_supabase_client()

    async def get_by_code(self, code: str) -> CouponRecord | None:
        """Get a coupon by its (normalized) code.

        Args:
            code: Coupon code.

        Returns:
            CouponRecord | None: The coupon or None if not found.
        """
        response = (
            self.client.table("coupons")
            .select("*")
            .eq("code", code)
            .maybe_single()
            .execute()
        )
        if not response or not response.data:
            return None
        return CouponRecord.model_validate(response.data)

    async def get_coupon(self, coupon_id: str) -> CouponRecord | None:
        response = (
            self.client.table("coupons")
            .select("*")
            .eq("id", coupon_id)
            .maybe_single()
            .execute()
        )
        if not response or not response.data:
            return None
        return CouponRecord.model_validate(response.data)

    async def count_user_usage(self, user_email: str, code: str) -> int:
        """Count the user's paid orders that used a coupon code.

        Pending and failed orders never consume allowance.

        Args:
            user_email: Order owner email.
            code: Normalized coupon code.

        Returns:
            int: Number of verified or completed orders with this code.
        """
        response = (
            self.client.table("orders")
            .select("id", count="exact")
            .eq("user_email", user_email)
            .eq("coupon_code", code)
            .in_("payment_status", [status.value for status in PAID_STATUSES])
            .execute()
        )
        if response.count is not None:
            return response.count
        return len(response.data or [])

    async def evaluate(self, code: str | None, subtotal: int, user_email: str) -> CouponEvaluation:
        """Check a coupon code against a subtotal for a user.

        Checks run in order: existence, active flag, expiry, the user's
        own usage against usage_limit, then the minimum order value.

        Args:
            code: Raw code as typed by the customer.
            subtotal: Server-computed cart subtotal.
            user_email: Acting user's email.

        Returns:
            CouponEvaluation: Valid with a discount, or a rejection message.
        """
        normalized = normalize_code(code)
        if normalized is None:
            return CouponEvaluation.rejected("No coupon code supplied")

        coupon = await self.get_by_code(normalized)
        if coupon is None:
            return CouponEvaluation.rejected("Invalid coupon code")

        if not coupon.is_active:
            return CouponEvaluation.rejected("This coupon is no longer active")

        if coupon.expiry_date is not None and _as_utc(coupon.expiry_date) < datetime.now(timezone.utc):
            return CouponEvaluation.rejected("This coupon has expired")

        if coupon.usage_limit is not None:
            used = await self.count_user_usage(user_email, coupon.code)
            if used >= coupon.usage_limit:
                return CouponEvaluation.rejected(
                    f"You have reached the usage limit ({coupon.usage_limit}) for this coupon"
                )

        if coupon.min_order_value is not None and subtotal < coupon.min_order_value:
            return CouponEvaluation.rejected(f"Minimum order value of ₹{coupon.min_order_value} required")

        discount = compute_discount(coupon, subtotal)
        return CouponEvaluation(
            valid=True,
            message=f"Coupon applied! You saved ₹{discount}",
            discount=discount,
            code=coupon.code,
            coupon=coupon,
        )

    async def apply_to_order(self, code: str | None, subtotal: int, user_email: str) -> tuple[str | None, int]:
        """Evaluate a coupon during checkout.

        A bad code never blocks checkout: the order just gets no discount
        and does not carry the code.

        Returns:
            tuple: (normalized code or None, discount amount)
        """
        if normalize_code(code) is None:
            return None, 0

        evaluation = await self.evaluate(code, subtotal, user_email)
        if not evaluation.valid:
            logger.info("Coupon %s not applied for %s: %s", normalize_code(code), user_email, evaluation.message)
            return None, 0
        return evaluation.code, evaluation.discount

    async def increment_usage(self, code: str) -> None:
        """Add one to a coupon's global usage counter.

        Runs as a single UPDATE in the database so concurrent increments
        cannot overwrite each other.
        """
        self.client.rpc("increment_coupon_usage", {"coupon_code": code}).execute()
        logger.info("Incremented usage for coupon %s", code)

    async def list_coupons(self, active_only: bool = False) -> list[CouponRecord]:
        query = self.client.table("coupons").select("*")
        if active_only:
            query = query.eq("is_active", True)
        response = query.order("created_at", desc=True).execute()
        return [CouponRecord.model_validate(row) for row in response.data or []]

    async def list_for_user(self, user_email: str) -> list[tuple[CouponRecord, int, int | None]]:
        """Active coupons with the user's usage and remaining uses.

        Returns:
            list[tuple]: (coupon, user_usage_count, remaining_uses or None if unlimited)
        """
        result = []
        for coupon in await self.list_coupons(active_only=True):
            used = await self.count_user_usage(user_email, coupon.code)
            remaining = max(0, coupon.usage_limit - used) if coupon.usage_limit is not None else None
            result.append((coupon, used, remaining))
        return result

    async def create_coupon(self, data: CouponCreate) -> CouponRecord:
        """Create a coupon.

        Raises:
            ConflictError: If the code is already taken.
        """
        if await self.get_by_code(data.code) is not None:
            raise ConflictError("Coupon code already exists")

        row = data.model_dump(mode="json")
        row["usage_count"] = 0
        response = self.client.table("coupons").insert(row).execute()
        logger.info("Created coupon %s", data.code)
        return CouponRecord.model_validate(response.data[0])

    async def update_coupon(self, coupon_id: str, data: CouponUpdate) -> CouponRecord:
        """Apply a partial update to a coupon.

        Raises:
            ConflictError: If the new code belongs to another coupon.
            NotFoundError: If the coupon does not exist.
            ValidationError: If the result would be a percentage above 100.
        """
        update_data = data.model_dump(mode="json", exclude_unset=True)

        if "discount_type" in update_data or "discount_value" in update_data:
            current = await self.get_coupon(coupon_id)
            if current is None:
                raise NotFoundError("Coupon not found")
            try:
                check_percentage(
                    update_data.get("discount_type", current.discount_type),
                    update_data.get("discount_value", current.discount_value),
                )
            except ValueError as e:
                raise ValidationError(str(e)) from e

        if update_data.get("code"):
            response = (
                self.client.table("coupons")
                .select("id")
                .eq("code", update_data["code"])
                .neq("id", coupon_id)
                .execute()
            )
            if response.data:
                raise ConflictError("Coupon code already exists")

        if not update_data:
            coupon = await self.get_coupon(coupon_id)
            if coupon is None:
                raise NotFoundError("Coupon not found")
            return coupon

        response = (
            self.client.table("coupons")
            .update(update_data)
            .eq("id", coupon_id)
            .execute()
        )
        if not response.data:
            raise NotFoundError("Coupon not found")
        return CouponRecord.model_validate(response.data[0])

    async def delete_coupon(self, coupon_id: str) -> None:
        """Delete a coupon.

        Raises:
            NotFoundError: If the coupon does not exist.
        """
        response = self.client.table("coupons").delete().eq("id", coupon_id).execute()
        if not response.data:
            raise NotFoundError("Coupon not found")
        logger.info("Deleted coupon %s", coupon_id)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
