"""Order intent creation and order queries."""

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from storefront.api.middleware.error_handler import (
    AuthorizationError,
    GatewayError,
    OrderNotFoundError,
)
from storefront.core.config import get_settings
from storefront.core.payment_gateway import GATEWAY_REQUEST_ERRORS, get_payment_gateway, is_gateway_configured
from storefront.core.supabase import get_supabase_client
from storefront.models.order import HISTORY_STATUSES, OrderInsert, OrderLine, OrderRecord, PaymentStatus
from storefront.schemas.auth import Principal
from storefront.schemas.order import OrderCreate
from storefront.services.coupon_service import CouponService
from storefront.services.pricing_service import PricingService

logger = logging.getLogger(__name__)


def compute_security_hash(lines: list[OrderLine], total: int) -> str:
    """Fingerprint an order's priced cart and total.

    The cart is serialized with sorted keys and no whitespace so the same
    snapshot always yields the same digest.

    Args:
        lines: Priced cart snapshot.
        total: Final order total.

    Returns:
        str: Hex SHA-256 digest.
    """
    canonical = json.dumps(
        [line.model_dump(mode="json") for line in lines],
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(f"{canonical}|{total}".encode("utf-8")).hexdigest()


def hashes_match(expected: str, supplied: str) -> bool:
    """Constant-time fingerprint comparison."""
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


@dataclass(frozen=True)
class OrderIntent:
    """A freshly created pending order plus the checkout parameters."""

    order: OrderRecord
    amount: int
    currency: str
    key_id: str


class OrderService:
    """Service for creating order intents and reading orders."""

    def __init__(
        self,
        pricing_service: PricingService | None = None,
        coupon_service: CouponService | None = None,
    ) -> None:
        """Initialize order service.

        Args:
            pricing_service: Optional pricing service for testing.
            coupon_service: Optional coupon service for testing.
        """
        self.client = get_supabase_client()
        self.settings = get_settings()
        self.pricing = pricing_service or PricingService()
        self.coupons = coupon_service or CouponService()

    async def create_order_intent(self, data: OrderCreate, principal: Principal) -> OrderIntent:
        """Price a cart, open a gateway order and persist a pending order.

        Prices are recomputed from the catalog; nothing monetary in the
        request is trusted. A coupon that fails evaluation just means no
        discount. The gateway order is opened before anything is stored,
        so a gateway failure leaves no order behind.

        Args:
            data: Order creation request.
            principal: Acting user, owner of the new order.

        Returns:
            OrderIntent: Stored order and checkout parameters.

        Raises:
            ItemNotFoundError: Unknown catalog item.
            InvalidSizeError: Unknown size for an item.
            InvalidExtraError: Unknown extra for an item.
            GatewayError: The gateway refused or could not be reached.
        """
        priced = await self.pricing.price_cart(data.cart)

        coupon_code, discount = await self.coupons.apply_to_order(
            data.coupon_code, priced.subtotal, principal.email
        )

        total = max(0, priced.subtotal + priced.tax + priced.delivery_fee - discount)
        amount = total * 100
        security_hash = compute_security_hash(priced.lines, total)

        gateway_order = await self._create_gateway_order(amount)

        row: OrderInsert = {
            "user_email": principal.email,
            "user_name": data.name,
            "address": data.address,
            "cart": [line.model_dump(mode="json") for line in priced.lines],
            "subtotal": priced.subtotal,
            "tax": priced.tax,
            "delivery_fee": priced.delivery_fee,
            "coupon_code": coupon_code,
            "discount_amount": discount,
            "total": total,
            "currency": self.settings.currency,
            "gateway_order_id": gateway_order["id"],
            "security_hash": security_hash,
            "payment_status": PaymentStatus.PENDING.value,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        response = self.client.table("orders").insert(row).execute()
        order = OrderRecord.model_validate(response.data[0])

        logger.info(
            "Created order %s for %s: total=%d coupon=%s gateway_order=%s",
            order.id,
            principal.email,
            total,
            coupon_code,
            order.gateway_order_id,
        )
        return OrderIntent(
            order=order,
            amount=amount,
            currency=self.settings.currency,
            key_id=self.settings.razorpay_key_id,
        )

    async def _create_gateway_order(self, amount: int) -> dict[str, Any]:
        if not is_gateway_configured():
            raise GatewayError("Payment gateway is not configured")

        try:
            return get_payment_gateway().order.create(
                data={
                    "amount": amount,
                    "currency": self.settings.currency,
                    "receipt": f"receipt_{int(time.time() * 1000)}",
                    "payment_capture": 1,
                }
            )
        except GATEWAY_REQUEST_ERRORS as e:
            logger.error("Razorpay error creating order: %s", str(e))
            raise GatewayError("Failed to create payment order") from e

    async def get_order(self, order_id: str) -> OrderRecord | None:
        """Get an order by ID.

        Args:
            order_id: The order's ID.

        Returns:
            OrderRecord | None: The order or None if not found.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .eq("id", order_id)
            .maybe_single()
            .execute()
        )
        if not response or not response.data:
            return None
        return OrderRecord.model_validate(response.data)

    async def get_order_for(self, order_id: str, principal: Principal) -> OrderRecord:
        """Get an order the principal is allowed to see.

        Raises:
            OrderNotFoundError: No such order.
            AuthorizationError: Caller is neither the owner nor an admin.
        """
        order = await self.get_order(order_id)
        if order is None:
            raise OrderNotFoundError()
        if not principal.can_access(order.user_email):
            raise AuthorizationError("You do not have access to this order")
        return order

    async def get_by_gateway_order_id(
        self, gateway_order_id: str, order_id: str | None = None
    ) -> OrderRecord | None:
        """Find an order by its gateway order ID, optionally pinned to an internal ID."""
        query = (
            self.client.table("orders")
            .select("*")
            .eq("gateway_order_id", gateway_order_id)
        )
        if order_id:
            query = query.eq("id", order_id)
        response = query.maybe_single().execute()
        if not response or not response.data:
            return None
        return OrderRecord.model_validate(response.data)

    async def list_my_orders(self, principal: Principal) -> list[OrderRecord]:
        """Paid-or-refunding orders owned by the principal, newest first.

        Pending and failed orders are left out.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .eq("user_email", principal.email)
            .in_("payment_status", [status.value for status in HISTORY_STATUSES])
            .order("created_at", desc=True)
            .limit(self.settings.order_history_limit)
            .execute()
        )
        return [OrderRecord.model_validate(row) for row in response.data or []]

    async def list_all_orders(self, payment_status: PaymentStatus | None = None) -> list[OrderRecord]:
        """All orders, newest first, optionally filtered by payment status (admin)."""
        query = self.client.table("orders").select("*")
        if payment_status is not None:
            query = query.eq("payment_status", payment_status.value)
        response = query.order("created_at", desc=True).execute()
        return [OrderRecord.model_validate(row) for row in response.data or []]
