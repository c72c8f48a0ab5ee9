"""Payment callback verification and gateway webhook handling."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

import razorpay
from pydantic import ValidationError as PydanticValidationError

from storefront.api.middleware.error_handler import (
    InvalidSignatureError,
    OrderNotFoundError,
    TamperDetectedError,
    ValidationError,
)
from storefront.core.config import get_settings
from storefront.core.payment_gateway import get_payment_gateway
from storefront.core.supabase import get_supabase_client
from storefront.models.order import OrderRecord, OrderStatus, PaymentStatus, PROMOTABLE_STATUSES
from storefront.schemas.payment import PaymentVerifyRequest, WebhookEvent
from storefront.services.coupon_service import CouponService
from storefront.services.order_service import OrderService, hashes_match

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for confirming payments against stored orders."""

    def __init__(
        self,
        order_service: OrderService | None = None,
        coupon_service: CouponService | None = None,
    ) -> None:
        """Initialize payment service.

        Args:
            order_service: Optional order service for testing.
            coupon_service: Optional coupon service for testing.
        """
        self.client = get_supabase_client()
        self.settings = get_settings()
        self.gateway = get_payment_gateway()
        self.orders = order_service or OrderService()
        self.coupons = coupon_service or CouponService()

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> None:
        """Check the gateway's HMAC over "<order_id>|<payment_id>".

        Raises:
            InvalidSignatureError: Signature does not match.
        """
        if not signature.isascii():
            raise InvalidSignatureError()

        try:
            self.gateway.utility.verify_payment_signature(
                {
                    "razorpay_order_id": gateway_order_id,
                    "razorpay_payment_id": gateway_payment_id,
                    "razorpay_signature": signature,
                }
            )
        except razorpay.errors.SignatureVerificationError as e:
            logger.warning("Invalid payment signature for gateway order %s", gateway_order_id)
            raise InvalidSignatureError() from e

    async def verify_payment(self, data: PaymentVerifyRequest) -> OrderRecord:
        """Confirm a client-relayed payment callback.

        Checks run strictly in order: gateway signature, order lookup,
        fingerprint. Only then is the order promoted, and only from
        pending or failed; the promotion is a single conditional update,
        so two concurrent callbacks cannot both win. A callback for an
        order that is already paid succeeds without touching it.

        Args:
            data: Callback fields plus the echoed fingerprint.

        Returns:
            OrderRecord: The order after verification.

        Raises:
            InvalidSignatureError: Gateway signature mismatch.
            OrderNotFoundError: No matching order.
            TamperDetectedError: Fingerprint differs from the stored one.
        """
        self.verify_payment_signature(data.gateway_order_id, data.gateway_payment_id, data.signature)

        order_id = str(data.order_id) if data.order_id else None
        order = await self.orders.get_by_gateway_order_id(data.gateway_order_id, order_id)
        if order is None:
            raise OrderNotFoundError()

        if not hashes_match(order.security_hash, data.security_hash):
            logger.warning("Fingerprint mismatch for order %s (%s)", order.id, order.user_email)
            raise TamperDetectedError()

        promoted = await self._promote(
            order,
            {
                "payment_status": PaymentStatus.VERIFIED.value,
                "gateway_payment_id": data.gateway_payment_id,
                "verified_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        if promoted is None:
            logger.info(
                "Order %s already in payment state %s, verification is a no-op",
                order.id,
                order.payment_status.value,
            )
            return order

        logger.info("Payment %s verified for order %s", data.gateway_payment_id, order.id)
        return promoted

    async def _promote(self, order: OrderRecord, update: dict[str, Any]) -> OrderRecord | None:
        """Move an order out of pending/failed, place it, and count its coupon.

        Returns:
            OrderRecord | None: Updated order, or None if another callback
            already moved it.
        """
        response = (
            self.client.table("orders")
            .update(update)
            .eq("id", order.id)
            .in_("payment_status", [status.value for status in PROMOTABLE_STATUSES])
            .execute()
        )
        if not response.data:
            return None

        promoted = OrderRecord.model_validate(response.data[0])

        placed = (
            self.client.table("orders")
            .update({"status": OrderStatus.PLACED.value})
            .eq("id", order.id)
            .is_("status", "null")
            .execute()
        )
        if placed.data:
            promoted = OrderRecord.model_validate(placed.data[0])

        if promoted.coupon_code:
            await self.coupons.increment_usage(promoted.coupon_code)

        return promoted

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Verify a webhook body against the webhook secret and parse it.

        Args:
            payload: Raw request body.
            signature: X-Razorpay-Signature header value.

        Returns:
            Any: Decoded JSON body, not yet checked for shape.

        Raises:
            ValidationError: Webhook secret missing or body is not JSON.
            InvalidSignatureError: Signature mismatch.
        """
        if not self.settings.razorpay_webhook_secret:
            raise ValidationError("Webhook secret is not configured")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError("Webhook body is not valid UTF-8") from e

        if not signature.isascii():
            raise InvalidSignatureError("Invalid webhook signature")

        try:
            self.gateway.utility.verify_webhook_signature(body, signature, self.settings.razorpay_webhook_secret)
        except razorpay.errors.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature")
            raise InvalidSignatureError("Invalid webhook signature") from e

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ValidationError("Webhook body is not valid JSON") from e

    async def handle_webhook_event(self, data: Any) -> None:
        """Apply a verified gateway event to the matching order.

        Unknown event types and events that do not have the expected
        shape are acknowledged and ignored, so the gateway does not
        keep redelivering them.
        """
        try:
            event = WebhookEvent.model_validate(data)
        except PydanticValidationError as e:
            logger.warning("Ignoring malformed webhook event: %d validation errors", e.error_count())
            return

        logger.info("Processing Razorpay webhook event: %s", event.event)

        if event.event not in ("payment.captured", "payment.failed"):
            logger.debug("Unhandled webhook event type: %s", event.event)
            return

        entity = event.payment_entity
        if entity is None or not entity.order_id:
            logger.warning("Webhook %s without an order id", event.event)
            return

        if event.event == "payment.captured":
            await self.handle_payment_captured(entity.order_id, entity.id)
        else:
            await self.handle_payment_failed(entity.order_id)

    async def handle_payment_captured(self, gateway_order_id: str, gateway_payment_id: str | None) -> None:
        """Mark a captured payment completed.

        An order the client callback never verified is promoted here,
        placing it and counting its coupon. An already verified order is
        only moved to completed, so its coupon is not counted twice.
        """
        order = await self.orders.get_by_gateway_order_id(gateway_order_id)
        if order is None:
            logger.warning("Captured payment for unknown gateway order %s", gateway_order_id)
            return

        update: dict[str, Any] = {
            "payment_status": PaymentStatus.COMPLETED.value,
            "webhook_received": True,
        }
        if gateway_payment_id:
            update["gateway_payment_id"] = gateway_payment_id

        if await self._promote(order, update) is not None:
            logger.info("Order %s completed by webhook before client verification", order.id)
            return

        response = (
            self.client.table("orders")
            .update(update)
            .eq("id", order.id)
            .eq("payment_status", PaymentStatus.VERIFIED.value)
            .execute()
        )
        if response.data:
            logger.info("Order %s payment completed", order.id)
        else:
            logger.info("Order %s in payment state %s, capture ignored", order.id, order.payment_status.value)

    async def handle_payment_failed(self, gateway_order_id: str) -> None:
        """Mark a still-pending order failed. Paid orders are never downgraded."""
        response = (
            self.client.table("orders")
            .update({"payment_status": PaymentStatus.FAILED.value, "webhook_received": True})
            .eq("gateway_order_id", gateway_order_id)
            .eq("payment_status", PaymentStatus.PENDING.value)
            .execute()
        )
        if response.data:
            logger.info("Order for gateway order %s marked failed", gateway_order_id)
        else:
            logger.info("Failed payment for gateway order %s ignored", gateway_order_id)
