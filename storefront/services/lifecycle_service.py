"""Order status state machine: fulfilment progress and cancellation."""

import logging
from datetime import datetime, timezone

from storefront.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    InvalidStatusError,
    OrderNotFoundError,
)
from storefront.core.supabase import get_supabase_client
from storefront.models.order import OrderRecord, OrderStatus, PaymentStatus
from storefront.schemas.auth import Principal
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)


def parse_status(value: str) -> OrderStatus:
    """Parse a status string, rejecting anything outside the known set."""
    try:
        return OrderStatus(value.strip().lower())
    except ValueError as e:
        allowed = ", ".join(status.value for status in OrderStatus)
        raise InvalidStatusError(f"Invalid status '{value}'. Allowed: {allowed}") from e


class LifecycleService:
    """Service for moving orders through their fulfilment states.

    Statuses only move forward by rank. Cancellation is allowed from any
    non-terminal status. Each write is conditional on the status that was
    validated, so a concurrent change makes the later write fail instead
    of silently overwriting it.
    """

    def __init__(self, order_service: OrderService | None = None) -> None:
        """Initialize lifecycle service.

        Args:
            order_service: Optional order service for testing.
        """
        self.client = get_supabase_client()
        self.orders = order_service or OrderService()

    async def cancel_order(self, order_id: str, principal: Principal) -> OrderRecord:
        """Cancel an order on behalf of its owner or an admin.

        Sets status to canceled and payment_status to refund_initiated.
        The coupon usage counter is left as it is.

        Raises:
            OrderNotFoundError: No such order.
            AuthorizationError: Caller is neither the owner nor an admin.
            ConflictError: Order is already completed or canceled, or changed concurrently.
        """
        order = await self.orders.get_order(order_id)
        if order is None:
            raise OrderNotFoundError()
        if not principal.can_access(order.user_email):
            raise AuthorizationError("You can only cancel your own orders")
        if order.status is not None and order.status.is_terminal:
            raise ConflictError(f"Order is already {order.status.value}")

        now = datetime.now(timezone.utc).isoformat()
        updated = self._update_if_status(
            order,
            {
                "status": OrderStatus.CANCELED.value,
                "canceled_at": now,
                "payment_status": PaymentStatus.REFUND_INITIATED.value,
            },
        )
        logger.info("Order %s canceled by %s", order.id, principal.email)
        return updated

    async def set_status(self, order_id: str, value: str, principal: Principal) -> OrderRecord:
        """Move an order to a new fulfilment status (admin only).

        Setting the current status again is a no-op. Canceling goes
        through cancel_order so payment_status follows.

        Raises:
            AuthorizationError: Caller is not an admin.
            InvalidStatusError: Unknown status value.
            OrderNotFoundError: No such order.
            ConflictError: Order not placed yet, already terminal, backwards
                move, or changed concurrently.
        """
        if not principal.is_admin:
            raise AuthorizationError("Admin access required")

        target = parse_status(value)
        if target is OrderStatus.CANCELED:
            return await self.cancel_order(order_id, principal)

        order = await self.orders.get_order(order_id)
        if order is None:
            raise OrderNotFoundError()

        current = order.status
        if current is None:
            raise ConflictError("Order has not been placed yet")
        if current is target:
            return order
        if current.is_terminal:
            raise ConflictError(f"Order is already {current.value}")
        if target.rank < current.rank:
            raise ConflictError(f"Cannot move order from {current.value} back to {target.value}")

        updated = self._update_if_status(order, {"status": target.value})
        logger.info("Order %s moved from %s to %s by %s", order.id, current.value, target.value, principal.email)
        return updated

    def _update_if_status(self, order: OrderRecord, update: dict[str, str]) -> OrderRecord:
        query = self.client.table("orders").update(update).eq("id", order.id)
        if order.status is None:
            query = query.is_("status", "null")
        else:
            query = query.eq("status", order.status.value)
        response = query.execute()
        if not response.data:
            raise ConflictError("Order was modified concurrently, please retry")
        return OrderRecord.model_validate(response.data[0])
