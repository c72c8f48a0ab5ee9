"""Order API routes: checkout intents, history and fulfilment status."""

from uuid import UUID

from fastapi import APIRouter, status

from storefront.api.deps import ActivePrincipal, AdminPrincipal, CurrentPrincipal
from storefront.models.order import PaymentStatus
from storefront.schemas.common import SuccessResponse
from storefront.schemas.order import (
    OrderCreate,
    OrderIntentResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
)
from storefront.services.lifecycle_service import LifecycleService
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    response_model=OrderIntentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order intent",
    description="Prices the cart server-side, opens a Razorpay order and stores a pending order.",
)
async def create_order(data: OrderCreate, principal: ActivePrincipal) -> OrderIntentResponse:
    """Create a pending order and the gateway order that will collect payment.

    The returned security_hash must be sent back with the payment callback.

    Args:
        data: Customer details, cart and optional coupon code.
        principal: The authenticated, non-banned user.

    Returns:
        OrderIntentResponse: Gateway order, amount in paise, fingerprint and order.
    """
    intent = await OrderService().create_order_intent(data, principal)
    return OrderIntentResponse(
        gateway_order_id=intent.order.gateway_order_id,
        amount=intent.amount,
        currency=intent.currency,
        key_id=intent.key_id,
        security_hash=intent.order.security_hash,
        order=OrderResponse.from_record(intent.order),
    )


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List my orders",
    description="The caller's paid or refunding orders, newest first.",
)
async def list_my_orders(principal: CurrentPrincipal) -> OrderListResponse:
    """Get the caller's order history.

    Args:
        principal: The authenticated user.

    Returns:
        OrderListResponse: Orders owned by the caller.
    """
    orders = await OrderService().list_my_orders(principal)
    return OrderListResponse(items=[OrderResponse.from_record(order) for order in orders])


@router.get(
    "/all",
    response_model=OrderListResponse,
    summary="List all orders (admin)",
)
async def list_all_orders(
    principal: AdminPrincipal,
    payment_status: PaymentStatus | None = None,
) -> OrderListResponse:
    orders = await OrderService().list_all_orders(payment_status)
    return OrderListResponse(items=[OrderResponse.from_record(order) for order in orders])


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
    description="Owner or admin only.",
)
async def get_order(order_id: UUID, principal: CurrentPrincipal) -> OrderResponse:
    """Get a single order.

    Raises:
        OrderNotFoundError: 404 if the order does not exist.
        AuthorizationError: 403 if the caller is neither owner nor admin.
    """
    order = await OrderService().get_order_for(str(order_id), principal)
    return OrderResponse.from_record(order)


@router.get(
    "/{order_id}/status",
    response_model=OrderStatusResponse,
    summary="Poll order status",
)
async def get_order_status(order_id: UUID, principal: CurrentPrincipal) -> OrderStatusResponse:
    order = await OrderService().get_order_for(str(order_id), principal)
    return OrderStatusResponse(status=order.status, payment_status=order.payment_status)


@router.patch(
    "/{order_id}/cancel",
    response_model=SuccessResponse,
    summary="Cancel order",
    description="Owner or admin. Marks the order canceled and the payment refund_initiated.",
)
async def cancel_order(order_id: UUID, principal: ActivePrincipal) -> SuccessResponse:
    await LifecycleService().cancel_order(str(order_id), principal)
    return SuccessResponse()


@router.patch(
    "/{order_id}/status",
    response_model=SuccessResponse,
    summary="Set order status (admin)",
    description="Moves an order forward along placed, confirmed, preparing, out_for_delivery, completed.",
)
async def set_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    principal: AdminPrincipal,
) -> SuccessResponse:
    await LifecycleService().set_status(str(order_id), data.status, principal)
    return SuccessResponse()
