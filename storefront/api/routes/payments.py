"""Payment callback and Razorpay webhook routes."""

import logging

from fastapi import APIRouter, Request, status

from storefront.api.middleware.error_handler import ValidationError
from storefront.schemas.common import SuccessResponse
from storefront.schemas.payment import PaymentVerifyRequest, WebhookAck
from storefront.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/verify",
    response_model=SuccessResponse,
    summary="Verify payment",
    description="Checks the Razorpay signature and the order fingerprint, then marks the order paid.",
)
async def verify_payment(data: PaymentVerifyRequest) -> SuccessResponse:
    """Confirm a payment relayed by the checkout widget.

    No session is required; the gateway signature authenticates the call.

    Raises:
        InvalidSignatureError: 400 on signature mismatch.
        OrderNotFoundError: 404 if no order matches.
        TamperDetectedError: 400 on fingerprint mismatch.
    """
    await PaymentService().verify_payment(data)
    return SuccessResponse()


@router.post(
    "/webhook",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
    summary="Handle Razorpay webhooks",
    description="Receives payment.captured and payment.failed events. Requires a valid signature.",
)
async def razorpay_webhook(request: Request) -> WebhookAck:
    """Handle Razorpay webhook events.

    The signature covers the raw body, so it is read before parsing.

    Raises:
        ValidationError: 400 if the signature header is missing.
        InvalidSignatureError: 400 if the signature does not match.
    """
    payload = await request.body()

    signature = request.headers.get("x-razorpay-signature")
    if not signature:
        logger.error("Missing X-Razorpay-Signature header in webhook request")
        raise ValidationError("Missing X-Razorpay-Signature header")

    service = PaymentService()
    event = service.verify_webhook_signature(payload, signature)

    await service.handle_webhook_event(event)

    return WebhookAck()
