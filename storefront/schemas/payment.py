"""Payment verification and webhook schemas."""

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PaymentVerifyRequest(BaseModel):
    """Signed payment callback relayed by the checkout widget.

    Accepts the gateway's own razorpay_* field names as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    gateway_order_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id"),
    )
    gateway_payment_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id"),
    )
    signature: str = Field(
        min_length=1,
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )
    security_hash: str = Field(min_length=1, description="Fingerprint returned at order creation")
    order_id: UUID | None = Field(default=None, description="Internal order ID, when the client has it")


class WebhookPaymentEntity(BaseModel):
    """The fields of a Razorpay payment entity that order handling reads."""

    id: str | None = None
    order_id: str | None = None


class WebhookPayment(BaseModel):
    entity: WebhookPaymentEntity | None = None


class WebhookPayload(BaseModel):
    payment: WebhookPayment | None = None


class WebhookEvent(BaseModel):
    """A Razorpay webhook event. Unread fields are ignored."""

    event: str = ""
    payload: WebhookPayload | None = None

    @property
    def payment_entity(self) -> WebhookPaymentEntity | None:
        """Payment entity carried by the event, if any."""
        if self.payload is None or self.payload.payment is None:
            return None
        return self.payload.payment.entity


class WebhookAck(BaseModel):
    """Acknowledgement returned to the gateway."""

    status: str = "received"
