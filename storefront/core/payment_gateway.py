"""Razorpay client configuration and singleton."""

import logging
from functools import lru_cache

import razorpay

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)

# Errors the SDK raises for a rejected or failed API call. Transport
# failures surface from requests as OSError subclasses.
GATEWAY_REQUEST_ERRORS = (
    razorpay.errors.BadRequestError,
    razorpay.errors.GatewayError,
    razorpay.errors.ServerError,
    OSError,
)


def is_gateway_configured() -> bool:
    """Check whether both halves of the Razorpay key pair are set."""
    settings = get_settings()
    return bool(settings.razorpay_key_id and settings.razorpay_key_secret)


@lru_cache
def get_payment_gateway() -> razorpay.Client:
    """Get cached Razorpay client.

    Returns:
        razorpay.Client: Client authenticated with the configured key pair.

    Note:
        The client is built even without keys so the app can start;
        checkout refuses to run until is_gateway_configured() is true.
    """
    settings = get_settings()
    if not is_gateway_configured():
        logger.warning("Razorpay keys not configured. Checkout will not work.")
    return razorpay.Client(auth=(settings.razorpay_key_id, settings.razorpay_key_secret))
