"""
Stripe adapter: PaymentIntent creation and signed webhook verification.
"""
import os
import logging
from typing import Any, Dict

import stripe

logger = logging.getLogger(__name__)

stripe.api_key = os.getenv("PAYMENT_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
CURRENCY = os.getenv("CURRENCY", "usd")


def compute_amount(quantity: int, price: float) -> int:
    """Total in minor currency units (cents)."""
    return int(round(quantity * float(price) * 100))


def create_payment_intent(amount: int) -> str:
    intent = stripe.PaymentIntent.create(
        amount=amount,
        currency=CURRENCY,
        automatic_payment_methods={"enabled": True},
    )
    logger.info("Created PaymentIntent %s for %s %s", intent["id"], amount, CURRENCY)
    return intent["client_secret"]


class WebhookNotConfigured(RuntimeError):
    pass


def parse_webhook(payload: bytes, signature: str) -> Dict[str, Any]:
    """Raises ValueError or stripe.SignatureVerificationError on a bad event,
    WebhookNotConfigured when no signing secret is set."""
    if not STRIPE_WEBHOOK_SECRET:
        raise WebhookNotConfigured("STRIPE_WEBHOOK_SECRET is not set")
    return stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)
