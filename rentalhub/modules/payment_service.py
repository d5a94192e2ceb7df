"""
Payment provider boundary.

Wraps the Stripe SDK so the rest of the code base only sees
``PaymentIntent`` values and ``ExternalServiceError``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe
from django.conf import settings

from rentalhub.modules.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str


class StripePaymentProvider:
    """Thin client over the Stripe payment intent and refund APIs."""

    def __init__(self, api_key: Optional[str] = None,
                 webhook_secret: Optional[str] = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

    def create_payment_intent(
        self,
        amount_minor_units: int,
        currency: str,
        metadata: Dict[str, Any],
    ) -> PaymentIntent:
        """
        Create a payment intent for ``amount_minor_units`` (cents).

        Metadata values are sent as strings, which is what Stripe stores.
        """
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=int(amount_minor_units),
                currency=currency.lower(),
                metadata={k: str(v) for k, v in metadata.items()},
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {e}")
            raise ExternalServiceError(
                f"Payment provider error: {e.user_message or str(e)}")
        logger.info(f"Created payment intent {intent.id}")
        return PaymentIntent(id=intent.id, client_secret=intent.client_secret)

    def refund(self, intent_id: str):
        try:
            refund = stripe.Refund.create(
                api_key=self.api_key,
                payment_intent=intent_id,
                reason="requested_by_customer",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund for {intent_id} failed: {e}")
            raise ExternalServiceError(
                f"Payment provider error: {e.user_message or str(e)}")
        logger.info(f"Refunded payment intent {intent_id}")
        return refund

    def construct_event(self, payload, signature: str):
        """Verify the webhook signature and return the parsed event."""
        try:
            return stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret)
        except ValueError as e:
            raise ExternalServiceError(f"Invalid webhook payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise ExternalServiceError(f"Invalid webhook signature: {e}")


def get_payment_provider():
    return StripePaymentProvider()
