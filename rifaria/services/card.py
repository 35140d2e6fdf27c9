from dataclasses import dataclass
from typing import Dict, Optional
import logging
import stripe

from rifaria.config import get_settings
from rifaria.exceptions import AuthError, PaymentGatewayError

settings = get_settings()
logger = logging.getLogger(__name__)
stripe.api_key = settings.stripe_secret_key

# Stripe PaymentIntent status -> local ticket vocabulary
INTENT_STATUSES = {
    "succeeded": "PAID",
    "canceled": "CANCELLED",
}


@dataclass
class CardCharge:
    id: str
    status: str
    gateway_status: str


class CardGateway:
    """Card payments through Stripe PaymentIntents."""

    @staticmethod
    def is_configured() -> bool:
        return bool(settings.stripe_secret_key)

    @staticmethod
    def _to_charge(intent) -> CardCharge:
        return CardCharge(
            id=intent.id,
            status=INTENT_STATUSES.get(intent.status, "PENDING"),
            gateway_status=intent.status
        )

    def create_charge(
        self,
        amount: int,
        description: str,
        payment_method_id: str,
        metadata: Dict[str, str]
    ) -> CardCharge:
        """
        Create and confirm a PaymentIntent for `amount` cents.
        The returned status is PAID only if Stripe approved it right away.
        """
        if not self.is_configured():
            raise PaymentGatewayError("Card payments are not configured")

        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=settings.currency,
                payment_method=payment_method_id,
                confirm=True,
                description=description,
                metadata=metadata,
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"}
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating payment intent: {e}")
            raise PaymentGatewayError(f"Card payment failed: {e.user_message or 'gateway error'}")

        return self._to_charge(intent)

    def check_charge(self, charge_id: str) -> CardCharge:
        if not self.is_configured():
            raise PaymentGatewayError("Card payments are not configured")

        try:
            intent = stripe.PaymentIntent.retrieve(charge_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe error retrieving payment intent {charge_id}: {e}")
            raise PaymentGatewayError("Could not check card payment status")

        return self._to_charge(intent)

    @staticmethod
    def verify_webhook_signature(payload: bytes, signature: Optional[str]) -> dict:
        """Verify Stripe webhook signature and return the event."""
        if not signature or not settings.stripe_webhook_secret:
            raise AuthError("Invalid signature")
        try:
            return stripe.Webhook.construct_event(
                payload,
                signature,
                settings.stripe_webhook_secret
            )
        except (ValueError, stripe.SignatureVerificationError):
            raise AuthError("Invalid signature")

    @staticmethod
    def public_key() -> Optional[str]:
        return settings.stripe_publishable_key or None


def get_card_gateway() -> CardGateway:
    return CardGateway()
