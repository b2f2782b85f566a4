import logging
from decimal import Decimal, ROUND_HALF_UP

import stripe
from fastapi import Request

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    pass


def to_minor_units(price: float) -> int:
    """Major currency units (e.g. 19.99) to the integer minor amount Stripe expects (1999)."""
    return int((Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeGateway:
    def __init__(self, api_key: str, currency: str = "bdt"):
        self.api_key = api_key
        self.currency = currency

    def create_payment_intent(self, amount: int) -> str:
        """Create a card PaymentIntent for ``amount`` minor units and return its client secret."""
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount,
                currency=self.currency,
                payment_method_types=["card"],
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe PaymentIntent failed (amount=%s %s): %s", amount, self.currency, exc)
            raise PaymentGatewayError(str(exc)) from exc
        return intent.client_secret


def get_gateway(request: Request):
    return request.app.state.gateway
