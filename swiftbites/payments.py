"""Stripe-backed payment gateway used by checkout."""

import logging
from decimal import Decimal, ROUND_HALF_UP

import stripe

from . import config
from .errors import PaymentError, PaymentGatewayUnavailable

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Rupees to paise (the gateway only accepts the smallest currency unit)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeGateway:
    def __init__(self, api_key=None):
        self.api_key = api_key or config.STRIPE_SECRET_KEY

    def charge(self, amount, currency, contact, source, description=None):
        """Charge ``source`` and return the payment id.

        Declines and customer cancellations raise PaymentError; a gateway
        that cannot be reached raises PaymentGatewayUnavailable.
        """
        try:
            charge = stripe.Charge.create(
                api_key=self.api_key,
                amount=to_minor_units(amount),
                currency=currency.lower(),
                source=source,
                description=description or "SwiftBites pickup order",
                metadata={"contact": contact},
            )
        except stripe.APIConnectionError as e:
            logger.error("Payment gateway unreachable: %s", e)
            raise PaymentGatewayUnavailable() from e
        except stripe.StripeError as e:
            logger.warning("Payment failed for %s: %s", contact, e)
            raise PaymentError() from e

        if getattr(charge, "status", "succeeded") == "failed" or not getattr(charge, "paid", True):
            logger.warning("Payment %s was not completed", charge.id)
            raise PaymentError()
        return charge.id

    def verify(self, payment_id, amount=None):
        """True when ``payment_id`` is a completed charge (for ``amount`` if given)."""
        try:
            charge = stripe.Charge.retrieve(payment_id, api_key=self.api_key)
        except stripe.APIConnectionError as e:
            raise PaymentGatewayUnavailable() from e
        except stripe.StripeError as e:
            logger.warning("Could not verify payment %s: %s", payment_id, e)
            return False

        if not charge.paid:
            return False
        if amount is not None and charge.amount != to_minor_units(amount):
            logger.warning(
                "Payment %s amount mismatch: charged %s, order %s",
                payment_id, charge.amount, to_minor_units(amount)
            )
            return False
        return True
