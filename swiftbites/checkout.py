"""
Checkout orchestrator

Turns a cart and a contact phone into a paid order: gate, price, charge,
then hand the paid cart to the order service. Nothing is persisted unless
the charge succeeds, and the caller's cart is only replaced by an empty one
once the order exists.
"""

import logging
from dataclasses import dataclass

from . import config
from .cart import Cart, clear, phone_error, priority_level
from .errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    token: str
    order_id: int
    payment_id: str
    cart: Cart

    @property
    def message(self):
        return f"Order placed successfully! Your pickup token is {self.token}."


class CheckoutOrchestrator:
    def __init__(self, gateway, order_service, currency=None, country_code=None):
        self.gateway = gateway
        self.order_service = order_service
        self.currency = currency or config.CURRENCY
        self.country_code = country_code or config.COUNTRY_CODE

    def submit(self, cart: Cart, phone, payment_source, schedule=None) -> CheckoutResult:
        if cart.is_empty:
            raise ValidationError("Your cart is empty")
        error = phone_error(phone)
        if error:
            raise ValidationError(error)

        lines = [
            {"name": item.name, "price": item.unit_price, "quantity": item.quantity}
            for item in cart.items
        ]
        # Pricing may still reject the cart; nothing has been charged yet.
        priced = self.order_service.price_cart(lines, priority_level(cart.priority_fee))
        contact = f"{self.country_code}{phone}"

        # PaymentError / PaymentGatewayUnavailable propagate untouched: no order, cart kept.
        payment_id = self.gateway.charge(priced.amount, self.currency, contact, payment_source)
        logger.info("Payment %s captured for %s (%s %s)", payment_id, contact, priced.amount, self.currency)

        try:
            placed = self.order_service.record_order(priced, phone, payment_id, schedule=schedule)
        except Exception:
            logger.error("Payment %s captured but the order was not saved", payment_id)
            raise

        return CheckoutResult(
            token=placed["token"],
            order_id=placed["orderId"],
            payment_id=payment_id,
            cart=clear(cart),
        )
