"""
Order service

The system of record for orders: validates the submitted cart, prices it,
assigns a pickup token, persists the row and fires the customer SMS.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from . import config
from .cart import fee_for_level, to_money
from .errors import DuplicateRecordError, PaymentError, PersistenceError, ValidationError
from .notifications import notify_order_placed

logger = logging.getLogger(__name__)

STORE_TIMEZONE = ZoneInfo("Asia/Kolkata")
TOKEN_ATTEMPTS = 3
ORDER_CONFIRMED = "Payment verified and order confirmed!"


def generate_token() -> str:
    """Six uppercase hex characters from the OS CSPRNG."""
    return secrets.token_hex(3).upper()


def format_order_timestamp(moment: datetime):
    """(date, time) as shown to staff: ``19/10/2026`` and ``2:05 pm`` in store time."""
    local = moment.astimezone(STORE_TIMEZONE)
    hour = local.hour % 12 or 12
    suffix = "am" if local.hour < 12 else "pm"
    return local.strftime("%d/%m/%Y"), f"{hour}:{local.minute:02d} {suffix}"


def items_summary(lines) -> str:
    return "\n".join(f"{line['name']} X {line['quantity']}" for line in lines)


def cart_amount(lines) -> Decimal:
    return sum((line["price"] * line["quantity"] for line in lines), Decimal("0"))


def normalize_lines(cart):
    """Validate submitted cart lines into ``{name, price, quantity}`` dicts."""
    lines = []
    for raw in cart:
        if not isinstance(raw, dict):
            raw = getattr(raw, "__dict__", {})
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Every cart item needs a name")
        price = raw.get("price", raw.get("unit_price"))
        if price is None or isinstance(price, bool):
            raise ValidationError(f"Missing price for {name}")
        price = to_money(price)
        if not price.is_finite() or price < 0:
            raise ValidationError(f"Invalid price for {name}")
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(f"Invalid quantity for {name}")
        lines.append({"name": name, "price": price, "quantity": quantity})
    return lines


@dataclass(frozen=True)
class PricedCart:
    lines: list
    priority_level: str
    amount: Decimal


class OrderService:
    def __init__(self, store, menu_store=None, gateway=None, sms=None,
                 reprice=None, verify_payments=None, clock=None, token_factory=None):
        self.store = store
        self.menu_store = menu_store
        self.gateway = gateway
        self.sms = sms
        self.reprice = config.REPRICE_FROM_CATALOG if reprice is None else reprice
        self.verify_payments = config.VERIFY_PAYMENTS if verify_payments is None else verify_payments
        self.clock = clock or (lambda: datetime.now(STORE_TIMEZONE))
        self.token_factory = token_factory or generate_token

    def place_order(self, cart, phone, payment_id, priority_level=None, schedule=None):
        """Persist a paid order and return ``{success, token, message, orderId}``.

        The SMS is handed to ``schedule`` (e.g. a background task runner) so
        it can finish after the response; without one it runs inline. Its
        outcome never changes the result.
        """
        if not cart or not phone or not payment_id:
            raise ValidationError("Invalid request")
        return self.record_order(self.price_cart(cart, priority_level), phone, payment_id, schedule=schedule)

    def price_cart(self, cart, priority_level=None) -> PricedCart:
        """Validate (and optionally reprice) cart lines and compute the amount owed.

        Checkout calls this before charging, so whatever is charged is exactly
        what ``record_order`` stores.
        """
        level = priority_level or "normal"
        priority_fee = fee_for_level(level)
        lines = normalize_lines(cart)
        if self.reprice:
            lines = self._reprice(lines)
        return PricedCart(lines=lines, priority_level=level, amount=cart_amount(lines) + priority_fee)

    def record_order(self, priced: PricedCart, phone, payment_id, schedule=None):
        if self.verify_payments:
            if self.gateway is None or not self.gateway.verify(payment_id, priced.amount):
                raise PaymentError("Payment could not be verified")

        date, time = format_order_timestamp(self.clock())
        order = {
            "item": items_summary(priced.lines),
            "phone": phone,
            "amount": priced.amount,
            "date": date,
            "time": time,
            "status": "pending",
            "payment_id": payment_id,
            "payment_status": "paid",
            "priority_level": priced.priority_level,
        }

        order_id, token = self._insert_with_fresh_token(order)
        logger.info("Order %s placed with token %s (priority %s)", order_id, token, priced.priority_level)

        if self.sms is not None:
            if schedule is not None:
                schedule(notify_order_placed, self.sms, phone, token)
            else:
                notify_order_placed(self.sms, phone, token)

        return {
            "success": True,
            "token": token,
            "message": ORDER_CONFIRMED,
            "orderId": order_id,
        }

    def _insert_with_fresh_token(self, order):
        for attempt in range(1, TOKEN_ATTEMPTS + 1):
            token = self.token_factory()
            try:
                return self.store.insert_order(dict(order, token=token)), token
            except DuplicateRecordError:
                logger.warning("Token %s already taken (attempt %d)", token, attempt)
            except PersistenceError as e:
                logger.error("Order insert failed: %s", e)
                raise PersistenceError("Failed to save order") from e
        raise PersistenceError("Failed to save order")

    def _reprice(self, lines):
        """Replace client prices with catalog prices; unknown items are rejected."""
        if self.menu_store is None:
            raise ValidationError("Catalog is not available for pricing")
        catalog = self.menu_store.find_by_names({line["name"] for line in lines})
        repriced = []
        for line in lines:
            item = catalog.get(line["name"])
            if item is None:
                raise ValidationError(f"Unknown menu item: {line['name']}")
            repriced.append(dict(line, price=to_money(item["price"])))
        return repriced
