"""
Cart model

A cart is an immutable value. Every operation takes a cart and returns a new
one, so the caller owns the state and nothing is shared between sessions.
"""

import re
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Optional, Tuple

from .errors import ValidationError

PRIORITY_FEES = (0, 10, 30, 50)

# fee -> (level, rank); rank drives the staff queue ordering
PRIORITY_TIERS = {
    0: ("normal", 0),
    10: ("medium", 1),
    30: ("high", 2),
    50: ("urgent", 3),
}

PHONE_PATTERN = re.compile(r"[0-9]{10}")
PHONE_ERROR = "Please enter a valid 10-digit phone number"


def to_money(value) -> Decimal:
    """Coerce a price to Decimal without going through float rounding."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"Invalid price: {value!r}")


@dataclass(frozen=True)
class CartItem:
    id: str
    name: str
    unit_price: Decimal
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Cart:
    items: Tuple[CartItem, ...] = field(default_factory=tuple)
    priority_fee: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def total(self) -> Decimal:
        return compute_total(self)


def add_item(cart: Cart, product) -> Cart:
    """Add one unit of ``product``; a product already in the cart (by name) is incremented."""
    name = product["name"]
    items = list(cart.items)
    for index, item in enumerate(items):
        if item.name == name:
            items[index] = replace(item, quantity=item.quantity + 1)
            return replace(cart, items=tuple(items))

    items.append(CartItem(
        id=str(product.get("id", name)),
        name=name,
        unit_price=to_money(product["price"]),
        quantity=1,
    ))
    return replace(cart, items=tuple(items))


def set_quantity(cart: Cart, item_id, delta: int) -> Cart:
    """Shift a line's quantity by ``delta``; lines that drop to zero are removed."""
    item_id = str(item_id)
    items = []
    for item in cart.items:
        if item.id == item_id:
            quantity = item.quantity + delta
            if quantity <= 0:
                continue
            item = replace(item, quantity=quantity)
        items.append(item)
    return replace(cart, items=tuple(items))


def remove_item(cart: Cart, item_id) -> Cart:
    item_id = str(item_id)
    return replace(cart, items=tuple(item for item in cart.items if item.id != item_id))


def set_priority_fee(cart: Cart, value) -> Cart:
    """Select a priority tier. Tiers replace each other, they never add up."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"Invalid priority fee: {value!r}")
    try:
        fee = int(value)
    except ValueError:
        raise ValidationError(f"Invalid priority fee: {value!r}")
    if fee not in PRIORITY_FEES:
        raise ValidationError(f"Priority fee must be one of {PRIORITY_FEES}")
    return replace(cart, priority_fee=fee)


def clear(cart: Optional[Cart] = None) -> Cart:
    """Reducer form of emptying a cart; the old cart is not consulted."""
    return Cart()


def compute_total(cart: Cart) -> Decimal:
    return cart.subtotal + cart.priority_fee


def priority_level(fee: int) -> str:
    return PRIORITY_TIERS[fee][0]


def fee_for_level(level: str) -> int:
    for fee, (name, _rank) in PRIORITY_TIERS.items():
        if name == level:
            return fee
    raise ValidationError(f"Unknown priority level: {level!r}")


def priority_rank(level) -> int:
    """Rank used to sort orders; unknown or missing levels rank as normal."""
    for name, rank in PRIORITY_TIERS.values():
        if name == level:
            return rank
    return 0


def is_valid_phone(phone) -> bool:
    return isinstance(phone, str) and bool(PHONE_PATTERN.fullmatch(phone))


def phone_error(phone) -> Optional[str]:
    """Inline field error for the phone input, or None when it is valid."""
    return None if is_valid_phone(phone) else PHONE_ERROR


def can_checkout(cart: Cart, phone) -> bool:
    return not cart.is_empty and is_valid_phone(phone)


def from_payload(items, priority_fee=0) -> Cart:
    """Rebuild a cart from request data, re-applying the cart's own invariants."""
    cart = set_priority_fee(Cart(), priority_fee)
    lines = []
    for raw in items or []:
        quantity = int(raw["quantity"])
        if quantity <= 0:
            continue
        existing = next((i for i, line in enumerate(lines) if line.name == raw["name"]), None)
        if existing is not None:
            lines[existing] = replace(lines[existing], quantity=lines[existing].quantity + quantity)
            continue
        lines.append(CartItem(
            id=str(raw.get("id") or raw["name"]),
            name=raw["name"],
            unit_price=to_money(raw["price"]),
            quantity=quantity,
        ))
    return replace(cart, items=tuple(lines))


def to_payload(cart: Cart):
    return {
        "items": [
            {
                "id": item.id,
                "name": item.name,
                "price": float(item.unit_price),
                "quantity": item.quantity,
            }
            for item in cart.items
        ],
        "priority_fee": cart.priority_fee,
        "subtotal": float(cart.subtotal),
        "total": float(compute_total(cart)),
    }
