"""Stock-keeping records for the admin inventory page."""

import logging

from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5


def stock_status(quantity):
    if quantity == 0:
        return "Out of Stock"
    if quantity <= LOW_STOCK_THRESHOLD:
        return "Low Stock"
    return "In Stock"


def _parse_price(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError("Price must be a valid number.")


def _parse_quantity(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a valid number.")


class InventoryService:
    def __init__(self, store):
        self.store = store

    def list_items(self):
        items = self.store.list_items()
        for item in items:
            item["stock_status"] = stock_status(item["quantity"])
        return items

    def add_item(self, name, price, quantity):
        if not name or price is None or quantity is None:
            raise ValidationError("Missing required fields: name, price, quantity")
        return self.store.create_item(name, _parse_price(price), _parse_quantity(quantity))

    def update_item(self, item_id, name=None, price=None, quantity=None):
        changes = {}
        if name is not None:
            changes["name"] = name
        if price is not None:
            changes["price"] = _parse_price(price)
        if quantity is not None:
            changes["quantity"] = _parse_quantity(quantity)
        if not changes:
            raise ValidationError("No fields provided for update")

        updated = self.store.update_item(item_id, changes)
        if not updated:
            raise NotFoundError("Item not found")
        return updated

    def delete_item(self, item_id):
        if not self.store.delete_item(item_id):
            raise NotFoundError("Item not found")
        logger.info("Inventory item %s deleted", item_id)
        return {"message": f"Item {item_id} deleted successfully"}
