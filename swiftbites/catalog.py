"""
Catalog: the purchasable menu and its image lifecycle

An image object is only removed once the database no longer points at it.
Cleanup is best effort and never fails the request that triggered it.
"""

import logging

from .cart import to_money
from .errors import NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


def _price(value):
    price = to_money(value)
    if not price.is_finite() or price < 0:
        raise ValidationError("Price must be a valid number.")
    return price


class CatalogService:
    def __init__(self, store, images):
        self.store = store
        self.images = images

    def list_items(self):
        return self.store.list_items()

    def create_item(self, name, price, upload=None):
        """``upload`` is ``(fileobj, filename, content_type)``; required for new items."""
        if not name:
            raise ValidationError("Name is required.")
        price = _price(price)
        if upload is None:
            raise ValidationError("Image file is required for new menu item.")

        image_url = self.images.upload(*upload)
        try:
            return self.store.create_item(name, price, image_url)
        except PersistenceError:
            logger.error("Failed to add %s, removing orphaned image", name)
            self.images.delete(image_url)
            raise

    def update_item(self, item_id, name, price, upload=None, clear_image=False):
        if not name:
            raise ValidationError("Name is required.")
        price = _price(price)
        current = self.store.get_item(item_id)
        if not current:
            raise NotFoundError("Item not found.")
        old_image = current.get("image")

        if upload is not None:
            new_image = self.images.upload(*upload)
        elif clear_image:
            new_image = None
        else:
            new_image = old_image

        try:
            updated = self.store.update_item(item_id, name, price, new_image)
        except PersistenceError:
            if upload is not None:
                self.images.delete(new_image)
            raise

        if not updated:
            if upload is not None:
                self.images.delete(new_image)
            raise NotFoundError("Item not found.")

        if old_image and old_image != new_image:
            self.images.delete(old_image)
        return updated

    def delete_item(self, item_id):
        deleted = self.store.delete_item(item_id)
        if not deleted:
            logger.warning("Menu item %s not found for deletion", item_id)
            raise NotFoundError("Item not found in database.")

        if deleted.get("image"):
            self.images.delete(deleted["image"])
        logger.info("Menu item %s deleted", item_id)
        return deleted
