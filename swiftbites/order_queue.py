"""Staff order queue: urgency ordering and the pending -> prepared -> pickedup workflow."""

import logging

from .cart import priority_rank
from .errors import NotFoundError

logger = logging.getLogger(__name__)

PENDING = "pending"
PREPARED = "prepared"
PICKED_UP = "pickedup"
STATUSES = (PENDING, PREPARED, PICKED_UP)


def queue_key(order):
    # pending first, then higher priority, then oldest
    return (
        order.get("status") != PENDING,
        -priority_rank(order.get("priority_level")),
        order.get("id") or 0,
    )


def sort_queue(orders):
    return sorted(orders, key=queue_key)


class OrderQueue:
    def __init__(self, store):
        self.store = store

    def list_orders(self):
        return sort_queue(self.store.list_orders())

    def get_by_token(self, token):
        order = self.store.get_by_token(token.strip().upper())
        if not order:
            raise NotFoundError("Order not found.")
        return order

    def mark_prepared(self, order_id):
        order = self.store.set_status(order_id, PREPARED, from_statuses=(PENDING, PREPARED))
        if order:
            logger.info("Order %s marked prepared", order_id)
            return order

        # Either missing, or already picked up and must not move backwards.
        current = self.store.get_order(order_id)
        if not current:
            raise NotFoundError("Order not found.")
        return current

    def mark_picked_up(self, order_id):
        order = self.store.set_status(order_id, PICKED_UP)
        if not order:
            raise NotFoundError("Order not found.")
        logger.info("Order %s picked up", order_id)
        return order
