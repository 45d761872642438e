"""Derived statistics over the current order set for the admin insights page."""

import logging
from collections import Counter
from decimal import Decimal

logger = logging.getLogger(__name__)

NO_ORDERS = "No orders found. Place some orders to generate insights."


def _revenue(orders, strict=True):
    total = Decimal("0")
    for order in orders:
        try:
            total += Decimal(str(order["amount"] or 0))
        except (ArithmeticError, KeyError):
            if strict:
                raise
    return total


def _money(value):
    return f"{value.quantize(Decimal('0.01'))}"


def generate_insights(orders):
    """Markdown business report for a non-empty list of order rows."""
    revenue = _revenue(orders)
    average = revenue / len(orders)

    top_items = Counter(order["item"] for order in orders).most_common(3)

    by_status = Counter(order.get("status") for order in orders)
    pending, prepared, picked_up = by_status["pending"], by_status["prepared"], by_status["pickedup"]

    by_payment = Counter(order.get("payment_status") for order in orders)
    payment_pending, payment_done = by_payment["pending"], by_payment["paid"]

    lines = ["# Business Insights Report", ""]

    lines += [
        "## Order Summary",
        f"- Total Orders: {len(orders)}",
        f"- Total Revenue: ₹{_money(revenue)}",
        f"- Average Order Value: ₹{_money(average)}",
        "",
    ]

    lines.append("## Top Selling Items")
    if not top_items:
        lines.append("- No top selling items yet.")
    for rank, (item, count) in enumerate(top_items, start=1):
        lines.append(f"{rank}. {item} ({count} orders)")
    lines.append("")

    lines += [
        "## Order Status Breakdown",
        f"- Pending: {pending}",
        f"- Prepared: {prepared}",
        f"- Picked Up: {picked_up}",
        "",
        "## Payment Status Breakdown",
        f"- Payment Pending: {payment_pending}",
        f"- Payment Completed: {payment_done}",
        "",
        "## Recommendations",
    ]

    if top_items:
        lines.append(f'- Consider promoting your top seller "{top_items[0][0]}" more prominently.')
    else:
        lines.append("- No specific top seller to recommend promotion for yet.")

    if pending > prepared * 2 and pending > 0:
        lines.append("- The kitchen might need more staff as there are many pending orders.")
    elif pending == 0:
        lines.append("- Excellent job, all orders are being processed efficiently!")

    if average < 15:
        lines.append("- Try offering combo deals to increase average order value.")
    else:
        lines.append("- Your average order value is good, consider loyalty rewards for repeat customers.")

    if payment_pending > payment_done * 0.5 and payment_pending > 0:
        lines.append("- Review your payment process, many customers are abandoning payment.")
    else:
        lines.append("- Your payment completion rate is excellent!")

    return "\n".join(lines) + "\n"


def basic_stats(orders):
    completed = sum(1 for order in orders if order.get("payment_status") == "paid")
    return (
        f"Total Orders: {len(orders)}\n"
        f"Total Revenue: ₹{_money(_revenue(orders, strict=False))}\n"
        f"Completed Payments: {completed}"
    )


def order_insights(orders):
    if not orders:
        return NO_ORDERS
    try:
        return generate_insights(orders)
    except Exception:
        logger.exception("Error generating insights, falling back to basic stats")
        return basic_stats(orders)
