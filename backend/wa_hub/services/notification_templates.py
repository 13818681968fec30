from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from wa_hub.core.config import settings
from wa_hub.db.model.order import Order


NOTIFICATION_TYPES = (
    "status_change",
    "payment_received",
    "shipping_update",
    "order_confirmed",
    "order_delivered",
    "order_cancelled",
)

CURRENCY_SYMBOLS = {"GHS": "GH₵", "USD": "$", "EUR": "€", "GBP": "£", "NGN": "₦"}

_TEMPLATES = {
    "status_change": "Hi {name}! Your order #{order_id} status has been updated to: {status}. Total: {total}",
    "payment_received": "Hi {name}! We've received your payment for order #{order_id}. Total: {total}. Thank you!",
    "shipping_update": "Hi {name}! Your order #{order_id} is now being shipped. {tracking}Total: {total}",
    "order_confirmed": "Hi {name}! Your order #{order_id} has been confirmed. Total: {total}. We'll keep you updated on the progress.",
    "order_delivered": "Hi {name}! Your order #{order_id} has been delivered. Total: {total}. Thank you for your business!",
    "order_cancelled": "Hi {name}! Your order #{order_id} has been cancelled. Total: {total}. Reply to this message if you have any questions.",
}
_DEFAULT_TEMPLATE = "Hi {name}! There's an update on your order #{order_id}. Total: {total}"


def format_currency(amount, currency: Optional[str] = None) -> str:
    code = (currency or settings.CATALOG_CURRENCY).upper()
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    return f"{symbol}{value:,.2f}"


def truncate(text: str, max_length: Optional[int] = None) -> str:
    limit = max_length or settings.NOTIFY_MAX_MESSAGE_LENGTH
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def render_message(notification_type: str, order: Order, custom_message: Optional[str] = None) -> str:
    """custom_message 优先；否则按类型套模板，未知类型用默认模板。"""
    if custom_message and custom_message.strip():
        return truncate(custom_message.strip())

    tracking = (
        f"Tracking number: {order.tracking_number}. "
        if order.tracking_number
        else "You'll receive tracking details soon. "
    )
    template = _TEMPLATES.get(notification_type, _DEFAULT_TEMPLATE)
    text = template.format(
        name=order.customer_name or "Customer",
        order_id=order.id,
        status=order.status,
        total=format_currency(order.total),
        tracking=tracking,
    )
    return truncate(text)
