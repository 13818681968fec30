from decimal import Decimal

import pytest

from wa_hub.db.model.order import Order
from wa_hub.services.notification_templates import NOTIFICATION_TYPES, format_currency, render_message, truncate


def _order(**fields):
    values = dict(id="A100", customer_name="Kofi", customer_phone="0241234567", total=Decimal("1234.5"), status="processing")
    values.update(fields)
    return Order(**values)


@pytest.mark.parametrize("amount,currency,expected", [
    (Decimal("1234.5"), None, "GH₵1,234.50"),
    (0, "usd", "$0.00"),
    (None, "XOF", "XOF 0.00"),
    ("99.999", "EUR", "€100.00"),
])
def test_format_currency(amount, currency, expected):
    assert format_currency(amount, currency) == expected


@pytest.mark.parametrize("notification_type", NOTIFICATION_TYPES)
def test_every_type_mentions_name_order_and_total(notification_type):
    text = render_message(notification_type, _order())
    assert text.startswith("Hi Kofi!")
    assert "#A100" in text
    assert "GH₵1,234.50" in text


def test_shipping_update_tracking_line():
    assert "Tracking number: TRK-9." in render_message("shipping_update", _order(tracking_number="TRK-9"))
    assert "tracking details soon" in render_message("shipping_update", _order())


def test_unknown_type_and_missing_name():
    text = render_message("something_else", _order(customer_name=None))
    assert text == "Hi Customer! There's an update on your order #A100. Total: GH₵1,234.50"


def test_truncate():
    assert truncate("abc", 10) == "abc"
    assert truncate("a" * 20, 10) == "aaaaaaa..."
    assert len(render_message("status_change", _order(), "x" * 5000)) == 4096
