from decimal import Decimal
from types import SimpleNamespace

import pytest

from wa_hub.db.model.catalog import Product, ProductOption
from wa_hub.orchestration.catalog_sync import utils
from wa_hub.orchestration.catalog_sync.utils import (
    availability_for, build_partial_item, derive_retailer_id, format_catalog_item,
    format_price, invalid_fields, resolve_brand, slugify_retailer_id,
)


@pytest.mark.parametrize("parent,item,expected", [
    ("Jollof Spice", "Large 500g", "jollof_spice_large_500g"),
    ("  Shito  ", "Extra--Hot!!", "shito_extra_hot"),
    (None, "Plain Rice", "plain_rice"),
    ("Café", "Ñame", "cafe_name"),
    (None, "日本茶", ""),
    ("", "", ""),
])
def test_slugify(parent, item, expected):
    assert slugify_retailer_id(parent, item) == expected


def test_derive_prefers_stored_sku_and_is_stable():
    assert derive_retailer_id("A", "B", "SKU-9") == "SKU-9"
    assert derive_retailer_id("A", "B", "   ") == "a_b"
    assert derive_retailer_id("A", "B", None) == derive_retailer_id("A", "B", None)


def test_derive_with_item_id_is_unique_per_item():
    assert derive_retailer_id(None, "Shito", None, "p1") == "shito_p1"
    assert derive_retailer_id(None, "Shito", None, "p2") == "shito_p2"
    assert derive_retailer_id(None, "日本茶", "", "p3") == "p3"
    assert derive_retailer_id(None, "Shito", "SKU-1", "p1") == "SKU-1"
    assert len(derive_retailer_id(None, "x" * 300, None, "a" * 32)) <= 255


@pytest.mark.parametrize("stock,expected", [(None, "out of stock"), (0, "out of stock"), (-2, "out of stock"), (1, "in stock")])
def test_availability_is_binary(stock, expected):
    assert availability_for(stock) == expected


def test_format_price_uses_minor_units():
    assert format_price(Decimal("12.5")) == "1250 GHS"
    assert format_price(0.015) == "2 GHS"
    assert format_price(None, "USD") == "0 USD"


def test_product_item_defaults():
    product = Product(id="p1", name="Shito", price=Decimal("30"), stock=2, category_name=None, brand=None)
    data = format_catalog_item(product, "product", None, "shito").to_dict()
    assert data == {
        "id": "shito",
        "title": "Shito",
        "description": "Shito",
        "price": "3000 GHS",
        "availability": "in stock",
        "condition": "new",
        "brand": "Default Brand",
        "category": "General",
        "link": "https://yourapp.com/products/p1",
    }


def test_option_brand_source_setting(monkeypatch):
    parent = Product(id="p1", name="Shito", brand="Mama's")
    option = ProductOption(id="o1", product_id="p1", name="Large")
    assert resolve_brand(option, parent) == "Default Brand"

    monkeypatch.setattr(utils.settings, "WHATSAPP_OPTION_BRAND_SOURCE", "parent")
    assert resolve_brand(option, parent) == "Mama's"
    assert resolve_brand(option, SimpleNamespace(brand=None)) == "Default Brand"


def test_partial_item_only_has_requested_fields():
    product = Product(id="p1", name="Shito", price=Decimal("1"), stock=0, whatsapp_image_id="m1")
    data = build_partial_item(product, None, "shito", ["image", "availability"]).to_dict()
    assert set(data) == {"id", "image", "availability"}
    assert data["image"] == [{"url": "https://scontent.whatsapp.net/v/t61.24694-24/m1"}]


def test_invalid_fields():
    assert invalid_fields(["name", "colour", "price", "size"]) == ["colour", "size"]
