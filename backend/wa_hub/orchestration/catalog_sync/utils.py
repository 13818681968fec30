"""
目录同步的纯函数：外部 id 推导、价格/库存格式化、WhatsApp item 组装。
不访问数据库，不发请求。
"""

from __future__ import annotations
import re
import unicodedata
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence

from wa_hub.core.config import settings
from wa_hub.db.model.catalog import Product, ProductOption
from wa_hub.integrations.whatsapp.payloads import (
    AVAILABILITY_IN_STOCK, AVAILABILITY_OUT_OF_STOCK, CatalogImage, CatalogItemData,
)


DEFAULT_CATEGORY = "General"
CONDITION_NEW = "new"

# update_item / sync_inventory 允许的部分更新字段
UPDATABLE_FIELDS = ("name", "price", "description", "availability", "image")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
# retailer_id 列 255，给 "_<item_id>" 留位置
_SLUG_MAX = 200


# ---------- retailer id ----------
def slugify_retailer_id(parent_name: Optional[str], item_name: Optional[str]) -> str:
    """
    "Jollof Spice" + "Large 500g" → "jollof_spice_large_500g"
    先做 NFKD 去掉重音（"Café" → "cafe"）；小写；非字母数字的连续片段（含空白）折叠成单个 "_"；去掉首尾 "_"。
    """
    joined = " ".join(p.strip() for p in (parent_name, item_name) if p and p.strip())
    ascii_text = unicodedata.normalize("NFKD", joined).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("_", ascii_text.lower())[:_SLUG_MAX].strip("_")


def derive_retailer_id(
    parent_name: Optional[str],
    item_name: Optional[str],
    existing_sku: Optional[str],
    item_id: Optional[str] = None,
) -> str:
    """
    已有非空 SKU 直接用；否则合成。同样输入永远得到同样结果。
    带 item_id 时合成结果为 "<slug>_<item_id>"，同名商品互不覆盖；
    slug 为空（名字里没有可用字符）时直接用 item_id。
    """
    if existing_sku and existing_sku.strip():
        return existing_sku.strip()
    slug = slugify_retailer_id(parent_name, item_name)
    if not item_id:
        return slug
    return f"{slug}_{item_id}" if slug else item_id


# ---------- 字段格式化 ----------
def availability_for(stock: Optional[int]) -> str:
    return AVAILABILITY_IN_STOCK if (stock or 0) > 0 else AVAILABILITY_OUT_OF_STOCK


def to_minor_units(price) -> int:
    value = Decimal(str(price if price is not None else 0)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_price(price, currency: Optional[str] = None) -> str:
    """"<minor units> <currency>"，例如 12.50 → "1250 GHS"。"""
    return f"{to_minor_units(price)} {currency or settings.CATALOG_CURRENCY}"


def media_url(media_id: str) -> str:
    return settings.WHATSAPP_MEDIA_URL_TEMPLATE.format(media_id=media_id)


def item_link(item_kind: str, item_id: str) -> str:
    base = settings.STOREFRONT_BASE_URL.rstrip("/")
    segment = "product-options" if item_kind == "product_option" else "products"
    return f"{base}/{segment}/{item_id}"


def resolve_brand(item, parent: Optional[Product]) -> str:
    default = settings.WHATSAPP_DEFAULT_BRAND
    if isinstance(item, ProductOption):
        if settings.WHATSAPP_OPTION_BRAND_SOURCE == "parent" and parent is not None and parent.brand:
            return parent.brand
        return default
    return item.brand or default


def _category(item, parent: Optional[Product]) -> str:
    if isinstance(item, ProductOption):
        return (parent.category_name if parent else None) or DEFAULT_CATEGORY
    return item.category_name or DEFAULT_CATEGORY


def _description(item, parent: Optional[Product]) -> str:
    if item.description:
        return item.description
    if parent is not None and parent.description:
        return parent.description
    return item.name


def _images(item) -> Optional[List[CatalogImage]]:
    if not item.whatsapp_image_id:
        return None
    return [CatalogImage(url=media_url(item.whatsapp_image_id))]


def _title(item, parent: Optional[Product]) -> str:
    if isinstance(item, ProductOption) and parent is not None:
        return f"{parent.name} - {item.name}"
    return item.name


# ---------- item 组装 ----------
def format_catalog_item(item, item_kind: str, parent: Optional[Product], retailer_id: str) -> CatalogItemData:
    """完整 UPDATE 载荷。"""
    return CatalogItemData(
        id=retailer_id,
        title=_title(item, parent),
        description=_description(item, parent),
        price=format_price(item.price),
        availability=availability_for(item.stock),
        condition=CONDITION_NEW,
        brand=resolve_brand(item, parent),
        category=_category(item, parent),
        link=item_link(item_kind, item.id),
        image=_images(item),
    )


def invalid_fields(fields: Iterable[str]) -> List[str]:
    return [f for f in fields if f not in UPDATABLE_FIELDS]


def build_partial_item(item, parent: Optional[Product], retailer_id: str, fields: Sequence[str]) -> CatalogItemData:
    """只包含请求的字段（外加 id）。"""
    data = CatalogItemData(id=retailer_id)
    if "name" in fields:
        data.title = _title(item, parent)
    if "price" in fields:
        data.price = format_price(item.price)
    if "description" in fields:
        data.description = _description(item, parent)
    if "availability" in fields:
        data.availability = availability_for(item.stock)
    if "image" in fields:
        data.image = _images(item)
    return data
