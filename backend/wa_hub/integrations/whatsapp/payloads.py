"""
Graph API 出站载荷的结构化类型。
字段缺省（None）即不出现在请求体里，保持各接口的字段存在性约定。
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


METHOD_UPDATE = "UPDATE"
METHOD_DELETE = "DELETE"
ITEM_TYPE_PRODUCT = "PRODUCT_ITEM"

AVAILABILITY_IN_STOCK = "in stock"
AVAILABILITY_OUT_OF_STOCK = "out of stock"


@dataclass
class CatalogImage:
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url}


@dataclass
class CatalogItemData:
    """items_batch 中单个 item 的 data；只有 id 必填（部分更新）。"""

    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None            # "<amount> <currency>"
    availability: Optional[str] = None
    condition: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    link: Optional[str] = None
    image: Optional[List[CatalogImage]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "image":
                value = [img.to_dict() for img in value]
            out[f.name] = value
        return out


@dataclass
class CatalogBatchRequest:
    method: str
    data: CatalogItemData

    def to_dict(self) -> Dict[str, Any]:
        if self.method == METHOD_DELETE:
            return {"method": self.method, "data": {"id": self.data.id}}
        return {"method": self.method, "data": self.data.to_dict()}


@dataclass
class ItemsBatchPayload:
    requests: List[CatalogBatchRequest] = field(default_factory=list)
    item_type: str = ITEM_TYPE_PRODUCT

    @classmethod
    def updates(cls, items: List[CatalogItemData]) -> "ItemsBatchPayload":
        return cls(requests=[CatalogBatchRequest(METHOD_UPDATE, it) for it in items])

    @classmethod
    def deletes(cls, retailer_ids: List[str]) -> "ItemsBatchPayload":
        return cls(requests=[CatalogBatchRequest(METHOD_DELETE, CatalogItemData(id=rid)) for rid in retailer_ids])

    def to_dict(self) -> Dict[str, Any]:
        return {"requests": [r.to_dict() for r in self.requests], "item_type": self.item_type}


@dataclass
class TextMessagePayload:
    to: str
    body: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messaging_product": "whatsapp",
            "to": self.to,
            "type": "text",
            "text": {"body": self.body},
        }


# ===== 媒体卡片轮播模板 =====
CAROUSEL_BODY_TEXT = (
    "Discover our curated collection of {{1}}.\n\n"
    "Choose any product to explore and order your preferred options."
)
CAROUSEL_CARD_TEXT = "Get {{1}} now at just GHS {{2}}!\n\nTap to explore your options"


@dataclass
class CarouselCard:
    header_handle: str
    example_name: str
    example_price: str = "10.0"
    button_text: str = "View Options"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": [
                {"type": "header", "format": "image", "example": {"header_handle": [self.header_handle]}},
                {"type": "body", "text": CAROUSEL_CARD_TEXT,
                 "example": {"body_text": [[self.example_name, self.example_price]]}},
                {"type": "buttons", "buttons": [{"type": "quick_reply", "text": self.button_text}]},
            ]
        }


@dataclass
class CarouselTemplatePayload:
    name: str
    cards: List[CarouselCard]
    body_example: str
    language: str = "en_US"
    category: str = "marketing"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "language": self.language,
            "category": self.category,
            "components": [
                {"type": "body", "text": CAROUSEL_BODY_TEXT, "example": {"body_text": [[self.body_example]]}},
                {"type": "carousel", "cards": [c.to_dict() for c in self.cards]},
            ],
        }
