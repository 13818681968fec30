"""
对外统一入口（Public Surface）：
- 从这里 import 需要的类/函数，内部实现可自由演进。
"""

from .graph import WhatsAppGraph
from .http_client import WhatsAppHttpClient
from .messaging_api import format_phone_number
from .payloads import (
    CatalogImage, CatalogItemData, CatalogBatchRequest, ItemsBatchPayload,
    TextMessagePayload, CarouselCard, CarouselTemplatePayload,
    AVAILABILITY_IN_STOCK, AVAILABILITY_OUT_OF_STOCK,
)
from .errors import (
    WhatsAppError, WhatsAppAuthError, WhatsAppClientError, WhatsAppServerError,
    WhatsAppRateLimitError, WhatsAppPayloadError,
)


__all__ = [
    "WhatsAppGraph", "WhatsAppHttpClient", "format_phone_number",
    "CatalogImage", "CatalogItemData", "CatalogBatchRequest", "ItemsBatchPayload",
    "TextMessagePayload", "CarouselCard", "CarouselTemplatePayload",
    "AVAILABILITY_IN_STOCK", "AVAILABILITY_OUT_OF_STOCK",
    "WhatsAppError", "WhatsAppAuthError", "WhatsAppClientError", "WhatsAppServerError",
    "WhatsAppRateLimitError", "WhatsAppPayloadError",
]
