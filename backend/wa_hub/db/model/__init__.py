# 聚合导入所有模型，供 Alembic 发现

from .business import Business, WhatsAppConfig
from .catalog import Product, ProductOption
from .order import Order
from .media import MediaMetadata, ResumableUploadSession, CarouselTemplate
from .messaging import NotificationRecord, IncomingMessage, AnalyticsEvent

__all__ = [
    # tenant
    "Business", "WhatsAppConfig",
    # catalog
    "Product", "ProductOption", "Order",
    # media
    "MediaMetadata", "ResumableUploadSession", "CarouselTemplate",
    # messaging
    "NotificationRecord", "IncomingMessage", "AnalyticsEvent",
]
