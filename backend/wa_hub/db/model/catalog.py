from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
)
from sqlalchemy.orm import Mapped, mapped_column

from wa_hub.db.base import Base, new_id
from wa_hub.utils.clock import now_utc


# 同步状态三态：只由 catalog_sync 编排层写入
SYNC_PENDING = "pending"
SYNC_SYNCED = "synced"
SYNC_ERROR = "error"
SYNC_STATUSES = (SYNC_PENDING, SYNC_SYNCED, SYNC_ERROR)

_SYNC_CHECK = "sync_status IN ('pending', 'synced', 'error')"


"""
  商品表（租户隔离）
"""
class Product(Base):

    __tablename__ = "products"

    id:                Mapped[str]               = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:       Mapped[str]               = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    name:              Mapped[str]               = mapped_column(String(255), nullable=False)
    description:       Mapped[Optional[str]]     = mapped_column(Text)
    price:             Mapped[Decimal]           = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    stock:             Mapped[int]               = mapped_column(Integer, nullable=False, default=0)
    category_name:     Mapped[Optional[str]]     = mapped_column(String(255))
    brand:             Mapped[Optional[str]]     = mapped_column(String(255))
    image_url:         Mapped[Optional[str]]     = mapped_column(Text)            # 源图
    whatsapp_image_id: Mapped[Optional[str]]     = mapped_column(String(128))     # 已上传到 WhatsApp 的 media id
    retailer_id:       Mapped[Optional[str]]     = mapped_column(String(255))     # 外部目录 id（即商品 SKU）

    sync_status:       Mapped[str]               = mapped_column(String(16), nullable=False, default=SYNC_PENDING)
    sync_error:        Mapped[Optional[str]]     = mapped_column(Text)
    last_synced:       Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), onupdate=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint(_SYNC_CHECK, name="sync_status"),
        Index("ix_products_business_sync", "business_id", "sync_status"),
    )



"""
  商品规格/选项表：独立的同步生命周期；父商品名在格式化时实时查询
"""
class ProductOption(Base):

    __tablename__ = "product_options"

    id:                Mapped[str]               = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:       Mapped[str]               = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    product_id:        Mapped[str]               = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name:              Mapped[str]               = mapped_column(String(255), nullable=False)
    description:       Mapped[Optional[str]]     = mapped_column(Text)
    price:             Mapped[Decimal]           = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    stock:             Mapped[int]               = mapped_column(Integer, nullable=False, default=0)
    image_url:         Mapped[Optional[str]]     = mapped_column(Text)
    whatsapp_image_id: Mapped[Optional[str]]     = mapped_column(String(128))
    sku:               Mapped[Optional[str]]     = mapped_column(String(255))

    sync_status:       Mapped[str]               = mapped_column(String(16), nullable=False, default=SYNC_PENDING)
    sync_error:        Mapped[Optional[str]]     = mapped_column(Text)
    last_synced:       Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), onupdate=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint(_SYNC_CHECK, name="sync_status"),
        Index("ix_product_options_business_sync", "business_id", "sync_status"),
    )
