from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from wa_hub.db.base import Base, JSONType, new_id
from wa_hub.utils.clock import now_utc


MEDIA_UPLOADED = "uploaded"
MEDIA_EXPIRED = "expired"
MEDIA_FAILED = "failed"

MEDIA_PURPOSES = ("product", "product_option", "category", "carousel", "thumbnail", "fallback")


"""
  已上传到 WhatsApp 的媒体记录
  生命周期：上传成功创建(uploaded) → 刷新后置为 expired → 超过宽限期物理删除
"""
class MediaMetadata(Base):

    __tablename__ = "whatsapp_media"

    id:                Mapped[str]           = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:       Mapped[str]           = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    whatsapp_media_id: Mapped[str]           = mapped_column(String(128), nullable=False, index=True)
    original_url:      Mapped[str]           = mapped_column(Text, nullable=False)
    purpose:           Mapped[str]           = mapped_column(String(32), nullable=False)
    reference_id:      Mapped[Optional[str]] = mapped_column(String(64))
    reference_type:    Mapped[Optional[str]] = mapped_column(String(32))
    file_size:         Mapped[int]           = mapped_column(BigInteger, nullable=False, default=0)
    mime_type:         Mapped[str]           = mapped_column(String(64), nullable=False, default="image/jpeg")
    status:            Mapped[str]           = mapped_column(String(16), nullable=False, default=MEDIA_UPLOADED)

    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, nullable=False)
    expires_at:  Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at:  Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_whatsapp_media_business_status_expires", "business_id", "status", "expires_at"),
        Index("ix_whatsapp_media_reference", "business_id", "reference_id", "reference_type"),
    )



"""
  可续传上传会话（模板卡片图片用：session → 上传数据 → file handle）
"""
class ResumableUploadSession(Base):

    __tablename__ = "resumable_upload_sessions"

    id:          Mapped[str]           = mapped_column(String(64), primary_key=True, default=new_id)
    business_id: Mapped[str]           = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id:  Mapped[str]           = mapped_column(String(255), nullable=False)
    file_handle: Mapped[Optional[str]] = mapped_column(Text)
    file_name:   Mapped[str]           = mapped_column(String(255), nullable=False)
    file_length: Mapped[int]           = mapped_column(Integer, nullable=False)
    file_type:   Mapped[str]           = mapped_column(String(64), nullable=False, default="image/jpeg")
    status:      Mapped[str]           = mapped_column(String(16), nullable=False, default="created")   # created | completed | failed

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), onupdate=now_utc, nullable=False)



"""
  媒体卡片轮播模板
"""
class CarouselTemplate(Base):

    __tablename__ = "carousel_templates"

    id:                   Mapped[str]           = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:          Mapped[str]           = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    template_name:        Mapped[str]           = mapped_column(String(512), nullable=False)
    category_name:        Mapped[str]           = mapped_column(String(255), nullable=False)
    whatsapp_template_id: Mapped[Optional[str]] = mapped_column(String(128), index=True)
    status:               Mapped[str]           = mapped_column(String(32), nullable=False, default="pending")
    image_handles:        Mapped[List[str]]     = mapped_column(JSONType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), onupdate=now_utc, nullable=False)
