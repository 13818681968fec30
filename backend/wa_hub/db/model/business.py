from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from wa_hub.db.base import Base, JSONType, new_id
from wa_hub.utils.clock import now_utc


"""
  租户（商家）表：owner + admin/member 集合用于访问控制
"""
class Business(Base):

    __tablename__ = "businesses"

    id:         Mapped[str]           = mapped_column(String(64), primary_key=True, default=new_id)
    name:       Mapped[str]           = mapped_column(String(255), nullable=False)
    owner_id:   Mapped[str]           = mapped_column(String(128), nullable=False, index=True)
    admin_ids:  Mapped[List[str]]     = mapped_column(JSONType, nullable=False, default=list)
    member_ids: Mapped[List[str]]     = mapped_column(JSONType, nullable=False, default=list)
    phone:      Mapped[Optional[str]] = mapped_column(String(32))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), onupdate=now_utc, nullable=False)



"""
  每个商家一份 WhatsApp Business 配置；access_token 加密存储
"""
class WhatsAppConfig(Base):

    __tablename__ = "whatsapp_configs"

    id:                  Mapped[str]           = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:         Mapped[str]           = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), unique=True, nullable=False)
    phone_number_id:     Mapped[str]           = mapped_column(String(64), nullable=False, index=True)   # webhook metadata 反查租户
    business_account_id: Mapped[Optional[str]] = mapped_column(String(64))      # WABA id，模板接口用
    catalog_id:          Mapped[Optional[str]] = mapped_column(String(64))
    app_id:              Mapped[Optional[str]] = mapped_column(String(64))      # 可续传上传需要
    access_token:        Mapped[str]           = mapped_column(Text, nullable=False)   # iv:tag:cipher (hex)
    is_active:           Mapped[bool]          = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), onupdate=now_utc, nullable=False)
