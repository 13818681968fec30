from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from wa_hub.db.base import Base, JSONType, new_id
from wa_hub.utils.clock import now_utc


NOTIFY_SENT = "sent"
NOTIFY_DELIVERED = "delivered"
NOTIFY_READ = "read"
NOTIFY_FAILED = "failed"
NOTIFY_STATUSES = (NOTIFY_SENT, NOTIFY_DELIVERED, NOTIFY_READ, NOTIFY_FAILED)

_STATUS_CHECK = "status IN ('sent', 'delivered', 'read', 'failed')"


"""
  通知记录：每次发送尝试一条（成功/失败都落库，便于审计）
  status 由 webhook 回调按 whatsapp_message_id 异步更新
"""
class NotificationRecord(Base):

    __tablename__ = "notifications"

    id:                  Mapped[str]                       = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:         Mapped[str]                       = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    order_id:            Mapped[str]                       = mapped_column(String(64), nullable=False, index=True)
    customer_phone:      Mapped[Optional[str]]             = mapped_column(String(32))
    type:                Mapped[str]                       = mapped_column(String(32), nullable=False)
    message:             Mapped[str]                       = mapped_column(Text, nullable=False)
    whatsapp_message_id: Mapped[Optional[str]]             = mapped_column(String(128), index=True)
    status:              Mapped[str]                       = mapped_column(String(16), nullable=False)
    error_info:          Mapped[Optional[Dict[str, Any]]]  = mapped_column(JSONType)
    status_updated_at:   Mapped[Optional[datetime]]        = mapped_column(DateTime(timezone=True))
    sent_at:             Mapped[Optional[datetime]]        = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="status"),
        Index("ix_notifications_business_created", "business_id", "created_at"),
    )



"""
  用户发来的消息（webhook 入库，processed=false 留给下游处理）
"""
class IncomingMessage(Base):

    __tablename__ = "incoming_messages"

    id:                  Mapped[str]                = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:         Mapped[Optional[str]]      = mapped_column(String(64), index=True)    # 按 phone_number_id 反查，查不到为空
    whatsapp_message_id: Mapped[str]                = mapped_column(String(128), nullable=False, index=True)
    from_number:         Mapped[str]                = mapped_column(String(32), nullable=False)
    message_type:        Mapped[str]                = mapped_column(String(32), nullable=False)
    content:             Mapped[str]                = mapped_column(Text, nullable=False, default="")
    timestamp:           Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    processed:           Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)



"""
  分析事件（catalog_sync / inventory_sync / notification_sent …）
"""
class AnalyticsEvent(Base):

    __tablename__ = "analytics"

    id:          Mapped[str]            = mapped_column(String(64), primary_key=True, default=new_id)
    business_id: Mapped[str]            = mapped_column(String(64), nullable=False)
    event_type:  Mapped[str]            = mapped_column(String(64), nullable=False)
    data:        Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_analytics_business_event_created", "business_id", "event_type", "created_at"),
    )
