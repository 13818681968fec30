from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from wa_hub.db.base import Base, new_id
from wa_hub.utils.clock import now_utc


"""
  订单表（只读为主；通知发送后回写 last_notification_*）
"""
class Order(Base):

    __tablename__ = "orders"

    id:                     Mapped[str]                = mapped_column(String(64), primary_key=True, default=new_id)
    business_id:            Mapped[str]                = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_name:          Mapped[Optional[str]]      = mapped_column(String(255))
    customer_phone:         Mapped[str]                = mapped_column(String(32), nullable=False)
    total:                  Mapped[Decimal]            = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    status:                 Mapped[str]                = mapped_column(String(32), nullable=False, default="pending")
    tracking_number:        Mapped[Optional[str]]      = mapped_column(String(128))
    last_notification_sent: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_notification_type: Mapped[Optional[str]]      = mapped_column(String(32))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, server_default=func.now(), onupdate=now_utc, nullable=False)
