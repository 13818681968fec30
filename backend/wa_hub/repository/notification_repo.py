from __future__ import annotations
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from wa_hub.db.model.messaging import (
    NotificationRecord, IncomingMessage, NOTIFY_STATUSES,
)


def add_notification(db: Session, **fields: Any) -> NotificationRecord:
    row = NotificationRecord(**fields)
    db.add(row)
    db.flush()
    return row


def find_by_message_id(db: Session, whatsapp_message_id: str) -> Optional[NotificationRecord]:
    """一个外部 message id 最多对应一条记录。"""
    stmt = (
        select(NotificationRecord)
        .where(NotificationRecord.whatsapp_message_id == whatsapp_message_id)
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def history(db: Session, business_id: str, *, order_id: Optional[str] = None, limit: int = 50) -> List[NotificationRecord]:
    stmt = select(NotificationRecord).where(NotificationRecord.business_id == business_id)
    if order_id:
        stmt = stmt.where(NotificationRecord.order_id == order_id)
    stmt = stmt.order_by(NotificationRecord.created_at.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def delivery_stats(db: Session, business_id: str) -> Dict[str, int]:
    stats = {"total": 0, **{s: 0 for s in NOTIFY_STATUSES}}
    rows = db.execute(
        select(NotificationRecord.status, func.count())
        .where(NotificationRecord.business_id == business_id)
        .group_by(NotificationRecord.status)
    ).all()
    for status, count in rows:
        stats["total"] += count
        stats[status] = stats.get(status, 0) + count
    # 已发出但还没收到任何回执
    stats["pending"] = stats.get("sent", 0)
    return stats


def add_incoming_message(db: Session, **fields: Any) -> IncomingMessage:
    row = IncomingMessage(**fields)
    db.add(row)
    db.flush()
    return row
