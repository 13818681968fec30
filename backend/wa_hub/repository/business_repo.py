from __future__ import annotations
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from wa_hub.db.model.business import Business, WhatsAppConfig
from wa_hub.db.model.order import Order


def get_business(db: Session, business_id: str) -> Optional[Business]:
    if not business_id:
        return None
    return db.get(Business, business_id)


def get_whatsapp_config(db: Session, business_id: str) -> Optional[WhatsAppConfig]:
    stmt = select(WhatsAppConfig).where(WhatsAppConfig.business_id == business_id).limit(1)
    return db.execute(stmt).scalars().first()


def get_config_by_phone_number_id(db: Session, phone_number_id: str) -> Optional[WhatsAppConfig]:
    """webhook 反查租户：metadata.phone_number_id → config"""
    if not phone_number_id:
        return None
    stmt = select(WhatsAppConfig).where(WhatsAppConfig.phone_number_id == phone_number_id).limit(1)
    return db.execute(stmt).scalars().first()


def list_active_business_ids(db: Session) -> List[str]:
    stmt = select(WhatsAppConfig.business_id).where(WhatsAppConfig.is_active.is_(True))
    return list(db.execute(stmt).scalars().all())


def get_order(db: Session, order_id: str) -> Optional[Order]:
    if not order_id:
        return None
    return db.get(Order, order_id)


# ---------- Writes（脚本 / 测试造数用，调用方负责 commit） ----------
def create_business(db: Session, *, name: str, owner_id: str, admin_ids=None, member_ids=None, **extra) -> Business:
    row = Business(
        name=name,
        owner_id=owner_id,
        admin_ids=list(admin_ids or []),
        member_ids=list(member_ids or []),
        **extra,
    )
    db.add(row)
    db.flush()
    return row


def upsert_whatsapp_config(db: Session, business_id: str, **fields) -> WhatsAppConfig:
    """一个租户只有一份配置：存在则覆盖传入字段。access_token 需已加密。"""
    cfg = get_whatsapp_config(db, business_id)
    if cfg is None:
        cfg = WhatsAppConfig(business_id=business_id, **fields)
        db.add(cfg)
    else:
        for key, value in fields.items():
            setattr(cfg, key, value)
    db.flush()
    return cfg
