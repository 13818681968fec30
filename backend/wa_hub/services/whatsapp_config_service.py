from __future__ import annotations
import logging

from sqlalchemy.orm import Session

from wa_hub.core.errors import FailedPreconditionError
from wa_hub.db.model.business import WhatsAppConfig
from wa_hub.integrations.whatsapp import WhatsAppGraph
from wa_hub.repository.business_repo import get_whatsapp_config
from wa_hub.utils.encryption import decrypt_token

logger = logging.getLogger(__name__)


def load_config(db: Session, business_id: str) -> WhatsAppConfig:
    cfg = get_whatsapp_config(db, business_id)
    if cfg is None or not cfg.is_active:
        raise FailedPreconditionError("WhatsApp not configured or inactive for this business")
    return cfg


def build_graph(db: Session, business_id: str) -> WhatsAppGraph:
    """租户配置 → 解密 token → Graph 门面"""
    cfg = load_config(db, business_id)
    token = decrypt_token(cfg.access_token)
    return WhatsAppGraph(
        access_token=token,
        phone_number_id=cfg.phone_number_id,
        catalog_id=cfg.catalog_id,
        business_account_id=cfg.business_account_id,
        app_id=cfg.app_id,
    )
