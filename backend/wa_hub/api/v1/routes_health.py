# 健康检查（含 DB 探活）

import logging

from fastapi import APIRouter
from sqlalchemy import text

from wa_hub.db.session import engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/db")
def health_db():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("health.db_unreachable err=%s", e)
        return {"status": "degraded", "db": False}
    return {"status": "ok", "db": True}
