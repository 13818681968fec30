# 导出入口，给脚本/临时建表用

from .session import engine, SessionLocal, get_db, session_scope, dispose_engine
from wa_hub.db.model import *  # 确保把所有模型加载进 Base.metadata
from .base import Base


# 仅开发期/临时使用；生产请统一用 Alembic 迁移
"""
    开发期在空库快速建表：
        python -c "from wa_hub.db import create_all; create_all()"
    生产环境请使用 `alembic upgrade head`
"""
def create_all() -> None:
    Base.metadata.create_all(bind=engine)
