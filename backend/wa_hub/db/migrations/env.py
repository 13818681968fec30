# Alembic 驱动：连接串取自 Settings；只管理 wa_hub 自己的表

from __future__ import annotations
import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from wa_hub.core.config import settings
from wa_hub.db.base import Base
import wa_hub.db.model  # noqa: F401  导入所有模型，填充 metadata


config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name:
    try:
        fileConfig(config.config_file_name)
    except KeyError:
        # ini 没有 logging 段
        logging.basicConfig(level=logging.INFO)

target_metadata = Base.metadata
logger = logging.getLogger("alembic.env")


def include_object(obj, name, type_, reflected, compare_to):
    # 同库里其它系统的表（商户后台等）不参与 autogenerate
    if type_ == "table" and reflected and name not in target_metadata.tables:
        return False
    return True


def _configure_kwargs() -> dict:
    return {
        "target_metadata": target_metadata,
        "include_object": include_object,
        "compare_type": True,
        "compare_server_default": True,
    }


"""离线模式：只输出 SQL，不连库"""
def run_migrations_offline():
    context.configure(url=config.get_main_option("sqlalchemy.url"), literal_binds=True, **_configure_kwargs())
    with context.begin_transaction():
        context.run_migrations()


"""在线模式：sqlite（本地）用 batch 模式改表"""
def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        logger.info("migrations.online dialect=%s", connection.dialect.name)
        context.configure(
            connection=connection,
            render_as_batch=connection.dialect.name == "sqlite",
            **_configure_kwargs(),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
