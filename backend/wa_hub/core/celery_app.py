# Celery 应用 + 队列 + beat 静态调度

from celery import Celery
from kombu import Exchange, Queue
from wa_hub.core.config import settings
from wa_hub.core.logging import configure_logging

configure_logging()


'''
初始化 Celery 应用/实例
   - Beat: 1 台（只发媒体刷新/清理两条静态调度）
   - Worker: catalog / media 两个队列可分开消费
'''
celery_app = Celery(
    "wa_hub",
    broker=settings.CELERY_BROKER_URL,          # 队列位置 (Redis)
    backend=settings.CELERY_RESULT_BACKEND,     # 结果存储 (Redis)
    include=[
        "wa_hub.orchestration.catalog_sync.catalog_sync_task",     # 目录同步
        "wa_hub.orchestration.media.media_pipeline",               # 媒体刷新/清理
    ],
)


celery_app.conf.update(
    timezone=settings.CELERY_TIMEZONE,           # 业务时区（加纳）
    enable_utc=True,                             # 内部还是存 UTC
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    broker_connection_retry_on_startup=True,
    # === 容错 ===
    worker_prefetch_multiplier=1,    # 一个 worker 一次只取一个任务
    task_acks_late=True,             # 执行完再确认，worker crash 后可重投
    broker_heartbeat=30,
    broker_pool_limit=10,
)


'''
队列拆分：
   - catalog: 目录同步（批量调用 Graph API，慢 I/O）
   - media:   下载/压缩/上传（CPU + 带宽）
'''
celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("catalog", Exchange("catalog"), routing_key="catalog"),
    Queue("media", Exchange("media"), routing_key="media"),
)


celery_app.conf.task_routes = {
    "wa_hub.orchestration.catalog_sync.run": {"queue": "catalog"},
    "wa_hub.orchestration.media.refresh_all": {"queue": "media"},
    "wa_hub.orchestration.media.cleanup_all": {"queue": "media"},
}


# 默认的静态调度（系统上下文，遍历所有启用 WhatsApp 的租户）
celery_app.conf.beat_schedule = {
    "media-refresh-all": {
        "task": "wa_hub.orchestration.media.refresh_all",
        "schedule": settings.MEDIA_REFRESH_INTERVAL_SEC,
    },
    "media-cleanup-all": {
        "task": "wa_hub.orchestration.media.cleanup_all",
        "schedule": settings.MEDIA_CLEANUP_INTERVAL_SEC,
    },
}
