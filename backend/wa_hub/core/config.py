# 环境变量和配置
# pydantic‑settings 读取 .env = core/config.py

from typing import Optional
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 本机直接跑 uvicorn 时（不走 Docker），才会用到 model_config.env_file=".env"：
# 此时它会读取 backend/.env

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # ========= project config =========
    PROJECT_NAME: str = "WhatsApp Commerce Hub"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"


    # ========= 鉴权 / CORS =========
    SECRET_KEY: str = Field("CHANGE_ME", alias="SECRET_KEY")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(480, alias="ACCESS_TOKEN_EXPIRE_MINUTES")   # 8h
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"


    # ========= Database =========
    # 容器内默认连 docker 网络里的 "db" 服务；测试用 sqlite 覆盖
    DATABASE_URL: str = Field(
        default="postgresql+psycopg://wa_user:wa_pass@db:5432/wa_hub_dev",
        alias="DATABASE_URL",
    )


    # ========= celery config =========
    CELERY_BROKER_URL: Optional[str] = Field(None, alias="CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND: Optional[str] = Field(None, alias="CELERY_RESULT_BACKEND")
    CELERY_TIMEZONE: str = "Africa/Accra"
    SYNC_TASKS_INLINE: bool = Field(default=True, alias="SYNC_TASKS_INLINE")
    MEDIA_REFRESH_INTERVAL_SEC: int = Field(24 * 3600, alias="MEDIA_REFRESH_INTERVAL_SEC")   # 每日扫一次即将过期的媒体
    MEDIA_CLEANUP_INTERVAL_SEC: int = Field(7 * 24 * 3600, alias="MEDIA_CLEANUP_INTERVAL_SEC")


    # ========= WhatsApp Graph API =========
    WHATSAPP_GRAPH_BASE_URL: str = Field("https://graph.facebook.com", alias="WHATSAPP_GRAPH_BASE_URL")
    WHATSAPP_API_VERSION: str = Field("v22.0", alias="WHATSAPP_API_VERSION")
    WHATSAPP_CONNECT_TIMEOUT: int = Field(10, ge=1, alias="WHATSAPP_CONNECT_TIMEOUT")
    WHATSAPP_READ_TIMEOUT: int = Field(30, ge=1, alias="WHATSAPP_READ_TIMEOUT")

    # webhook 配置
    WHATSAPP_WEBHOOK_VERIFY_TOKEN: Optional[str] = Field(None, alias="WHATSAPP_WEBHOOK_VERIFY_TOKEN")
    WHATSAPP_APP_SECRET: Optional[SecretStr] = Field(None, alias="WHATSAPP_APP_SECRET")           # 为空则跳过签名校验

    # access_token 落库加密（AES-256-GCM）
    WHATSAPP_TOKEN_ENCRYPTION_KEY: Optional[SecretStr] = Field(None, alias="WHATSAPP_TOKEN_ENCRYPTION_KEY")


    # ========= Catalog sync =========
    CATALOG_BATCH_SIZE: int = Field(10, ge=1, le=1000, alias="CATALOG_BATCH_SIZE")
    CATALOG_ID_QUERY_LIMIT: int = Field(30, ge=1, alias="CATALOG_ID_QUERY_LIMIT")     # "id in (...)" 单次上限
    CATALOG_CURRENCY: str = Field("GHS", alias="CATALOG_CURRENCY")
    WHATSAPP_DEFAULT_BRAND: str = Field("Default Brand", alias="WHATSAPP_DEFAULT_BRAND")
    WHATSAPP_OPTION_BRAND_SOURCE: str = Field("default", alias="WHATSAPP_OPTION_BRAND_SOURCE")   # default | parent
    STOREFRONT_BASE_URL: str = Field("https://yourapp.com", alias="STOREFRONT_BASE_URL")
    WHATSAPP_MEDIA_URL_TEMPLATE: str = Field(
        "https://scontent.whatsapp.net/v/t61.24694-24/{media_id}",
        alias="WHATSAPP_MEDIA_URL_TEMPLATE",
    )


    # ========= Media =========
    MEDIA_EXPIRES_DAYS: int = Field(30, ge=1, alias="MEDIA_EXPIRES_DAYS")
    MEDIA_DOWNLOAD_TIMEOUT: int = Field(30, ge=1, alias="MEDIA_DOWNLOAD_TIMEOUT")
    MEDIA_DOWNLOAD_MAX_BYTES: int = Field(50 * 1024 * 1024, alias="MEDIA_DOWNLOAD_MAX_BYTES")   # 50MB
    MEDIA_UPLOAD_MAX_BYTES: int = Field(16 * 1024 * 1024, alias="MEDIA_UPLOAD_MAX_BYTES")       # WhatsApp 上限 16MB
    MEDIA_JPEG_QUALITY: int = Field(85, ge=1, le=95, alias="MEDIA_JPEG_QUALITY")
    MEDIA_REFRESH_BUFFER_DAYS: int = Field(7, ge=0, alias="MEDIA_REFRESH_BUFFER_DAYS")
    MEDIA_CLEANUP_DAYS: int = Field(30, ge=0, alias="MEDIA_CLEANUP_DAYS")
    MEDIA_BATCH_SIZE: int = Field(5, ge=1, alias="MEDIA_BATCH_SIZE")


    # ========= Notifications =========
    NOTIFY_BATCH_SIZE: int = Field(5, ge=1, alias="NOTIFY_BATCH_SIZE")
    NOTIFY_BATCH_DELAY_SEC: float = Field(1.0, ge=0, alias="NOTIFY_BATCH_DELAY_SEC")
    NOTIFY_MAX_MESSAGE_LENGTH: int = Field(4096, alias="NOTIFY_MAX_MESSAGE_LENGTH")
    DEFAULT_COUNTRY_CODE: str = Field("233", alias="DEFAULT_COUNTRY_CODE")                 # 加纳


    @property
    def graph_api_root(self) -> str:
        return f"{self.WHATSAPP_GRAPH_BASE_URL.rstrip('/')}/{self.WHATSAPP_API_VERSION}"


settings = Settings()  # 只从环境读取（含 .env）
