from fastapi import APIRouter, Depends
from wa_hub.services.access_service import get_current_caller


# 非受保护路由
from .routes_health import router as health_router
from .webhooks_whatsapp import router as webhooks_router     # Meta 服务器回调，靠签名校验


# 需要登录的受保护路由
from .catalog import router as catalog_router
from .media import router as media_router
from .notifications import router as notifications_router
from .carousel import router as carousel_router


api_v1 = APIRouter()
api_v1.include_router(health_router)      # /health 不需要登录
api_v1.include_router(webhooks_router)    # /webhooks/whatsapp

# --- 需要登录的接口 ---
protected = APIRouter(dependencies=[Depends(get_current_caller)])

protected.include_router(catalog_router)
protected.include_router(media_router)
protected.include_router(notifications_router)
protected.include_router(carousel_router)

# 把受保护路由注册进主路由
api_v1.include_router(protected)
