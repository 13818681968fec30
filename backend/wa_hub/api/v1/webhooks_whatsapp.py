# wa_hub/api/v1/webhooks_whatsapp.py

from __future__ import annotations
import hashlib
import hmac
import json
import logging

from fastapi import APIRouter, Header, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from wa_hub.core.config import settings
from wa_hub.db.session import SessionLocal
from wa_hub.orchestration.webhook_ingest import process_webhook_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/whatsapp", tags=["webhooks.whatsapp"])


# =============== 签名校验：X-Hub-Signature-256: sha256=<hex> ===============
def _compute_signature(secret: str, raw_body: bytes) -> str:
    return "sha256=" + hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def _verify_signature_or_401(provided: str, raw_body: bytes) -> None:
    # 未配置 app secret 时跳过（本地联调）
    if settings.WHATSAPP_APP_SECRET is None:
        return
    if not provided:
        raise HTTPException(status_code=401, detail="Missing signature")
    expected = _compute_signature(settings.WHATSAPP_APP_SECRET.get_secret_value(), raw_body)
    if not hmac.compare_digest(provided.strip(), expected):
        raise HTTPException(status_code=401, detail="Invalid signature")


'''
订阅验证（Meta 后台配置回调 URL 时调用一次）
   GET ?hub.mode=subscribe&hub.verify_token=...&hub.challenge=...
   token 匹配 → 原样回 challenge（纯文本）；否则 403
'''
@router.get("")
def verify_subscription(
    hub_mode: str = Query("", alias="hub.mode"),
    hub_verify_token: str = Query("", alias="hub.verify_token"),
    hub_challenge: str = Query("", alias="hub.challenge"),
):
    expected = settings.WHATSAPP_WEBHOOK_VERIFY_TOKEN
    if hub_mode == "subscribe" and expected and hmac.compare_digest(hub_verify_token, expected):
        logger.info("webhook.verify.ok")
        return PlainTextResponse(hub_challenge)
    logger.warning("webhook.verify.rejected mode=%s", hub_mode)
    raise HTTPException(status_code=403, detail="Verification failed")


'''
事件回调：statuses（回执）/ messages（用户消息）
   签名通过后永远 200：解析失败、处理失败都只记日志，避免 Meta 反复重试
'''
@router.post("")
async def receive_event(
    request: Request,
    x_hub_signature_256: str = Header(default=""),
):
    raw = await request.body()
    _verify_signature_or_401(x_hub_signature_256, raw)

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        logger.warning("webhook.invalid_json size=%s", len(raw))
        return {"ok": True, "ignored": "invalid json"}

    db = SessionLocal()
    try:
        counts = process_webhook_payload(db, payload)
    except Exception:
        db.rollback()
        logger.exception("webhook.process_failed")
        return {"ok": True, "note": "processing error"}
    finally:
        db.close()

    return {"ok": True, **counts}
