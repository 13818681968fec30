"""
WhatsApp webhook 载荷处理：
  entry[] → changes[] (field == "messages") → value
    statuses[] → 通知回执（handle_delivery_status）
    messages[] → IncomingMessage 入库（租户按 metadata.phone_number_id 反查）
单条处理失败只记日志，不影响其它条目；HTTP 层永远回 200。
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from wa_hub.orchestration.notifications.notification_dispatch import handle_delivery_status
from wa_hub.repository import notification_repo
from wa_hub.repository.business_repo import get_config_by_phone_number_id
from wa_hub.utils.clock import from_epoch_seconds

logger = logging.getLogger(__name__)

WEBHOOK_OBJECT = "whatsapp_business_account"


def _message_content(message: Dict[str, Any]) -> str:
    text = message.get("text") or {}
    if text.get("body"):
        return str(text["body"])
    image = message.get("image") or {}
    if image.get("caption"):
        return str(image["caption"])
    return ""


def _business_for(db: Session, value: Dict[str, Any], cache: Dict[str, Optional[str]]) -> Optional[str]:
    phone_number_id = (value.get("metadata") or {}).get("phone_number_id")
    if not phone_number_id:
        return None
    if phone_number_id not in cache:
        cfg = get_config_by_phone_number_id(db, str(phone_number_id))
        cache[phone_number_id] = cfg.business_id if cfg else None
    return cache[phone_number_id]


def _ingest_message(db: Session, business_id: Optional[str], message: Dict[str, Any]) -> None:
    notification_repo.add_incoming_message(
        db,
        business_id=business_id,
        whatsapp_message_id=str(message["id"]),
        from_number=str(message.get("from") or ""),
        message_type=str(message.get("type") or "unknown"),
        content=_message_content(message),
        timestamp=from_epoch_seconds(message.get("timestamp")),
        processed=False,
    )
    db.commit()


def _list_of(container: Dict[str, Any], key: str) -> List[Any]:
    items = container.get(key)
    return items if isinstance(items, list) else []


def _message_values(payload: Dict[str, Any], counts: Dict[str, int]) -> Iterator[Dict[str, Any]]:
    """逐个产出 field == "messages" 的 change.value；结构不对的 entry / change 计一次错误后跳过。"""
    for entry in _list_of(payload, "entry"):
        if not isinstance(entry, dict):
            counts["errors"] += 1
            logger.warning("webhook.entry_malformed entry=%r", entry)
            continue
        for change in _list_of(entry, "changes"):
            if not isinstance(change, dict) or not isinstance(change.get("value") or {}, dict):
                counts["errors"] += 1
                logger.warning("webhook.change_malformed change=%r", change)
                continue
            if change.get("field") != "messages":
                continue
            yield change.get("value") or {}


def process_webhook_payload(db: Session, payload: Dict[str, Any]) -> Dict[str, int]:
    counts = {"statuses": 0, "messages": 0, "errors": 0}
    if not isinstance(payload, dict) or payload.get("object") != WEBHOOK_OBJECT:
        logger.info("webhook.ignored object=%s", payload.get("object") if isinstance(payload, dict) else None)
        return counts

    tenants: Dict[str, Optional[str]] = {}
    for value in _message_values(payload, counts):
        for status in _list_of(value, "statuses"):
            try:
                errors = status.get("errors") or []
                handle_delivery_status(
                    db,
                    str(status["id"]),
                    str(status.get("status") or ""),
                    from_epoch_seconds(status.get("timestamp")),
                    errors[0] if errors else None,
                )
                counts["statuses"] += 1
            except Exception:
                counts["errors"] += 1
                logger.exception("webhook.status_failed status=%r", status)

        for message in _list_of(value, "messages"):
            try:
                _ingest_message(db, _business_for(db, value, tenants), message)
                counts["messages"] += 1
            except Exception:
                db.rollback()
                counts["errors"] += 1
                logger.exception("webhook.message_failed message=%r", message)

    logger.info(
        "webhook.processed statuses=%s messages=%s errors=%s",
        counts["statuses"], counts["messages"], counts["errors"],
    )
    return counts
