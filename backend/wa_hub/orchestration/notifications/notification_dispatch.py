"""
订单通知：
  - 单条：渲染模板 → 发文本消息 → 落 sent 记录 + 回写订单 + 埋点；失败落 failed 记录后继续抛出
  - 批量：每批并发（线程池，每个 worker 独立 session），批与批之间固定间隔
  - 回执：webhook 按 whatsapp_message_id 更新状态，永不抛错
"""

from __future__ import annotations
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session, sessionmaker

from wa_hub.core.config import settings
from wa_hub.core.errors import HubError, InternalError, InvalidArgumentError, NotFoundError, PermissionDeniedError
from wa_hub.db.model.messaging import NOTIFY_FAILED, NOTIFY_SENT, NOTIFY_STATUSES, NotificationRecord
from wa_hub.integrations.whatsapp import WhatsAppGraph
from wa_hub.repository import analytics_repo, notification_repo
from wa_hub.repository.business_repo import get_order
from wa_hub.services.access_service import check_access
from wa_hub.services.notification_templates import render_message
from wa_hub.services.whatsapp_config_service import build_graph
from wa_hub.utils.batching import chunked
from wa_hub.utils.clock import now_utc

logger = logging.getLogger(__name__)

FAILED_MESSAGE = "Failed to send"


def _notification_out(row: NotificationRecord) -> Dict[str, Any]:
    return {
        "id": row.id,
        "order_id": row.order_id,
        "customer_phone": row.customer_phone,
        "type": row.type,
        "message": row.message,
        "whatsapp_message_id": row.whatsapp_message_id,
        "status": row.status,
        "error_info": row.error_info,
        "sent_at": row.sent_at,
        "status_updated_at": row.status_updated_at,
        "created_at": row.created_at,
    }


def _record_failure(
    db: Session, business_id: str, order_id: str, notification_type: str,
    customer_phone: Optional[str], error: Exception,
) -> None:
    db.rollback()
    try:
        notification_repo.add_notification(
            db,
            business_id=business_id,
            order_id=order_id,
            customer_phone=customer_phone,
            type=notification_type,
            message=FAILED_MESSAGE,
            status=NOTIFY_FAILED,
            error_info={"message": getattr(error, "message", None) or str(error)},
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("notify.failure_record_failed business=%s order=%s", business_id, order_id)


'''
access 已检查过：加载订单 → 渲染 → 发送 → 落库。
任何一步失败都先落一条 failed 记录，再把原异常抛出去。
'''
def _dispatch(
    db: Session,
    graph: WhatsAppGraph,
    business_id: str,
    order_id: str,
    notification_type: str,
    custom_message: Optional[str] = None,
) -> Dict[str, Any]:
    customer_phone: Optional[str] = None
    try:
        order = get_order(db, order_id)
        if order is None:
            raise NotFoundError(f"order not found: {order_id}")
        if order.business_id != business_id:
            raise PermissionDeniedError("order belongs to another business")
        customer_phone = order.customer_phone
        if not customer_phone:
            raise InvalidArgumentError(f"order {order_id} has no customer phone")

        message = render_message(notification_type, order, custom_message)
        external_id = graph.messaging.send_text(customer_phone, message)

        sent_at = now_utc()
        record = notification_repo.add_notification(
            db,
            business_id=business_id,
            order_id=order_id,
            customer_phone=customer_phone,
            type=notification_type,
            message=message,
            whatsapp_message_id=external_id,
            status=NOTIFY_SENT,
            sent_at=sent_at,
        )
        order.last_notification_sent = sent_at
        order.last_notification_type = notification_type
        analytics_repo.log_event(db, business_id, "notification_sent", {
            "order_id": order_id,
            "notification_type": notification_type,
            "message_id": external_id,
        })
        db.commit()
    except Exception as e:
        logger.error("notify.send_failed business=%s order=%s type=%s err=%s", business_id, order_id, notification_type, e)
        _record_failure(db, business_id, order_id, notification_type, customer_phone, e)
        raise

    logger.info("notify.sent business=%s order=%s message_id=%s", business_id, order_id, external_id)
    return {"notification_id": record.id, "external_message_id": external_id}


# ---------- Public ----------
def send_order_notification(
    db: Session,
    caller_id: str,
    business_id: str,
    order_id: str,
    notification_type: str,
    custom_message: Optional[str] = None,
    *,
    graph: Optional[WhatsAppGraph] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    if not order_id:
        raise InvalidArgumentError("order_id is required")
    if not notification_type:
        raise InvalidArgumentError("notification_type is required")

    try:
        graph = graph or build_graph(db, business_id)
    except Exception as e:
        _record_failure(db, business_id, order_id, notification_type, None, e)
        raise
    return _dispatch(db, graph, business_id, order_id, notification_type, custom_message)


def handle_delivery_status(
    db: Session,
    external_message_id: str,
    status: str,
    timestamp: Optional[datetime] = None,
    error_info: Optional[Dict[str, Any]] = None,
) -> bool:
    """Update a notification from a delivery receipt. Never raises; unknown ids are a no-op."""
    try:
        record = notification_repo.find_by_message_id(db, external_message_id)
        if record is None:
            logger.debug("notify.status_unmatched message_id=%s status=%s", external_message_id, status)
            return False
        if status not in NOTIFY_STATUSES:
            logger.warning("notify.status_unknown message_id=%s status=%s", external_message_id, status)
            return False
        record.status = status
        record.status_updated_at = timestamp or now_utc()
        if error_info:
            record.error_info = error_info
        db.commit()
        return True
    except Exception:
        db.rollback()
        logger.exception("notify.status_update_failed message_id=%s", external_message_id)
        return False


def _send_in_worker(
    session_factory: sessionmaker,
    graph: WhatsAppGraph,
    business_id: str,
    order_id: str,
    notification_type: str,
    custom_message: Optional[str],
) -> Dict[str, Any]:
    # session 不能跨线程：每个 worker 自己开
    db = session_factory()
    try:
        out = _dispatch(db, graph, business_id, order_id, notification_type, custom_message)
        return {"order_id": order_id, "success": True, **out}
    except HubError as e:
        return {"order_id": order_id, "success": False, "error": e.message, "code": e.code}
    except Exception as e:
        return {"order_id": order_id, "success": False, "error": str(e) or type(e).__name__, "code": InternalError.code}
    finally:
        db.close()


def send_bulk_notifications(
    session_factory: sessionmaker,
    caller_id: str,
    business_id: str,
    order_ids: Sequence[str],
    notification_type: str,
    custom_message: Optional[str] = None,
    *,
    graph: Optional[WhatsAppGraph] = None,
    batch_size: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Notify many orders. Access is checked once; each batch runs concurrently and
    one order's failure never aborts the rest.
    """
    if not order_ids:
        raise InvalidArgumentError("order_ids are required")
    size = batch_size or settings.NOTIFY_BATCH_SIZE
    delay = settings.NOTIFY_BATCH_DELAY_SEC if delay_seconds is None else delay_seconds

    with session_factory() as db:
        check_access(db, caller_id, business_id)
        graph = graph or build_graph(db, business_id)

    results: List[Dict[str, Any]] = []
    batches = list(chunked(list(order_ids), size))
    with ThreadPoolExecutor(max_workers=size, thread_name_prefix="notify") as pool:
        for idx, batch in enumerate(batches):
            futures = [
                pool.submit(_send_in_worker, session_factory, graph, business_id, oid, notification_type, custom_message)
                for oid in batch
            ]
            results.extend(f.result() for f in futures)
            if idx < len(batches) - 1 and delay > 0:
                sleep(delay)

    ok = sum(1 for r in results if r["success"])
    logger.info("notify.bulk_done business=%s total=%s ok=%s", business_id, len(results), ok)
    return {"results": results, "successful": ok, "failed": len(results) - ok}


def get_notification_history(
    db: Session, caller_id: str, business_id: str, order_id: Optional[str] = None, limit: int = 50
) -> List[Dict[str, Any]]:
    check_access(db, caller_id, business_id)
    if limit <= 0:
        raise InvalidArgumentError("limit must be > 0")
    return [_notification_out(r) for r in notification_repo.history(db, business_id, order_id=order_id, limit=limit)]


def get_delivery_stats(db: Session, caller_id: str, business_id: str) -> Dict[str, int]:
    check_access(db, caller_id, business_id)
    return notification_repo.delivery_stats(db, business_id)
