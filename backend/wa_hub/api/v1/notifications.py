# 订单通知接口

from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, sessionmaker

from wa_hub.api.v1.callable import run_callable
from wa_hub.db.session import get_db, get_session_factory
from wa_hub.orchestration.notifications.notification_dispatch import (
    get_delivery_stats, get_notification_history, send_bulk_notifications, send_order_notification,
)
from wa_hub.services.access_service import get_current_caller

router = APIRouter(prefix="/notifications", tags=["notifications"])


class SendNotificationIn(BaseModel):
    business_id: str
    order_id: str
    notification_type: str
    custom_message: Optional[str] = None


class BulkNotificationIn(BaseModel):
    business_id: str
    order_ids: List[str] = Field(min_length=1)
    notification_type: str
    custom_message: Optional[str] = None


@router.post("/send")
def send(body: SendNotificationIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    return run_callable(
        send_order_notification, db, caller_id, body.business_id, body.order_id,
        body.notification_type, body.custom_message,
    )


@router.post("/bulk")
def bulk(
    body: BulkNotificationIn,
    caller_id: str = Depends(get_current_caller),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    return run_callable(
        send_bulk_notifications, session_factory, caller_id, body.business_id, body.order_ids,
        body.notification_type, body.custom_message,
    )


@router.get("/history")
def history(
    business_id: str = Query(...),
    order_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(get_notification_history, db, caller_id, business_id, order_id, limit)


@router.get("/stats")
def stats(
    business_id: str = Query(...),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(get_delivery_stats, db, caller_id, business_id)
