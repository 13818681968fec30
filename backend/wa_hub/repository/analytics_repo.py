from __future__ import annotations
from typing import Any, Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from wa_hub.db.model.messaging import AnalyticsEvent
from wa_hub.utils.serialization import to_jsonable


def log_event(db: Session, business_id: str, event_type: str, data: Dict[str, Any]) -> AnalyticsEvent:
    row = AnalyticsEvent(business_id=business_id, event_type=event_type, data=to_jsonable(data))
    db.add(row)
    db.flush()
    return row


def list_events(db: Session, business_id: str, event_types: Sequence[str], *, limit: int = 20) -> List[AnalyticsEvent]:
    stmt = (
        select(AnalyticsEvent)
        .where(AnalyticsEvent.business_id == business_id, AnalyticsEvent.event_type.in_(list(event_types)))
        .order_by(AnalyticsEvent.created_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())
