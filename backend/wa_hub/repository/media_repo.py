from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from wa_hub.db.model.media import (
    MediaMetadata, ResumableUploadSession, CarouselTemplate,
    MEDIA_UPLOADED, MEDIA_EXPIRED, MEDIA_FAILED,
)


def create_media(db: Session, **fields: Any) -> MediaMetadata:
    row = MediaMetadata(**fields)
    db.add(row)
    db.flush()
    return row



def list_expiring(db: Session, business_id: str, until: datetime) -> List[MediaMetadata]:
    stmt = (
        select(MediaMetadata)
        .where(
            MediaMetadata.business_id == business_id,
            MediaMetadata.status == MEDIA_UPLOADED,
            MediaMetadata.expires_at <= until,
        )
        .order_by(MediaMetadata.expires_at)
    )
    return list(db.execute(stmt).scalars().all())


def mark_expired(db: Session, media_row_id: str) -> int:
    stmt = (
        update(MediaMetadata)
        .where(MediaMetadata.id == media_row_id, MediaMetadata.status == MEDIA_UPLOADED)
        .values(status=MEDIA_EXPIRED)
    )
    return db.execute(stmt).rowcount or 0


def delete_expired_before(db: Session, business_id: str, cutoff: datetime) -> int:
    """一条 DELETE 批量删除：status=expired 且 created_at <= cutoff"""
    stmt = (
        delete(MediaMetadata)
        .where(
            MediaMetadata.business_id == business_id,
            MediaMetadata.status == MEDIA_EXPIRED,
            MediaMetadata.created_at <= cutoff,
        )
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount or 0


def get_by_reference(db: Session, business_id: str, reference_id: str, reference_type: Optional[str] = None) -> List[MediaMetadata]:
    stmt = select(MediaMetadata).where(
        MediaMetadata.business_id == business_id,
        MediaMetadata.reference_id == reference_id,
    )
    if reference_type:
        stmt = stmt.where(MediaMetadata.reference_type == reference_type)
    stmt = stmt.order_by(MediaMetadata.created_at.desc())
    return list(db.execute(stmt).scalars().all())


def media_stats(db: Session, business_id: str) -> Dict[str, Any]:
    stats: Dict[str, Any] = {
        "total": 0, MEDIA_UPLOADED: 0, MEDIA_EXPIRED: 0, MEDIA_FAILED: 0,
        "total_size": 0, "by_purpose": {},
    }
    by_status = db.execute(
        select(MediaMetadata.status, func.count(), func.coalesce(func.sum(MediaMetadata.file_size), 0))
        .where(MediaMetadata.business_id == business_id)
        .group_by(MediaMetadata.status)
    ).all()
    for status, count, size in by_status:
        stats["total"] += count
        stats["total_size"] += int(size or 0)
        if status in stats:
            stats[status] = count

    by_purpose = db.execute(
        select(MediaMetadata.purpose, func.count())
        .where(MediaMetadata.business_id == business_id)
        .group_by(MediaMetadata.purpose)
    ).all()
    stats["by_purpose"] = {purpose: count for purpose, count in by_purpose}
    return stats


# ---------- 模板相关 ----------
def add_upload_session(db: Session, **fields: Any) -> ResumableUploadSession:
    row = ResumableUploadSession(**fields)
    db.add(row)
    db.flush()
    return row


def add_carousel_template(db: Session, **fields: Any) -> CarouselTemplate:
    row = CarouselTemplate(**fields)
    db.add(row)
    db.flush()
    return row


def list_carousel_templates(db: Session, business_id: str) -> List[CarouselTemplate]:
    stmt = (
        select(CarouselTemplate)
        .where(CarouselTemplate.business_id == business_id)
        .order_by(CarouselTemplate.created_at.desc())
    )
    return list(db.execute(stmt).scalars().all())


def mark_template_deleted(db: Session, business_id: str, template_name: str) -> int:
    stmt = (
        update(CarouselTemplate)
        .where(CarouselTemplate.business_id == business_id, CarouselTemplate.template_name == template_name)
        .values(status="deleted")
    )
    return db.execute(stmt).rowcount or 0
