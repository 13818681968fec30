# 媒体相关接口

from __future__ import annotations
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from wa_hub.api.v1.callable import run_callable
from wa_hub.db.session import get_db
from wa_hub.orchestration.media.media_pipeline import (
    batch_upload_media, cleanup_unused_media, get_media_by_reference, get_media_stats,
    refresh_expired_media, upload_media,
)
from wa_hub.services.access_service import get_current_caller

router = APIRouter(prefix="/media", tags=["media"])

Purpose = Literal["product", "product_option", "category", "carousel", "thumbnail", "fallback"]


class UploadMediaIn(BaseModel):
    business_id: str
    image_url: str
    purpose: Purpose = "product"
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None


class BatchItemIn(BaseModel):
    image_url: str
    purpose: Purpose = "product"
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None


class BatchUploadIn(BaseModel):
    business_id: str
    items: List[BatchItemIn] = Field(min_length=1)


class RefreshIn(BaseModel):
    business_id: str
    buffer_days: Optional[int] = Field(None, ge=0)


class CleanupIn(BaseModel):
    business_id: str
    older_than_days: Optional[int] = Field(None, ge=0)


@router.post("/upload")
def upload(body: UploadMediaIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    return run_callable(
        upload_media, db, caller_id, body.business_id, body.image_url, body.purpose,
        body.reference_id, body.reference_type,
    )


@router.post("/batch-upload")
def batch_upload(body: BatchUploadIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    items = [i.model_dump() for i in body.items]
    return run_callable(batch_upload_media, db, caller_id, body.business_id, items)


@router.post("/refresh")
def refresh(body: RefreshIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    return run_callable(refresh_expired_media, db, caller_id, body.business_id, body.buffer_days)


@router.post("/cleanup")
def cleanup(body: CleanupIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    return run_callable(cleanup_unused_media, db, caller_id, body.business_id, body.older_than_days)


@router.get("/stats")
def stats(
    business_id: str = Query(...),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(get_media_stats, db, caller_id, business_id)


@router.get("/by-reference")
def by_reference(
    business_id: str = Query(...),
    reference_id: str = Query(...),
    reference_type: Optional[str] = Query(None),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(get_media_by_reference, db, caller_id, business_id, reference_id, reference_type)
