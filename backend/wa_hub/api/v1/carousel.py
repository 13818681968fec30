# 媒体卡片轮播模板接口

from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from wa_hub.api.v1.callable import run_callable
from wa_hub.db.session import get_db
from wa_hub.orchestration.carousel.media_card_carousel import (
    create_media_card_carousel, delete_carousel_template, list_carousel_templates,
)
from wa_hub.services.access_service import get_current_caller

router = APIRouter(prefix="/carousel", tags=["carousel"])


class CarouselImageIn(BaseModel):
    url: str
    filename: Optional[str] = None
    name: Optional[str] = None
    price: Optional[str] = None


class CreateCarouselIn(BaseModel):
    business_id: str
    category_name: str
    images: List[CarouselImageIn] = Field(min_length=1)
    language: str = "en_US"


@router.post("/templates")
def create(body: CreateCarouselIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    images = [i.model_dump() for i in body.images]
    return run_callable(
        create_media_card_carousel, db, caller_id, body.business_id, body.category_name, images,
        language=body.language,
    )


@router.delete("/templates/{template_name}")
def delete(
    template_name: str,
    business_id: str = Query(...),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(delete_carousel_template, db, caller_id, business_id, template_name)


@router.get("/templates")
def list_templates(
    business_id: str = Query(...),
    template_id: Optional[str] = Query(None),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(list_carousel_templates, db, caller_id, business_id, template_id)
