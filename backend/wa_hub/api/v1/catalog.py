# 目录同步相关接口 -> 前端商品页 / 后台任务调用

from __future__ import annotations
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from wa_hub.api.v1.callable import run_callable
from wa_hub.db.session import get_db
from wa_hub.orchestration.catalog_sync.catalog_sync_task import (
    delete_catalog_items, enqueue_catalog_sync, get_sync_history, list_catalog_items,
    sync_catalog, sync_inventory, update_item,
)
from wa_hub.services.access_service import check_access, get_current_caller

router = APIRouter(prefix="/catalog", tags=["catalog"])

ItemKind = Literal["product", "product_option"]


# ---------- 请求体 ----------
class SyncCatalogIn(BaseModel):
    business_id: str
    sync_type: Literal["full", "incremental", "specific"] = "full"
    product_ids: Optional[List[str]] = None
    item_kind: ItemKind = "product"
    background: bool = False          # True：投递 Celery（SYNC_TASKS_INLINE=False 时）


class UpdateItemIn(BaseModel):
    business_id: str
    item_id: str
    update_fields: List[str] = Field(min_length=1)
    item_kind: ItemKind = "product"


class SyncInventoryIn(BaseModel):
    business_id: str
    product_ids: Optional[List[str]] = None
    update_prices: bool = False
    item_kind: ItemKind = "product"


class DeleteItemsIn(BaseModel):
    business_id: str
    product_ids: List[str] = Field(min_length=1)
    item_kind: ItemKind = "product"


def _enqueue(db: Session, caller_id: str, body: SyncCatalogIn):
    check_access(db, caller_id, body.business_id)
    return enqueue_catalog_sync(caller_id, body.business_id, body.sync_type, body.product_ids, body.item_kind)


# ---------- 路由 ----------
@router.post("/sync")
def sync(body: SyncCatalogIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    if body.background:
        return run_callable(_enqueue, db, caller_id, body)
    return run_callable(
        sync_catalog, db, caller_id, body.business_id, body.sync_type, body.product_ids,
        item_kind=body.item_kind,
    )


@router.post("/items/update")
def update(body: UpdateItemIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    return run_callable(
        update_item, db, caller_id, body.business_id, body.item_id, body.update_fields,
        item_kind=body.item_kind,
    )


@router.post("/inventory")
def inventory(body: SyncInventoryIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    return run_callable(
        sync_inventory, db, caller_id, body.business_id, body.product_ids,
        item_kind=body.item_kind, update_prices=body.update_prices,
    )


@router.post("/items/delete")
def delete(body: DeleteItemsIn, caller_id: str = Depends(get_current_caller), db: Session = Depends(get_db)):
    return run_callable(
        delete_catalog_items, db, caller_id, body.business_id, body.product_ids, item_kind=body.item_kind,
    )


@router.get("/items")
def items(
    business_id: str = Query(...),
    limit: int = Query(100, ge=1, le=1000),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(list_catalog_items, db, caller_id, business_id, limit)


@router.get("/history")
def history(
    business_id: str = Query(...),
    limit: int = Query(20, ge=1, le=200),
    caller_id: str = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    return run_callable(get_sync_history, db, caller_id, business_id, limit)
