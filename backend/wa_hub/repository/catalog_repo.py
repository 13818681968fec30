"""
商品/规格的读写：
  - 选择：full / incremental / specific（id 列表按 30 个一片分批查询，合并去重）；
  - 状态回写：每个批次一条 UPDATE，编排层在同一事务内提交；
  - SKU 回写：compare-and-set，只在原值为空时写入。
"""

from __future__ import annotations
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Type, Union

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from wa_hub.core.config import settings
from wa_hub.db.model.catalog import (
    Product, ProductOption, SYNC_PENDING, SYNC_SYNCED, SYNC_ERROR,
)
from wa_hub.utils.batching import chunked, unique_keep_order
from wa_hub.utils.clock import now_utc


CatalogItem = Union[Product, ProductOption]
CatalogModel = Type[CatalogItem]

ITEM_KINDS: Dict[str, CatalogModel] = {
    "product": Product,
    "product_option": ProductOption,
}

SYNC_MODES = ("full", "incremental", "specific")


def model_for(item_kind: str) -> CatalogModel:
    try:
        return ITEM_KINDS[item_kind]
    except KeyError:
        raise ValueError(f"unknown item kind: {item_kind}") from None


def sku_column(model: CatalogModel) -> str:
    """商品的外部 id 列叫 retailer_id，规格叫 sku。"""
    return "sku" if model is ProductOption else "retailer_id"


def stored_sku(item: CatalogItem) -> Optional[str]:
    return getattr(item, sku_column(type(item)))


# ---------- Select ----------
def load_items_by_ids(
    db: Session,
    model: CatalogModel,
    business_id: str,
    ids: Sequence[str],
    *,
    chunk_size: Optional[int] = None,
) -> List[CatalogItem]:
    """
    按 id 列表取数：每片 ≤ CATALOG_ID_QUERY_LIMIT 个 id 一次查询。
    结果按 id 合并去重，保持调用方给的顺序；不存在/不属于该租户的 id 直接忽略。
    """
    size = chunk_size or settings.CATALOG_ID_QUERY_LIMIT
    wanted = unique_keep_order(ids)

    found: Dict[str, CatalogItem] = {}
    for part in chunked(wanted, size):
        stmt = select(model).where(model.business_id == business_id, model.id.in_(part))
        for row in db.execute(stmt).scalars():
            found.setdefault(row.id, row)

    return [found[i] for i in wanted if i in found]


def select_items_for_sync(
    db: Session,
    model: CatalogModel,
    business_id: str,
    sync_mode: str,
    item_ids: Optional[Sequence[str]] = None,
) -> List[CatalogItem]:
    if sync_mode == "specific":
        return load_items_by_ids(db, model, business_id, item_ids or [])

    stmt = select(model).where(model.business_id == business_id)
    if sync_mode == "incremental":
        stmt = stmt.where(model.sync_status.in_((SYNC_PENDING, SYNC_ERROR)))
    elif sync_mode != "full":
        raise ValueError(f"unknown sync mode: {sync_mode}")
    stmt = stmt.order_by(model.created_at, model.id)
    return list(db.execute(stmt).scalars().all())


def get_item(db: Session, model: CatalogModel, item_id: str) -> Optional[CatalogItem]:
    if not item_id:
        return None
    return db.get(model, item_id)


def load_parent_products(db: Session, product_ids: Iterable[str]) -> Dict[str, Product]:
    """规格格式化时需要父商品（名称/描述/类目/品牌），同样分片查询。"""
    ids = unique_keep_order(product_ids)
    out: Dict[str, Product] = {}
    for part in chunked(ids, settings.CATALOG_ID_QUERY_LIMIT):
        for row in db.execute(select(Product).where(Product.id.in_(part))).scalars():
            out[row.id] = row
    return out


# ---------- Status writes（不在这里 commit） ----------
def mark_batch_synced(db: Session, model: CatalogModel, ids: Sequence[str], synced_at: Optional[datetime] = None) -> int:
    if not ids:
        return 0
    stmt = (
        update(model)
        .where(model.id.in_(list(ids)))
        .values(sync_status=SYNC_SYNCED, sync_error=None, last_synced=synced_at or now_utc())
    )
    return db.execute(stmt).rowcount or 0


def mark_batch_error(db: Session, model: CatalogModel, ids: Sequence[str], message: str) -> int:
    if not ids:
        return 0
    stmt = (
        update(model)
        .where(model.id.in_(list(ids)))
        .values(sync_status=SYNC_ERROR, sync_error=(message or "")[:2000])
    )
    return db.execute(stmt).rowcount or 0


def reset_sync_status(db: Session, model: CatalogModel, ids: Sequence[str]) -> int:
    """从远端目录删除后回到 pending，last_synced 清空。"""
    if not ids:
        return 0
    stmt = (
        update(model)
        .where(model.id.in_(list(ids)))
        .values(sync_status=SYNC_PENDING, sync_error=None, last_synced=None)
    )
    return db.execute(stmt).rowcount or 0


def persist_synthesized_skus(db: Session, model: CatalogModel, mapping: Dict[str, str]) -> int:
    """
    compare-and-set：只有当前值为空时才写入合成的外部 id。
    重复调用不会改变已存的值；并发同步时后写者自动落空。
    """
    col_name = sku_column(model)
    col = getattr(model, col_name)
    written = 0
    for item_id, retailer_id in mapping.items():
        if not retailer_id:
            continue
        stmt = (
            update(model)
            .where(model.id == item_id, or_(col.is_(None), col == ""))
            .values({col_name: retailer_id})
        )
        written += db.execute(stmt).rowcount or 0
    return written


def set_media_reference(db: Session, model: CatalogModel, item_id: str, media_id: str) -> int:
    stmt = update(model).where(model.id == item_id).values(whatsapp_image_id=media_id)
    return db.execute(stmt).rowcount or 0
