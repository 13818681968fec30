from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from celery import shared_task
from sqlalchemy.orm import Session

from wa_hub.core.config import settings
from wa_hub.core.errors import HubError, InternalError, InvalidArgumentError, MediaUploadError, NotFoundError
from wa_hub.db.model.catalog import ProductOption
from wa_hub.db.session import SessionLocal
from wa_hub.integrations.whatsapp import ItemsBatchPayload, WhatsAppGraph
from wa_hub.orchestration.catalog_sync.utils import (
    build_partial_item, derive_retailer_id, format_catalog_item, invalid_fields,
)
from wa_hub.orchestration.media.media_pipeline import ensure_media
from wa_hub.repository import analytics_repo
from wa_hub.repository.catalog_repo import (
    ITEM_KINDS, SYNC_MODES, CatalogItem, CatalogModel,
    get_item, load_items_by_ids, load_parent_products, mark_batch_error, mark_batch_synced,
    model_for, persist_synthesized_skus, reset_sync_status, select_items_for_sync, stored_sku,
)
from wa_hub.services.access_service import check_access
from wa_hub.services.media_service import Downloader
from wa_hub.services.whatsapp_config_service import build_graph
from wa_hub.utils.batching import chunked


logger = logging.getLogger(__name__)

EVENT_CATALOG_SYNC = "catalog_sync"
EVENT_INVENTORY_SYNC = "inventory_sync"


"""
  调试开关：True 时 Celery 入口直接在当前进程执行。
"""
def _inline_tasks_enabled() -> bool:
    return bool(getattr(settings, "SYNC_TASKS_INLINE", True))


@dataclass
class SyncResult:
    sync_mode: str
    item_kind: str
    synced: int = 0
    failed: int = 0
    batches: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sync_mode": self.sync_mode,
            "item_kind": self.item_kind,
            "synced_products": self.synced,
            "failed_products": self.failed,
            "batches": self.batches,
            "errors": list(self.errors),
        }


def _error_message(e: Exception) -> str:
    return getattr(e, "message", None) or str(e) or type(e).__name__


def _validate_item_kind(item_kind: str) -> CatalogModel:
    try:
        return model_for(item_kind)
    except ValueError as e:
        raise InvalidArgumentError(str(e)) from None


def _parents_for(db: Session, items: Sequence[CatalogItem]) -> Dict[str, Any]:
    parent_ids = [i.product_id for i in items if isinstance(i, ProductOption)]
    return load_parent_products(db, parent_ids) if parent_ids else {}


def _retailer_id(item: CatalogItem, parent) -> str:
    # 商品自身没有父级：只用商品名合成；item.id 保证租户内唯一
    parent_name = parent.name if isinstance(item, ProductOption) and parent else None
    return derive_retailer_id(parent_name, item.name, stored_sku(item), item.id)


# ========================== 单批次 ==========================
'''
一个批次：
  1) 有图片 URL 但没有 media id 的，先走媒体流水线（失败只记日志，item 不带图片）
  2) 推导 retailer id + 组装完整 UPDATE 载荷
  3) 一次 items_batch 调用
  4) 成功：整批 synced + 合成的 SKU compare-and-set 回写；失败：整批 error + 每个 item 一条错误
  两种结果都在一个事务里提交。
'''
def _process_batch(
    db: Session,
    graph: WhatsAppGraph,
    business_id: str,
    item_kind: str,
    model: CatalogModel,
    batch: List[CatalogItem],
    parents: Dict[str, Any],
    result: SyncResult,
    *,
    batch_no: int,
    downloader: Optional[Downloader] = None,
) -> None:
    for item in batch:
        if item.image_url and not item.whatsapp_image_id:
            try:
                item.whatsapp_image_id = ensure_media(
                    db, graph, business_id, item.id, item.image_url, item_kind, downloader=downloader,
                )
            except MediaUploadError as e:
                logger.warning(
                    "catalog_sync.media_skipped business=%s item=%s err=%s", business_id, item.id, e.message,
                )

    ids = [item.id for item in batch]
    synthesized: Dict[str, str] = {}
    try:
        payload_items = []
        for item in batch:
            parent = parents.get(item.product_id) if isinstance(item, ProductOption) else None
            retailer_id = _retailer_id(item, parent)
            if not stored_sku(item):
                synthesized[item.id] = retailer_id
            payload_items.append(format_catalog_item(item, item_kind, parent, retailer_id))

        graph.catalog.items_batch(ItemsBatchPayload.updates(payload_items))
    except Exception as e:
        message = _error_message(e)
        logger.error(
            "catalog_sync.batch_failed business=%s batch=%s size=%s err=%s", business_id, batch_no, len(batch), message,
        )
        db.rollback()
        mark_batch_error(db, model, ids, message)
        db.commit()
        result.failed += len(batch)
        result.errors.extend({"item_id": i, "error": message} for i in ids)
        return

    mark_batch_synced(db, model, ids)
    persist_synthesized_skus(db, model, synthesized)
    db.commit()
    result.synced += len(batch)
    logger.info("catalog_sync.batch_ok business=%s batch=%s size=%s", business_id, batch_no, len(batch))


def _run_batches(
    db: Session,
    graph: WhatsAppGraph,
    business_id: str,
    item_kind: str,
    items: List[CatalogItem],
    result: SyncResult,
    *,
    downloader: Optional[Downloader] = None,
) -> SyncResult:
    model = ITEM_KINDS[item_kind]
    parents = _parents_for(db, items)
    for batch_no, batch in enumerate(chunked(items, settings.CATALOG_BATCH_SIZE), start=1):
        result.batches += 1
        _process_batch(
            db, graph, business_id, item_kind, model, batch, parents, result,
            batch_no=batch_no, downloader=downloader,
        )
    return result


def _log_analytics(db: Session, business_id: str, event_type: str, data: Dict[str, Any]) -> None:
    # 埋点失败不影响同步结果
    try:
        analytics_repo.log_event(db, business_id, event_type, data)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("catalog_sync.analytics_failed business=%s event=%s", business_id, event_type)


# ---------- Public ----------
def sync_catalog(
    db: Session,
    caller_id: str,
    business_id: str,
    sync_mode: str,
    item_ids: Optional[Sequence[str]] = None,
    *,
    item_kind: str = "product",
    graph: Optional[WhatsAppGraph] = None,
    downloader: Optional[Downloader] = None,
) -> SyncResult:
    """
    Sync a tenant's products (or product options) into its WhatsApp catalog.

    full        every item of the tenant
    incremental items whose sync_status is pending or error
    specific    only the given ids (required, non-empty)

    A failing batch is recorded against its own items and never stops the next one.
    """
    check_access(db, caller_id, business_id)
    if sync_mode not in SYNC_MODES:
        raise InvalidArgumentError(f"sync_mode must be one of {', '.join(SYNC_MODES)}")
    if sync_mode == "specific" and not item_ids:
        raise InvalidArgumentError("item_ids are required for specific sync")
    model = _validate_item_kind(item_kind)

    graph = graph or build_graph(db, business_id)
    items = select_items_for_sync(db, model, business_id, sync_mode, item_ids)
    logger.info(
        "catalog_sync.start business=%s mode=%s kind=%s items=%s", business_id, sync_mode, item_kind, len(items),
    )

    result = SyncResult(sync_mode=sync_mode, item_kind=item_kind)
    _run_batches(db, graph, business_id, item_kind, items, result, downloader=downloader)

    _log_analytics(db, business_id, EVENT_CATALOG_SYNC, {
        "sync_type": sync_mode,
        "item_kind": item_kind,
        "products_synced": result.synced,
        "errors_count": len(result.errors),
    })
    logger.info(
        "catalog_sync.done business=%s synced=%s failed=%s batches=%s",
        business_id, result.synced, result.failed, result.batches,
    )
    return result


def update_item(
    db: Session,
    caller_id: str,
    business_id: str,
    item_id: str,
    fields: Sequence[str],
    *,
    item_kind: str = "product",
    graph: Optional[WhatsAppGraph] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    model = _validate_item_kind(item_kind)
    if not fields:
        raise InvalidArgumentError("fields are required")
    unknown = invalid_fields(fields)
    if unknown:
        raise InvalidArgumentError(f"unsupported fields: {', '.join(unknown)}")

    item = get_item(db, model, item_id)
    if item is None or item.business_id != business_id:
        raise NotFoundError(f"{item_kind} not found: {item_id}")

    graph = graph or build_graph(db, business_id)
    parent = _parents_for(db, [item]).get(item.product_id) if isinstance(item, ProductOption) else None
    retailer_id = _retailer_id(item, parent)

    try:
        data = build_partial_item(item, parent, retailer_id, list(fields))
        graph.catalog.items_batch(ItemsBatchPayload.updates([data]))
    except Exception as e:
        message = _error_message(e)
        logger.error("catalog_sync.update_failed business=%s item=%s err=%s", business_id, item_id, message)
        db.rollback()
        try:
            mark_batch_error(db, model, [item_id], message)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("catalog_sync.update_status_write_failed item=%s", item_id)
        raise InternalError(f"catalog update failed: {message}") from e

    mark_batch_synced(db, model, [item_id])
    if not stored_sku(item):
        persist_synthesized_skus(db, model, {item_id: retailer_id})
    db.commit()
    return {"item_id": item_id, "retailer_id": retailer_id, "fields": list(fields)}


def sync_inventory(
    db: Session,
    caller_id: str,
    business_id: str,
    item_ids: Optional[Sequence[str]] = None,
    *,
    item_kind: str = "product",
    update_prices: bool = False,
    graph: Optional[WhatsAppGraph] = None,
) -> SyncResult:
    """Availability (and optionally price) only; batch reconciliation same as sync_catalog."""
    check_access(db, caller_id, business_id)
    model = _validate_item_kind(item_kind)
    graph = graph or build_graph(db, business_id)

    mode = "specific" if item_ids else "full"
    items = select_items_for_sync(db, model, business_id, mode, item_ids)
    parents = _parents_for(db, items)
    fields = ["availability", "price"] if update_prices else ["availability"]

    result = SyncResult(sync_mode="inventory", item_kind=item_kind)
    for batch_no, batch in enumerate(chunked(items, settings.CATALOG_BATCH_SIZE), start=1):
        result.batches += 1
        ids = [i.id for i in batch]
        try:
            data = []
            for item in batch:
                parent = parents.get(item.product_id) if isinstance(item, ProductOption) else None
                data.append(build_partial_item(item, parent, _retailer_id(item, parent), fields))
            graph.catalog.items_batch(ItemsBatchPayload.updates(data))
        except Exception as e:
            message = _error_message(e)
            logger.error("inventory_sync.batch_failed business=%s batch=%s err=%s", business_id, batch_no, message)
            db.rollback()
            mark_batch_error(db, model, ids, message)
            db.commit()
            result.failed += len(batch)
            result.errors.extend({"item_id": i, "error": message} for i in ids)
            continue

        mark_batch_synced(db, model, ids)
        db.commit()
        result.synced += len(batch)

    _log_analytics(db, business_id, EVENT_INVENTORY_SYNC, {
        "item_kind": item_kind,
        "products_updated": result.synced,
        "update_prices": update_prices,
        "errors_count": len(result.errors),
    })
    return result


def delete_catalog_items(
    db: Session,
    caller_id: str,
    business_id: str,
    item_ids: Sequence[str],
    *,
    item_kind: str = "product",
    graph: Optional[WhatsAppGraph] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    if not item_ids:
        raise InvalidArgumentError("item_ids are required")
    model = _validate_item_kind(item_kind)
    graph = graph or build_graph(db, business_id)

    items = load_items_by_ids(db, model, business_id, item_ids)
    parents = _parents_for(db, items)

    deleted, errors = 0, []
    for batch in chunked(items, settings.CATALOG_BATCH_SIZE):
        ids = [i.id for i in batch]
        retailer_ids = []
        for item in batch:
            parent = parents.get(item.product_id) if isinstance(item, ProductOption) else None
            retailer_ids.append(_retailer_id(item, parent))
        try:
            graph.catalog.items_batch(ItemsBatchPayload.deletes(retailer_ids))
        except Exception as e:
            message = _error_message(e)
            logger.error("catalog_sync.delete_failed business=%s ids=%s err=%s", business_id, ids, message)
            errors.extend({"item_id": i, "error": message} for i in ids)
            continue
        reset_sync_status(db, model, ids)
        db.commit()
        deleted += len(batch)

    return {"deleted": deleted, "failed": len(errors), "errors": errors}


def list_catalog_items(
    db: Session,
    caller_id: str,
    business_id: str,
    limit: int = 100,
    *,
    graph: Optional[WhatsAppGraph] = None,
) -> List[Dict[str, Any]]:
    check_access(db, caller_id, business_id)
    if limit <= 0:
        raise InvalidArgumentError("limit must be > 0")
    graph = graph or build_graph(db, business_id)
    return graph.catalog.list_products(limit=limit)


def get_sync_history(db: Session, caller_id: str, business_id: str, limit: int = 20) -> List[Dict[str, Any]]:
    check_access(db, caller_id, business_id)
    rows = analytics_repo.list_events(db, business_id, (EVENT_CATALOG_SYNC, EVENT_INVENTORY_SYNC), limit=limit)
    return [
        {"id": r.id, "event_type": r.event_type, "data": r.data, "created_at": r.created_at}
        for r in rows
    ]


# ========================== Celery 入口 ==========================
def run_catalog_sync_inline(
    caller_id: str,
    business_id: str,
    sync_mode: str,
    item_ids: Optional[List[str]] = None,
    item_kind: str = "product",
) -> Dict[str, Any]:
    with SessionLocal() as db:
        try:
            return sync_catalog(db, caller_id, business_id, sync_mode, item_ids, item_kind=item_kind).to_dict()
        except HubError as e:
            logger.warning("catalog_sync.task_rejected business=%s code=%s err=%s", business_id, e.code, e.message)
            return {"error": e.message, "code": e.code}


@shared_task(name="wa_hub.orchestration.catalog_sync.run")
def run_catalog_sync(
    caller_id: str,
    business_id: str,
    sync_mode: str,
    item_ids: Optional[List[str]] = None,
    item_kind: str = "product",
) -> Dict[str, Any]:
    return run_catalog_sync_inline(caller_id, business_id, sync_mode, item_ids, item_kind)


def enqueue_catalog_sync(
    caller_id: str,
    business_id: str,
    sync_mode: str,
    item_ids: Optional[List[str]] = None,
    item_kind: str = "product",
) -> Dict[str, Any]:
    """SYNC_TASKS_INLINE=True 时直接跑完返回结果；否则投递到 Celery，返回 task_id。"""
    if _inline_tasks_enabled():
        return run_catalog_sync_inline(caller_id, business_id, sync_mode, item_ids, item_kind)
    async_result = run_catalog_sync.delay(caller_id, business_id, sync_mode, item_ids, item_kind)
    return {"task_id": async_result.id, "queued": True}
