"""
媒体流水线：
  ensure_media      下载 → 按用途压缩 → 上传 WhatsApp → 落 MediaMetadata → 回写商品/规格的 media id
  upload_media      单张上传（失败直接抛给调用方）
  batch_upload      多张上传（每 5 张一组，逐张记录结果）
  refresh           即将过期的媒体重新上传；新记录落库后才把旧记录置为 expired
  cleanup           删除宽限期之外的 expired 记录（一条 DELETE）
"""

from __future__ import annotations
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from celery import shared_task
from sqlalchemy.orm import Session, sessionmaker

from wa_hub.core.config import settings
from wa_hub.core.errors import HubError, InvalidArgumentError, MediaUploadError
from wa_hub.db.model.media import MEDIA_PURPOSES, MEDIA_UPLOADED, MediaMetadata
from wa_hub.db.session import SessionLocal
from wa_hub.integrations.whatsapp import WhatsAppGraph
from wa_hub.repository import media_repo
from wa_hub.repository.business_repo import list_active_business_ids
from wa_hub.repository.catalog_repo import ITEM_KINDS, set_media_reference
from wa_hub.services.access_service import check_access
from wa_hub.services.media_service import Downloader, prepare_image, validate_image_url
from wa_hub.services.whatsapp_config_service import build_graph
from wa_hub.utils.batching import chunked
from wa_hub.utils.clock import days_from_now, now_utc

logger = logging.getLogger(__name__)


def _media_out(row: MediaMetadata) -> Dict[str, Any]:
    return {
        "id": row.id,
        "media_id": row.whatsapp_media_id,
        "original_url": row.original_url,
        "purpose": row.purpose,
        "reference_id": row.reference_id,
        "reference_type": row.reference_type,
        "file_size": row.file_size,
        "status": row.status,
        "uploaded_at": row.uploaded_at,
        "expires_at": row.expires_at,
    }


# ========================== 核心：单张媒体 ==========================
def ensure_media(
    db: Session,
    graph: WhatsAppGraph,
    business_id: str,
    reference_id: Optional[str],
    source_url: str,
    purpose: str,
    *,
    reference_type: Optional[str] = None,
    downloader: Optional[Downloader] = None,
) -> str:
    """
    返回新的 WhatsApp media id；任何一步失败都抛 MediaUploadError。
    成功时本函数自己 commit（元数据 + 回写 media id 在同一事务）。
    """
    ref_type = reference_type or (purpose if purpose in ITEM_KINDS else None)
    try:
        content, original_size = prepare_image(source_url, purpose, downloader=downloader)
        media_id = graph.media.upload(content, filename=f"{purpose}_{reference_id or 'asset'}.jpg")

        uploaded_at = now_utc()
        media_repo.create_media(
            db,
            business_id=business_id,
            whatsapp_media_id=media_id,
            original_url=source_url,
            purpose=purpose,
            reference_id=reference_id,
            reference_type=ref_type,
            file_size=len(content),
            mime_type="image/jpeg",
            status=MEDIA_UPLOADED,
            uploaded_at=uploaded_at,
            expires_at=uploaded_at + timedelta(days=settings.MEDIA_EXPIRES_DAYS),
        )
        if reference_id and ref_type in ITEM_KINDS:
            set_media_reference(db, ITEM_KINDS[ref_type], reference_id, media_id)
        db.commit()
    except MediaUploadError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        message = getattr(e, "message", None) or str(e) or type(e).__name__
        raise MediaUploadError(f"media upload failed: {message}") from e

    logger.info(
        "media.ensure.ok business=%s ref=%s/%s purpose=%s media_id=%s original_size=%s",
        business_id, ref_type, reference_id, purpose, media_id, original_size,
    )
    return media_id


# ========================== 对外操作 ==========================
def upload_media(
    db: Session,
    caller_id: str,
    business_id: str,
    image_url: str,
    purpose: str,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    *,
    graph: Optional[WhatsAppGraph] = None,
    downloader: Optional[Downloader] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    if purpose not in MEDIA_PURPOSES:
        raise InvalidArgumentError(f"unknown media purpose: {purpose}")
    validate_image_url(image_url)

    graph = graph or build_graph(db, business_id)
    media_id = ensure_media(
        db, graph, business_id, reference_id, image_url, purpose,
        reference_type=reference_type, downloader=downloader,
    )
    return {"media_id": media_id, "purpose": purpose, "reference_id": reference_id}


def batch_upload_media(
    db: Session,
    caller_id: str,
    business_id: str,
    items: List[Dict[str, Any]],
    *,
    graph: Optional[WhatsAppGraph] = None,
    downloader: Optional[Downloader] = None,
) -> Dict[str, Any]:
    """items: [{image_url, purpose, reference_id?, reference_type?}]；单张失败不影响其余。"""
    check_access(db, caller_id, business_id)
    if not items:
        raise InvalidArgumentError("items are required")
    graph = graph or build_graph(db, business_id)

    results: List[Dict[str, Any]] = []
    for group in chunked(items, settings.MEDIA_BATCH_SIZE):
        for entry in group:
            url = entry.get("image_url") or ""
            ref_id = entry.get("reference_id")
            try:
                purpose = entry.get("purpose") or "product"
                if purpose not in MEDIA_PURPOSES:
                    raise InvalidArgumentError(f"unknown media purpose: {purpose}")
                media_id = ensure_media(
                    db, graph, business_id, ref_id, url, purpose,
                    reference_type=entry.get("reference_type"), downloader=downloader,
                )
                results.append({"image_url": url, "reference_id": ref_id, "success": True, "media_id": media_id})
            except HubError as e:
                logger.warning("media.batch.item_failed business=%s url=%s err=%s", business_id, url, e.message)
                results.append({"image_url": url, "reference_id": ref_id, "success": False, "error": e.message})

    ok = sum(1 for r in results if r["success"])
    return {"results": results, "successful": ok, "failed": len(results) - ok}


def list_expiring(db: Session, business_id: str, buffer_days: int) -> List[MediaMetadata]:
    return media_repo.list_expiring(db, business_id, days_from_now(buffer_days))


def _refresh_business_media(
    db: Session,
    graph: WhatsAppGraph,
    business_id: str,
    buffer_days: int,
    *,
    downloader: Optional[Downloader] = None,
) -> Dict[str, Any]:
    refreshed, errors = 0, []
    for old in list_expiring(db, business_id, buffer_days):
        old_id = old.id
        try:
            new_media_id = ensure_media(
                db, graph, business_id, old.reference_id, old.original_url, old.purpose,
                reference_type=old.reference_type, downloader=downloader,
            )
        except MediaUploadError as e:
            # 替换失败：旧记录保持 uploaded，继续可用
            logger.warning("media.refresh.failed business=%s media=%s err=%s", business_id, old_id, e.message)
            errors.append({"media_id": old_id, "error": e.message})
            continue

        # 新记录已提交，才允许旧记录过期
        media_repo.mark_expired(db, old_id)
        db.commit()
        refreshed += 1
        logger.info("media.refresh.ok business=%s old=%s new_media_id=%s", business_id, old_id, new_media_id)

    return {"refreshed": refreshed, "failed": len(errors), "errors": errors}


def refresh_expired_media(
    db: Session,
    caller_id: str,
    business_id: str,
    buffer_days: Optional[int] = None,
    *,
    graph: Optional[WhatsAppGraph] = None,
    downloader: Optional[Downloader] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    days = settings.MEDIA_REFRESH_BUFFER_DAYS if buffer_days is None else buffer_days
    if days < 0:
        raise InvalidArgumentError("buffer_days must be >= 0")
    graph = graph or build_graph(db, business_id)
    return _refresh_business_media(db, graph, business_id, days, downloader=downloader)


def _cleanup_business_media(db: Session, business_id: str, older_than_days: int) -> int:
    cutoff = now_utc() - timedelta(days=older_than_days)
    deleted = media_repo.delete_expired_before(db, business_id, cutoff)
    db.commit()
    logger.info("media.cleanup business=%s cutoff=%s deleted=%s", business_id, cutoff.isoformat(), deleted)
    return deleted


def cleanup_unused_media(
    db: Session,
    caller_id: str,
    business_id: str,
    older_than_days: Optional[int] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    days = settings.MEDIA_CLEANUP_DAYS if older_than_days is None else older_than_days
    if days < 0:
        raise InvalidArgumentError("older_than_days must be >= 0")
    return {"deleted": _cleanup_business_media(db, business_id, days)}


def get_media_stats(db: Session, caller_id: str, business_id: str) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    return media_repo.media_stats(db, business_id)


def get_media_by_reference(
    db: Session, caller_id: str, business_id: str, reference_id: str, reference_type: Optional[str] = None
) -> List[Dict[str, Any]]:
    check_access(db, caller_id, business_id)
    if not reference_id:
        raise InvalidArgumentError("reference_id is required")
    return [_media_out(r) for r in media_repo.get_by_reference(db, business_id, reference_id, reference_type)]


# ========================== 定时任务（系统上下文，无 caller） ==========================
def refresh_all_businesses_inline(session_factory: sessionmaker = SessionLocal) -> Dict[str, Any]:
    summary: Dict[str, Any] = {}
    with session_factory() as db:
        business_ids = list_active_business_ids(db)

    for business_id in business_ids:
        db = session_factory()
        try:
            graph = build_graph(db, business_id)
            summary[business_id] = _refresh_business_media(db, graph, business_id, settings.MEDIA_REFRESH_BUFFER_DAYS)
        except Exception as e:
            db.rollback()
            logger.exception("media.refresh_all.business_failed business=%s err=%s", business_id, e)
            summary[business_id] = {"error": str(e)}
        finally:
            db.close()
    return summary


def cleanup_all_businesses_inline(session_factory: sessionmaker = SessionLocal) -> Dict[str, int]:
    out: Dict[str, int] = {}
    with session_factory() as db:
        for business_id in list_active_business_ids(db):
            try:
                out[business_id] = _cleanup_business_media(db, business_id, settings.MEDIA_CLEANUP_DAYS)
            except Exception as e:
                db.rollback()
                logger.exception("media.cleanup_all.business_failed business=%s err=%s", business_id, e)
    return out


@shared_task(name="wa_hub.orchestration.media.refresh_all")
def refresh_all_businesses() -> Dict[str, Any]:
    return refresh_all_businesses_inline()


@shared_task(name="wa_hub.orchestration.media.cleanup_all")
def cleanup_all_businesses() -> Dict[str, int]:
    return cleanup_all_businesses_inline()
