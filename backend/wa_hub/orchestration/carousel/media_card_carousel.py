"""
媒体卡片轮播模板：
  每张图片 → 按 carousel 规格压缩 → 可续传上传（session → file data → handle）
  → /{waba_id}/message_templates 建模板 → 落 CarouselTemplate + ResumableUploadSession
"""

from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from wa_hub.core.errors import FailedPreconditionError, InternalError, InvalidArgumentError
from wa_hub.db.model.media import CarouselTemplate
from wa_hub.integrations.whatsapp import CarouselCard, CarouselTemplatePayload, WhatsAppGraph
from wa_hub.repository import media_repo
from wa_hub.services.access_service import check_access
from wa_hub.services.media_service import Downloader, prepare_image, validate_image_url
from wa_hub.services.whatsapp_config_service import build_graph
from wa_hub.utils.clock import now_utc

logger = logging.getLogger(__name__)

MIN_CARDS = 2
MAX_CARDS = 10
_NAME_UNSAFE = re.compile(r"[ :/-]")


def build_template_name(category_name: str, when=None) -> str:
    """"Spice Mixes" @ 2025-03-01 14:05:09 → "spice_mixes_01_03_2025_14_05_09" """
    when = when or now_utc()
    raw = f"{category_name}-{when:%d/%m/%Y}-{when:%H:%M:%S}"
    return _NAME_UNSAFE.sub("_", raw).lower()


def _template_out(row: CarouselTemplate) -> Dict[str, Any]:
    return {
        "id": row.id,
        "template_name": row.template_name,
        "category_name": row.category_name,
        "template_id": row.whatsapp_template_id,
        "status": row.status,
        "image_handles": list(row.image_handles or []),
        "created_at": row.created_at,
    }


def _upload_card_image(
    db: Session, graph: WhatsAppGraph, business_id: str, index: int, image: Dict[str, Any],
    downloader: Optional[Downloader],
) -> str:
    url = validate_image_url(image.get("url") or "")
    file_name = image.get("filename") or f"carousel_{index + 1}.jpg"
    content, _ = prepare_image(url, "carousel", downloader=downloader)

    session_id = graph.media.create_upload_session(file_name, len(content), "image/jpeg")
    handle = graph.media.upload_file_data(session_id, content, "image/jpeg")
    media_repo.add_upload_session(
        db,
        business_id=business_id,
        session_id=session_id,
        file_handle=handle,
        file_name=file_name,
        file_length=len(content),
        file_type="image/jpeg",
        status="completed",
    )
    logger.info("carousel.image_uploaded business=%s index=%s session=%s", business_id, index + 1, session_id)
    return handle


# ---------- Public ----------
def create_media_card_carousel(
    db: Session,
    caller_id: str,
    business_id: str,
    category_name: str,
    images: List[Dict[str, Any]],
    *,
    language: str = "en_US",
    graph: Optional[WhatsAppGraph] = None,
    downloader: Optional[Downloader] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    if not category_name or not category_name.strip():
        raise InvalidArgumentError("category_name is required")
    if not images or not (MIN_CARDS <= len(images) <= MAX_CARDS):
        raise InvalidArgumentError(f"a carousel needs {MIN_CARDS} to {MAX_CARDS} images")
    for image in images:
        if not (image or {}).get("url"):
            raise InvalidArgumentError("every image needs a url")

    graph = graph or build_graph(db, business_id)
    if not graph.templates.business_account_id:
        raise FailedPreconditionError("WhatsApp business account id is not configured")

    cards: List[CarouselCard] = []
    handles: List[str] = []
    for index, image in enumerate(images):
        try:
            handle = _upload_card_image(db, graph, business_id, index, image, downloader)
        except InvalidArgumentError:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            message = getattr(e, "message", None) or str(e)
            logger.error("carousel.image_failed business=%s index=%s err=%s", business_id, index + 1, message)
            raise InternalError(f"Failed to process image {index + 1}: {message}") from e
        handles.append(handle)
        cards.append(CarouselCard(
            header_handle=handle,
            example_name=image.get("name") or f"product-{index + 1}",
            example_price=str(image.get("price") or "10.0"),
        ))

    template_name = build_template_name(category_name.strip())
    payload = CarouselTemplatePayload(
        name=template_name, cards=cards, body_example=category_name.strip(), language=language,
    )
    try:
        created = graph.templates.create(payload)
    except Exception as e:
        db.rollback()
        message = getattr(e, "message", None) or str(e)
        logger.error("carousel.create_failed business=%s name=%s err=%s", business_id, template_name, message)
        raise InternalError(f"Failed to create carousel template: {message}") from e

    row = media_repo.add_carousel_template(
        db,
        business_id=business_id,
        template_name=template_name,
        category_name=category_name.strip(),
        whatsapp_template_id=str(created["id"]),
        status=str(created.get("status") or "pending").lower(),
        image_handles=handles,
    )
    db.commit()
    return _template_out(row)


def delete_carousel_template(
    db: Session, caller_id: str, business_id: str, template_name: str, *, graph: Optional[WhatsAppGraph] = None,
) -> Dict[str, Any]:
    check_access(db, caller_id, business_id)
    if not template_name:
        raise InvalidArgumentError("template_name is required")
    graph = graph or build_graph(db, business_id)
    try:
        graph.templates.delete(template_name)
    except Exception as e:
        message = getattr(e, "message", None) or str(e)
        raise InternalError(f"Failed to delete carousel template: {message}") from e
    updated = media_repo.mark_template_deleted(db, business_id, template_name)
    db.commit()
    return {"template_name": template_name, "deleted": True, "local_records": updated}


def list_carousel_templates(
    db: Session, caller_id: str, business_id: str, template_id: Optional[str] = None,
    *, graph: Optional[WhatsAppGraph] = None,
) -> Dict[str, Any]:
    """本地记录 + 远端状态（只在指定 template_id 或显式传入 graph 时请求远端）。"""
    check_access(db, caller_id, business_id)
    local = [_template_out(r) for r in media_repo.list_carousel_templates(db, business_id)]
    if template_id:
        local = [t for t in local if t["template_id"] == template_id]
    remote: List[Dict[str, Any]] = []
    if template_id or graph is not None:
        graph = graph or build_graph(db, business_id)
        try:
            remote = graph.templates.list(template_id)
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            raise InternalError(f"Failed to fetch carousel templates: {message}") from e
    return {"templates": local, "remote": remote}
