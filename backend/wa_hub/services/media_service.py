"""
图片下载 + 按用途压缩（Pillow）。
  - 下载：有界超时、有界体积（流式读取，超限即中止）；
  - 处理：EXIF 方向校正 → RGB → 等比缩放到 profile 内（不放大）→ 渐进式 JPEG；
  - 结果超过 WhatsApp 上传上限直接报错。
"""

from __future__ import annotations
import io
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlparse

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from wa_hub.core.config import settings
from wa_hub.core.errors import InvalidArgumentError, MediaUploadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageProfile:
    width: int
    height: int


IMAGE_PROFILES: Dict[str, ImageProfile] = {
    "product": ImageProfile(800, 800),
    "category": ImageProfile(600, 600),
    "carousel": ImageProfile(1080, 1080),
    "thumbnail": ImageProfile(300, 300),
}

# 用途 → profile；规格图与兜底图都按商品图处理
PURPOSE_PROFILE = {
    "product": "product",
    "product_option": "product",
    "fallback": "product",
    "category": "category",
    "carousel": "carousel",
    "thumbnail": "thumbnail",
}

Downloader = Callable[[str], bytes]


def profile_for(purpose: str) -> ImageProfile:
    return IMAGE_PROFILES[PURPOSE_PROFILE.get(purpose, "product")]


def validate_image_url(url: str) -> str:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidArgumentError(f"invalid image url: {url!r}")
    return url


def download_image(url: str, *, session: Optional[requests.Session] = None) -> bytes:
    """流式下载，超过 MEDIA_DOWNLOAD_MAX_BYTES 立即中止。"""
    max_bytes = settings.MEDIA_DOWNLOAD_MAX_BYTES
    http = session or requests
    try:
        with http.get(url, stream=True, timeout=settings.MEDIA_DOWNLOAD_TIMEOUT) as resp:
            resp.raise_for_status()
            declared = int(resp.headers.get("Content-Length") or 0)
            if declared > max_bytes:
                raise MediaUploadError(f"image too large: {declared} bytes")

            buf = io.BytesIO()
            for chunk in resp.iter_content(chunk_size=64 * 1024):
                buf.write(chunk)
                if buf.tell() > max_bytes:
                    raise MediaUploadError(f"image exceeds {max_bytes} bytes")
            return buf.getvalue()
    except requests.RequestException as e:
        raise MediaUploadError(f"download failed: {e}") from e


def optimize_image(content: bytes, purpose: str) -> bytes:
    profile = profile_for(purpose)
    try:
        with Image.open(io.BytesIO(content)) as im:
            im = ImageOps.exif_transpose(im)
            im = im.convert("RGB")
            # thumbnail() 只缩不放，保持比例
            im.thumbnail((profile.width, profile.height), Image.Resampling.LANCZOS)
            out = io.BytesIO()
            im.save(out, format="JPEG", quality=settings.MEDIA_JPEG_QUALITY, progressive=True, optimize=True)
    except (UnidentifiedImageError, OSError) as e:
        raise MediaUploadError(f"image processing failed: {e}") from e

    data = out.getvalue()
    if len(data) > settings.MEDIA_UPLOAD_MAX_BYTES:
        raise MediaUploadError(f"optimized image still exceeds {settings.MEDIA_UPLOAD_MAX_BYTES} bytes")
    return data


def prepare_image(url: str, purpose: str, *, downloader: Optional[Downloader] = None) -> Tuple[bytes, int]:
    """下载 + 压缩，返回 (jpeg bytes, 原图大小)。"""
    raw = (downloader or download_image)(validate_image_url(url))
    optimized = optimize_image(raw, purpose)
    logger.info("media.optimized purpose=%s original=%s optimized=%s", purpose, len(raw), len(optimized))
    return optimized, len(raw)
