"""
媒体 API：
  - upload(): multipart 上传到 /{phone_number_id}/media，返回 media id；
  - create_upload_session() + upload_file_data(): 可续传上传（模板图片），返回 file handle。
"""

from __future__ import annotations
import logging
from typing import Optional

from wa_hub.integrations.whatsapp.errors import WhatsAppPayloadError
from wa_hub.integrations.whatsapp.http_client import WhatsAppHttpClient

logger = logging.getLogger(__name__)


class WhatsAppMediaAPI:

    def __init__(self, http: WhatsAppHttpClient, phone_number_id: str, app_id: Optional[str] = None) -> None:
        self.http = http
        self.phone_number_id = phone_number_id
        self.app_id = app_id


    def upload(self, content: bytes, *, filename: str = "image.jpg", mime_type: str = "image/jpeg") -> str:
        data = self.http.post_form(
            f"{self.phone_number_id}/media",
            data={"messaging_product": "whatsapp", "type": mime_type},
            files={"file": (filename, content, mime_type)},
        )
        media_id = (data or {}).get("id")
        if not media_id:
            raise WhatsAppPayloadError(f"media upload returned no id: {data!r}")
        logger.info("whatsapp.media.uploaded phone=%s media_id=%s size=%s", self.phone_number_id, media_id, len(content))
        return str(media_id)


    def create_upload_session(self, file_name: str, file_length: int, file_type: str = "image/jpeg") -> str:
        """POST /{app}/uploads → {"id": "upload:..."}"""
        owner = self.app_id or "app"
        data = self.http.post_json(
            f"{owner}/uploads",
            params={"file_length": file_length, "file_type": file_type, "file_name": file_name},
        )
        session_id = (data or {}).get("id")
        if not session_id:
            raise WhatsAppPayloadError(f"upload session returned no id: {data!r}")
        return str(session_id)


    def upload_file_data(self, session_id: str, content: bytes, file_type: str = "image/jpeg") -> str:
        """POST /{session_id}，Authorization 用 OAuth 前缀；返回 {"h": handle}"""
        data = self.http.post_binary(
            session_id,
            content,
            headers={"Content-Type": file_type, "file_offset": "0"},
            auth_scheme="OAuth",
        )
        handle = (data or {}).get("h")
        if not handle:
            raise WhatsAppPayloadError(f"upload session {session_id} returned no handle: {data!r}")
        return str(handle)
