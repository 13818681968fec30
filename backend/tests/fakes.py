# 测试用假实现：Graph 门面（目录/媒体/消息/模板）+ 生成图片

from __future__ import annotations
import io
import itertools
from typing import Any, Dict, List, Optional

from PIL import Image

from wa_hub.integrations.whatsapp import WhatsAppServerError


OWNER = "owner-1"
ADMIN = "admin-1"
MEMBER = "member-1"
STRANGER = "stranger-1"


# ---------- 假的 Graph API ----------
class FakeCatalog:
    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.fail_on: Dict[int, str] = {}      # 第 k 次调用（从 1 开始）→ 错误信息
        self.remote_items: List[Dict[str, Any]] = []

    def items_batch(self, payload):
        body = payload.to_dict()
        self.calls.append(body)
        n = len(self.calls)
        if n in self.fail_on:
            raise WhatsAppServerError(self.fail_on[n], status=500)
        return {"handles": [f"handle-{n}"]}

    def list_products(self, limit: int = 100):
        return self.remote_items[:limit]


class FakeMedia:
    def __init__(self) -> None:
        self._seq = itertools.count(1)
        self.uploads: List[Dict[str, Any]] = []
        self.sessions: List[str] = []
        self.fail = False

    def upload(self, content: bytes, *, filename: str = "image.jpg", mime_type: str = "image/jpeg") -> str:
        if self.fail:
            raise WhatsAppServerError("upload failed", status=500)
        media_id = f"media-{next(self._seq)}"
        self.uploads.append({"id": media_id, "size": len(content), "filename": filename})
        return media_id

    def create_upload_session(self, file_name: str, file_length: int, file_type: str = "image/jpeg") -> str:
        session_id = f"upload:{next(self._seq)}"
        self.sessions.append(session_id)
        return session_id

    def upload_file_data(self, session_id: str, content: bytes, file_type: str = "image/jpeg") -> str:
        return f"h-{session_id}"


class FakeMessaging:
    def __init__(self) -> None:
        self._seq = itertools.count(1)
        self.sent: List[Dict[str, str]] = []
        self.fail_for: set = set()

    def send_text(self, to: str, body: str) -> str:
        if to in self.fail_for:
            raise WhatsAppServerError("recipient unavailable", status=500)
        message_id = f"wamid.{next(self._seq)}"
        self.sent.append({"to": to, "body": body, "id": message_id})
        return message_id


class FakeTemplates:
    def __init__(self, business_account_id: Optional[str] = "waba-1") -> None:
        self.business_account_id = business_account_id
        self.created: List[Dict[str, Any]] = []
        self.deleted: List[str] = []

    def create(self, payload):
        self.created.append(payload.to_dict())
        return {"id": f"tmpl-{len(self.created)}", "status": "PENDING"}

    def delete(self, name: str) -> None:
        self.deleted.append(name)

    def list(self, template_id: Optional[str] = None):
        return [{"id": template_id or "tmpl-1", "status": "APPROVED"}]


class FakeGraph:
    def __init__(self) -> None:
        self.catalog = FakeCatalog()
        self.media = FakeMedia()
        self.messaging = FakeMessaging()
        self.templates = FakeTemplates()
        self.closed = False

    def close(self) -> None:
        self.closed = True


# ---------- 图片 ----------
def make_image_bytes(size=(1600, 1200), fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


