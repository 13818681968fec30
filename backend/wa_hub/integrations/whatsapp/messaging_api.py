from __future__ import annotations
import logging
import re
from typing import Optional

from wa_hub.core.config import settings
from wa_hub.integrations.whatsapp.errors import WhatsAppPayloadError
from wa_hub.integrations.whatsapp.http_client import WhatsAppHttpClient
from wa_hub.integrations.whatsapp.payloads import TextMessagePayload

logger = logging.getLogger(__name__)


def format_phone_number(phone: str, country_code: Optional[str] = None) -> str:
    """只保留数字；本地号码 0 开头换成国家码，缺国家码时补上。"""
    cc = country_code or settings.DEFAULT_COUNTRY_CODE
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith(cc):
        return digits
    if digits.startswith("0"):
        digits = digits[1:]
    return f"{cc}{digits}"


class WhatsAppMessagingAPI:

    def __init__(self, http: WhatsAppHttpClient, phone_number_id: str) -> None:
        self.http = http
        self.phone_number_id = phone_number_id

    def send_text(self, to: str, body: str) -> str:
        payload = TextMessagePayload(to=format_phone_number(to), body=body)
        data = self.http.post_json(f"{self.phone_number_id}/messages", json_body=payload.to_dict())
        messages = (data or {}).get("messages") or []
        if not messages or not messages[0].get("id"):
            raise WhatsAppPayloadError(f"send message returned no id: {data!r}")
        return str(messages[0]["id"])
