from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from wa_hub.integrations.whatsapp.errors import WhatsAppClientError, WhatsAppPayloadError
from wa_hub.integrations.whatsapp.http_client import WhatsAppHttpClient
from wa_hub.integrations.whatsapp.payloads import CarouselTemplatePayload

logger = logging.getLogger(__name__)


class WhatsAppTemplatesAPI:
    """/{waba_id}/message_templates 的增删查。"""

    def __init__(self, http: WhatsAppHttpClient, business_account_id: Optional[str]) -> None:
        self.http = http
        self.business_account_id = business_account_id

    def _waba(self) -> str:
        if not self.business_account_id:
            raise WhatsAppClientError("business account (WABA) id is not configured")
        return self.business_account_id

    def create(self, payload: CarouselTemplatePayload) -> Dict[str, Any]:
        data = self.http.post_json(f"{self._waba()}/message_templates", json_body=payload.to_dict())
        if not (data or {}).get("id"):
            raise WhatsAppPayloadError(f"template create returned no id: {data!r}")
        logger.info("whatsapp.template.created name=%s id=%s status=%s", payload.name, data["id"], data.get("status"))
        return data

    def delete(self, name: str) -> None:
        self.http.delete_json(f"{self._waba()}/message_templates", params={"name": name})

    def list(self, template_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if template_id:
            return [self.http.get_json(f"{self._waba()}/message_templates/{template_id}")]
        data = self.http.get_json(f"{self._waba()}/message_templates")
        return list((data or {}).get("data") or [])
