"""
商品目录 API：items_batch（UPDATE/DELETE）与目录商品查询。
一次调用 = 一次网络往返；批量切分由编排层负责。
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List

from wa_hub.integrations.whatsapp.errors import WhatsAppClientError, WhatsAppPayloadError
from wa_hub.integrations.whatsapp.http_client import WhatsAppHttpClient
from wa_hub.integrations.whatsapp.payloads import ItemsBatchPayload

logger = logging.getLogger(__name__)


class WhatsAppCatalogAPI:

    def __init__(self, http: WhatsAppHttpClient, catalog_id: str | None) -> None:
        self.http = http
        self.catalog_id = catalog_id

    def _require_catalog(self) -> str:
        if not self.catalog_id:
            raise WhatsAppClientError("catalog id is not configured")
        return self.catalog_id


    def items_batch(self, payload: ItemsBatchPayload) -> Dict[str, Any]:
        """POST /{catalog_id}/items_batch，返回原始响应。"""
        catalog_id = self._require_catalog()
        body = payload.to_dict()
        data = self.http.post_json(f"{catalog_id}/items_batch", json_body=body)
        if not isinstance(data, dict):
            raise WhatsAppPayloadError(f"unexpected items_batch response: {data!r}")

        # validation_status 只记录，不影响批次结果
        problems = [v for v in data.get("validation_status") or [] if v.get("errors")]
        if problems:
            logger.warning("whatsapp.catalog.validation catalog=%s items=%s problems=%s",
                           catalog_id, len(body["requests"]), problems[:5])
        logger.info("whatsapp.catalog.items_batch catalog=%s items=%s handles=%s",
                    catalog_id, len(body["requests"]), data.get("handles"))
        return data


    def list_products(self, limit: int = 100) -> List[Dict[str, Any]]:
        """GET /{catalog_id}/products"""
        catalog_id = self._require_catalog()
        data = self.http.get_json(
            f"{catalog_id}/products",
            params={"limit": limit, "fields": "id,retailer_id,name,price,availability,image_url"},
        )
        return list((data or {}).get("data") or [])
