"""
租户级 Graph 门面：一个 access_token + 号码/目录/WABA id，聚合各业务 API。
编排层只依赖这个对象，测试时整体替换成假实现。
"""

from __future__ import annotations
from typing import Optional

import requests

from wa_hub.integrations.whatsapp.catalog_api import WhatsAppCatalogAPI
from wa_hub.integrations.whatsapp.http_client import WhatsAppHttpClient
from wa_hub.integrations.whatsapp.media_api import WhatsAppMediaAPI
from wa_hub.integrations.whatsapp.messaging_api import WhatsAppMessagingAPI
from wa_hub.integrations.whatsapp.templates_api import WhatsAppTemplatesAPI


class WhatsAppGraph:

    def __init__(
        self,
        *,
        access_token: str,
        phone_number_id: str,
        catalog_id: Optional[str] = None,
        business_account_id: Optional[str] = None,
        app_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.http = WhatsAppHttpClient(access_token, session=session)
        self.catalog = WhatsAppCatalogAPI(self.http, catalog_id)
        self.media = WhatsAppMediaAPI(self.http, phone_number_id, app_id=app_id)
        self.messaging = WhatsAppMessagingAPI(self.http, phone_number_id)
        self.templates = WhatsAppTemplatesAPI(self.http, business_account_id)

    def close(self) -> None:
        self.http.close()
