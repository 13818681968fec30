import os
import sys

from wa_hub.db.session import session_scope
from wa_hub.services.whatsapp_config_service import build_graph

if __name__ == "__main__":
    business_id = sys.argv[1] if len(sys.argv) > 1 else os.environ["WA_BUSINESS_ID"]
    with session_scope() as db:
        graph = build_graph(db, business_id)
    try:
        items = graph.catalog.list_products(limit=5)
        print(f"catalog ok, {len(items)} item(s):")
        for item in items:
            print(" -", item.get("retailer_id"), item.get("name"))
    finally:
        graph.close()


# 运行
# export $(grep -v '^#' .env | xargs)   # 若你用 .env
# PYTHONPATH=backend python scripts/ping_whatsapp.py <business_id>

# 能列出商品说明 token / catalog_id / API 版本都 OK
