import os

from sqlalchemy.orm import Session
from wa_hub.db.session import SessionLocal
from wa_hub.repository.business_repo import create_business, get_business, upsert_whatsapp_config
from wa_hub.utils.encryption import encrypt_token


# 在容器里运行一次：python scripts/create_business.py
# 需要的环境变量：
#   WA_BUSINESS_NAME / WA_OWNER_ID / WA_PHONE_NUMBER_ID / WA_ACCESS_TOKEN
#   可选：WA_BUSINESS_ID（已存在则只更新配置）/ WA_CATALOG_ID / WA_WABA_ID / WA_APP_ID
#   WHATSAPP_TOKEN_ENCRYPTION_KEY 必须已配置（token 加密落库）

def main():
    db: Session = SessionLocal()
    try:
        business_id = os.getenv("WA_BUSINESS_ID")
        business = get_business(db, business_id) if business_id else None
        if business is None:
            business = create_business(
                db,
                name=os.getenv("WA_BUSINESS_NAME", "Demo Store"),
                owner_id=os.environ["WA_OWNER_ID"],
            )
            print("Business created:", business.id)

        upsert_whatsapp_config(
            db,
            business.id,
            phone_number_id=os.environ["WA_PHONE_NUMBER_ID"],
            catalog_id=os.getenv("WA_CATALOG_ID"),
            business_account_id=os.getenv("WA_WABA_ID"),
            app_id=os.getenv("WA_APP_ID"),
            access_token=encrypt_token(os.environ["WA_ACCESS_TOKEN"]),
            is_active=True,
        )
        db.commit()
        print("WhatsApp config saved for", business.id)
    finally:
        db.close()


if __name__ == "__main__":
    main()
