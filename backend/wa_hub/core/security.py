from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import jwt, JWTError
from wa_hub.core.config import settings


ALGORITHM = "HS256"


'''
签发 JWT（由上游登录系统/脚本签发，这里只负责编码）
  - subject 里至少带 user_id，作为 caller_id 使用
'''
def create_access_token(subject: dict[str, Any], expires_minutes: int | None = None) -> str:
    expire = datetime.now(tz=timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode = {"exp": expire, **subject}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
