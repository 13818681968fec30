"""
访问控制：caller 必须是租户的 owner / admin / member 之一。
所有修改类操作第一步调用 check_access，不通过则不继续。
"""

from __future__ import annotations
import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from wa_hub.core.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from wa_hub.core.security import decode_token
from wa_hub.db.model.business import Business
from wa_hub.repository.business_repo import get_business

logger = logging.getLogger(__name__)


def caller_role(business: Business, caller_id: str) -> Optional[str]:
    if not caller_id:
        return None
    if business.owner_id == caller_id:
        return "owner"
    if caller_id in (business.admin_ids or []):
        return "admin"
    if caller_id in (business.member_ids or []):
        return "member"
    return None


def check_access(db: Session, caller_id: str, business_id: str) -> Business:
    """
    通过则返回租户；租户不存在 → NotFoundError；存在但无权限 → PermissionDeniedError。
    """
    if not business_id:
        raise InvalidArgumentError("business_id is required")
    business = get_business(db, business_id)
    if business is None:
        raise NotFoundError(f"business {business_id} not found")
    if caller_role(business, caller_id) is None:
        logger.warning("access.denied caller=%s business=%s", caller_id, business_id)
        raise PermissionDeniedError("Access denied to this business")
    return business


'''
获取当前调用方 id
    - 从 Authorization: Bearer <jwt> 里取 token → decode_token(...)
    - payload 里的 user_id 即 caller_id；租户权限由 check_access 再判断
'''
def get_current_caller(request: Request) -> str:
    auth = request.headers.get("Authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    payload = decode_token(token.strip())
    if not payload or not payload.get("user_id"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return str(payload["user_id"])
