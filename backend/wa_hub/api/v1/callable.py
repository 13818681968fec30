"""
callable 接口的统一外壳：
  成功 → {"success": true, ...}
  失败 → {"success": false, "error": ..., "code": ...}，HTTP 状态码按 code 映射
业务异常绝不冒出路由层；未知异常 logger.exception 后按 internal 返回。
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict

from fastapi.responses import JSONResponse

from wa_hub.core.errors import HubError, InternalError
from wa_hub.integrations.whatsapp import WhatsAppError
from wa_hub.utils.serialization import to_jsonable

logger = logging.getLogger(__name__)


HTTP_STATUS_BY_CODE = {
    "invalid-argument": 400,
    "permission-denied": 403,
    "not-found": 404,
    "failed-precondition": 412,
    "internal": 500,
}


def failure(message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_STATUS_BY_CODE.get(code, 500),
        content={"success": False, "error": message, "code": code},
    )


def run_callable(op: Callable[..., Any], *args: Any, **kwargs: Any):
    """执行一个业务操作；返回 dict（成功）或 JSONResponse（失败）。"""
    name = getattr(op, "__name__", "op")
    try:
        result = op(*args, **kwargs)
    except HubError as e:
        logger.info("callable.%s.rejected code=%s err=%s", name, e.code, e.message)
        return failure(e.message, e.code)
    except WhatsAppError as e:
        logger.error("callable.%s.whatsapp_error status=%s code=%s err=%s", name, e.status, e.code, e)
        return failure(str(e), InternalError.code)
    except Exception as e:
        logger.exception("callable.%s.unexpected", name)
        return failure(str(e) or type(e).__name__, InternalError.code)

    if hasattr(result, "to_dict"):
        result = result.to_dict()
    if isinstance(result, dict):
        body: Dict[str, Any] = {"success": True, **result}
    else:
        body = {"success": True, "data": result}
    return to_jsonable(body)
