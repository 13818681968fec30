"""
低层 HTTP 客户端：Graph API 鉴权头 / 超时 / 错误分类
  - 每个租户一个 access_token，按实例注入；
  - 一次请求一次往返（有界超时），不做重试；重投由调用方/任务层决定；
  - 提供 get_json / post_json / post_form / post_binary / delete_json，不关心业务字段结构。
"""

from __future__ import annotations
import logging, time, requests
from typing import Any, Dict, Optional, Tuple

from wa_hub.core.config import settings
from wa_hub.integrations.whatsapp.errors import (
    WhatsAppAuthError, WhatsAppClientError, WhatsAppServerError,
    WhatsAppRateLimitError, WhatsAppPayloadError,
)

logger = logging.getLogger(__name__)


# Graph 的节流类错误码（应用/账号/号码级）
_THROTTLE_CODES = {4, 17, 32, 613, 80007, 130429, 131056}
_AUTH_CODES = {10, 190, 200}


class WhatsAppHttpClient:
    """WhatsApp Cloud API (Graph) 的低层 HTTP 客户端。"""

    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        connect_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """允许覆盖基础配置，便于测试或多租户场景。"""
        if not access_token:
            raise WhatsAppAuthError("access token is empty")
        self.access_token = access_token
        self.base_url = (base_url or settings.graph_api_root).rstrip("/")
        self.connect_timeout = connect_timeout or settings.WHATSAPP_CONNECT_TIMEOUT
        self.read_timeout = read_timeout or settings.WHATSAPP_READ_TIMEOUT
        self._session = session or requests.Session()


    # ---------- Public ----------
    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        resp = self._request("GET", path, params=params, **kwargs)
        return self._as_json(resp)

    def post_json(self, path: str, json_body: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        resp = self._request("POST", path, json=json_body, **kwargs)
        return self._as_json(resp)

    def post_form(self, path: str, data: Dict[str, Any], files: Dict[str, Tuple[str, bytes, str]], **kwargs) -> Any:
        """multipart/form-data 上传（媒体上传接口）。"""
        resp = self._request("POST", path, data=data, files=files, **kwargs)
        return self._as_json(resp)

    def post_binary(self, path: str, body: bytes, headers: Dict[str, str], *, auth_scheme: str = "Bearer", **kwargs) -> Any:
        """原始字节上传（可续传上传的数据段）。"""
        resp = self._request("POST", path, data=body, headers=headers, auth_scheme=auth_scheme, **kwargs)
        return self._as_json(resp)

    def delete_json(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        resp = self._request("DELETE", path, params=params, **kwargs)
        return self._as_json(resp)

    def close(self) -> None:
        self._session.close()


    # ---------- Internals ----------
    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"


    def _as_json(self, resp: requests.Response) -> Any:
        """解析响应 JSON；失败则截取文本并抛 WhatsAppPayloadError。"""
        try:
            return resp.json()
        except ValueError as e:
            text = (resp.text or "")[:500]  # 截断，避免日志过大
            raise WhatsAppPayloadError(
                f"non-JSON response (status={resp.status_code}): {text}", status=resp.status_code
            ) from e


    def _request(self, method: str, path: str, *, auth_scheme: str = "Bearer", **kwargs) -> requests.Response:
        """执行一次 HTTP 调用，负责鉴权头、超时与状态码分类。"""
        url = self._url(path)
        headers = kwargs.pop("headers", {}) or {}
        headers.setdefault("Accept", "application/json")
        # 可续传上传数据段要求 "OAuth <token>"，其余接口用 Bearer
        headers["Authorization"] = f"{auth_scheme} {self.access_token}"
        timeout = kwargs.pop("timeout", (self.connect_timeout, self.read_timeout))

        t0 = time.perf_counter()
        try:
            resp = self._session.request(method, url, headers=headers, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("whatsapp.graph.request_error method=%s path=%s err=%s", method, path, e)
            raise WhatsAppClientError(f"request error: {e}") from e

        latency_ms = int((time.perf_counter() - t0) * 1000)
        if resp.status_code < 400:
            logger.info("whatsapp.graph.ok method=%s path=%s status=%s latency_ms=%s", method, path, resp.status_code, latency_ms)
            return resp

        logger.warning(
            "whatsapp.graph.error method=%s path=%s status=%s latency_ms=%s body=%s",
            method, path, resp.status_code, latency_ms, (resp.text or "")[:300],
        )
        raise self._error_from_response(resp)


    def _error_from_response(self, resp: requests.Response):
        """把 Graph 的 {"error": {...}} 映射到异常层级。"""
        message, code, trace = f"{resp.status_code} error", None, None
        try:
            err = (resp.json() or {}).get("error") or {}
            message = err.get("error_user_msg") or err.get("message") or message
            code = err.get("code")
            trace = err.get("fbtrace_id")
        except ValueError:
            message = f"{resp.status_code} error: {(resp.text or '')[:300]}"

        kw = {"status": resp.status_code, "code": code, "fbtrace_id": trace}
        if resp.status_code == 429 or code in _THROTTLE_CODES:
            return WhatsAppRateLimitError(message, **kw)
        if resp.status_code in (401, 403) or code in _AUTH_CODES:
            return WhatsAppAuthError(message, **kw)
        if resp.status_code >= 500:
            return WhatsAppServerError(message, **kw)
        return WhatsAppClientError(message, **kw)
