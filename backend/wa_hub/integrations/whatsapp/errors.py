"""
   WhatsApp Graph API 集成层专用异常类型。
   将鉴权/限流/服务端/载荷错误与业务层解耦；业务层统一转成 InternalError。
"""

from __future__ import annotations
from typing import Optional


class WhatsAppError(Exception):
    """Base for all Graph API errors."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[int] = None,
        fbtrace_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.fbtrace_id = fbtrace_id


class WhatsAppAuthError(WhatsAppError):
    """401/403 or OAuth error (code 190): token invalid or lacks permission."""

class WhatsAppClientError(WhatsAppError):
    """Network/timeout errors and non-auth 4xx responses."""

class WhatsAppServerError(WhatsAppError):
    """5xx from the Graph API."""

class WhatsAppRateLimitError(WhatsAppError):
    """429 or a throttling error code."""

class WhatsAppPayloadError(WhatsAppError):
    """Unexpected/invalid response payload shape or content."""
