"""
业务层统一异常（对外可见的错误分类）。
每个异常带一个稳定的 code，callable 接口层据此组装 {success: false, error, code}。
"""

from __future__ import annotations


class HubError(Exception):
    """Base for all caller-facing errors."""

    code = "internal"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFoundError(HubError):
    """Tenant or item does not exist."""

    code = "not-found"


class PermissionDeniedError(HubError):
    """Caller is not owner/admin/member of the tenant, or the record belongs elsewhere."""

    code = "permission-denied"


class InvalidArgumentError(HubError):
    """Malformed or missing input."""

    code = "invalid-argument"


class FailedPreconditionError(HubError):
    """WhatsApp integration not configured (or inactive) for the tenant."""

    code = "failed-precondition"


class InternalError(HubError):
    """Everything else, including all external API failures."""

    code = "internal"


class MediaUploadError(InternalError):
    """Any step of download/resize/upload/persist failed."""
