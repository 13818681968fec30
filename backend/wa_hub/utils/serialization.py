"""
callable 接口返回值 → JSON 原语。
DB 里的时间都是 naive UTC，输出时补 "Z"；金额保持两位小数的数值。
"""

from __future__ import annotations
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
import math

from pydantic import SecretStr


def _utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        return value.isoformat() + "Z"
    return value.isoformat()


def to_jsonable(value: Any):
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, SecretStr):
        return "**********"
    if isinstance(value, Enum):
        return to_jsonable(value.value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return float(value.quantize(Decimal("0.01"))) if value.as_tuple().exponent < -2 else float(value)
    if isinstance(value, datetime):
        return _utc_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        # 图片等二进制不回传，只给大小
        return {"bytes": len(value)}
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    return value
