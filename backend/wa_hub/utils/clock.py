from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Optional


def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)  # 与 DB naive UTC 对齐


def days_from_now(days: float) -> datetime:
    return now_utc() + timedelta(days=days)


def from_epoch_seconds(value: Any) -> Optional[datetime]:
    """WhatsApp webhook 的 timestamp 是字符串形式的秒级 epoch。"""
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError, OverflowError):
        return None
