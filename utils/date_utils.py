"""
Date and time utilities for the quote system.
"""

from datetime import datetime, timezone
from typing import Optional


def get_utc_time() -> datetime:
    """获取当前UTC时间（带时区信息）"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite 读出的时间不带时区，统一视为UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_isoformat(dt: Optional[datetime]) -> Optional[str]:
    """转换为ISO-8601字符串"""
    dt = ensure_utc(dt)
    return dt.isoformat() if dt else None
