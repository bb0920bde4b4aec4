from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """当前 UTC 时间（naive，与数据库中存储的时间格式一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
