from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from orderhub.core.config import settings


def build_engine(database_uri: str):
    """创建异步引擎（旧的 sqlite:/// 地址自动切换到 aiosqlite 驱动）"""
    return create_async_engine(
        database_uri.replace("sqlite:///", "sqlite+aiosqlite:///")
        if database_uri.startswith("sqlite:///") else database_uri,
        echo=settings.SQL_DEBUG,
        future=True,
    )


def build_session_factory(bind) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# 创建异步引擎
engine = build_engine(settings.DATABASE_URI)

# 创建异步会话
SessionLocal = build_session_factory(engine)
