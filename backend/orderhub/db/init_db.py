import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from orderhub.db.session import engine
from orderhub.db.base import Base

# 导入所有模型，确保表能被创建
from orderhub.models import Order, OrderItem, StatusHistoryEntry, User  # noqa: F401


async def ensure_tables_exist(bind: AsyncEngine = engine) -> None:
    """
    确保数据库表存在（应用启动时调用）
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_database(db: AsyncSession) -> bool:
    """健康检查：执行 SELECT 1"""
    await db.execute(text("SELECT 1"))
    return True


if __name__ == "__main__":
    asyncio.run(ensure_tables_exist())
