"""依赖注入 - 操作身份来自请求头（认证由网关负责）"""
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from orderhub.db.session import SessionLocal
from orderhub.services.batch_processor import BatchTransitionProcessor
from orderhub.services.order_service import Actor, OrderLifecycleService


def get_session_factory() -> sessionmaker:
    """会话工厂（测试中替换为临时数据库）"""
    return SessionLocal


async def get_db(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    async with session_factory() as session:
        yield session


def get_actor(
    tenant_id: int = Header(..., alias="X-Tenant-Id", description="租户ID"),
    user_id: Optional[int] = Header(None, alias="X-User-Id", description="操作人ID，缺省为系统操作"),
) -> Actor:
    return Actor(tenant_id=tenant_id, user_id=user_id)


def get_order_service(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> OrderLifecycleService:
    return OrderLifecycleService(session_factory)


def get_batch_processor(
    service: OrderLifecycleService = Depends(get_order_service),
    actor: Actor = Depends(get_actor),
) -> BatchTransitionProcessor:
    return BatchTransitionProcessor(service, actor)
