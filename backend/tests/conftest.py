"""
Pytest fixtures 和测试配置
"""
import os
import sys
from collections.abc import AsyncGenerator
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest
import pytest_asyncio

# 测试时不写日志文件、不启动定时任务
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("NOTIFICATION_RETRY_ENABLED", "false")

# 添加 backend 目录到 PYTHONPATH
BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from orderhub.db.base import Base
from orderhub.db.session import build_engine, build_session_factory
from orderhub.models import Order, OrderItem, OrderStatus, StatusHistoryEntry, User, UserRole
from orderhub.services.notifications import NotificationDispatcher, OrderNotification
from orderhub.services.order_locks import OrderLockRegistry
from orderhub.services.order_service import Actor, OrderLifecycleService, order_query

TENANT_ID = 1
OTHER_TENANT_ID = 2


@pytest_asyncio.fixture
async def engine(tmp_path):
    """临时文件 SQLite 数据库"""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orderhub_test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


class RecordingSender:
    """记录所有投递的通知，可设置为前 N 次失败"""

    def __init__(self, fail_times: int = 0):
        self.sent: List[OrderNotification] = []
        self.fail_times = fail_times
        self.calls = 0

    async def __call__(self, notification: OrderNotification) -> None:
        self.calls += 1
        if self.calls <= self.fail_times:
            raise ConnectionError("通知通道不可用")
        self.sent.append(notification)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def dispatcher(sender) -> NotificationDispatcher:
    return NotificationDispatcher(sender=sender, max_attempts=3)


@pytest.fixture
def service(session_factory, dispatcher) -> OrderLifecycleService:
    return OrderLifecycleService(session_factory, locks=OrderLockRegistry(), dispatcher=dispatcher)


@pytest.fixture
def actor() -> Actor:
    return Actor(tenant_id=TENANT_ID, user_id=None)


@pytest_asyncio.fixture
async def users(session_factory) -> dict:
    """租户用户：有效司机、停用司机、业务员、其他租户的司机"""
    seeds = {
        "admin": (TENANT_ID, UserRole.TENANT_ADMIN, True),
        "driver": (TENANT_ID, UserRole.DRIVER, True),
        "inactive_driver": (TENANT_ID, UserRole.DRIVER, False),
        "sales_rep": (TENANT_ID, UserRole.SALES_REP, True),
        "foreign_driver": (OTHER_TENANT_ID, UserRole.DRIVER, True),
    }
    ids = {}
    async with session_factory() as db:
        for key, (tenant_id, role, active) in seeds.items():
            user = User(tenant_id=tenant_id, name=key, role=role, is_active=active)
            db.add(user)
            await db.flush()
            ids[key] = user.id
        await db.commit()
    return ids


@pytest.fixture
def create_order(session_factory):
    """
    创建测试订单，返回订单ID

    lines: [(单价, 数量)]；订单带一条初始历史 {None → status}
    """
    counter = {"n": 1000}

    async def _create(
        status: OrderStatus = OrderStatus.PENDING,
        lines: Sequence[Tuple[str, int]] = (("10.00", 3), ("50.00", 1)),
        tenant_id: int = TENANT_ID,
        driver_id: Optional[int] = None,
        discount: str = "0.00",
        tax: str = "0.00",
        paid: str = "0.00",
        order_number: Optional[str] = None,
    ) -> int:
        counter["n"] += 1
        subtotal = sum((Decimal(price) * qty for price, qty in lines), Decimal("0.00"))
        async with session_factory() as db:
            order = Order(
                tenant_id=tenant_id,
                order_number=order_number or f"ORD-{counter['n']}",
                status=status,
                driver_id=driver_id,
                subtotal_amount=subtotal,
                discount_amount=Decimal(discount),
                tax_amount=Decimal(tax),
                total_amount=subtotal - Decimal(discount) + Decimal(tax),
                paid_amount=Decimal(paid),
            )
            db.add(order)
            await db.flush()
            for product_id, (price, qty) in enumerate(lines, start=1):
                db.add(OrderItem(
                    order_id=order.id,
                    product_id=product_id,
                    unit_price=Decimal(price),
                    qty_ordered=qty,
                    line_total=Decimal(price) * qty,
                ))
            db.add(StatusHistoryEntry(order_id=order.id, from_status=None, to_status=status))
            await db.commit()
            return order.id

    return _create


@pytest.fixture
def load_order(session_factory):
    """重新从数据库读取订单（含明细和历史）"""
    async def _load(order_id: int, tenant_id: int = TENANT_ID) -> Order:
        async with session_factory() as db:
            result = await db.execute(order_query(tenant_id, order_id, with_items=True, with_history=True))
            return result.scalar_one()

    return _load


@pytest_asyncio.fixture
async def app_client(session_factory, dispatcher) -> AsyncGenerator:
    """绑定到临时数据库的 HTTP 客户端"""
    from httpx import ASGITransport, AsyncClient

    from orderhub.core.deps import get_order_service, get_session_factory
    from orderhub.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_order_service] = lambda: OrderLifecycleService(
        session_factory, locks=OrderLockRegistry(), dispatcher=dispatcher
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
