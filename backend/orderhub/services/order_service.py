"""
订单生命周期服务 - 单个订单的读取、状态转换、编辑

每个订单的一次操作是一个独立的工作单元：
在订单锁内读取最新状态 → 校验 → 写入状态和历史 → 提交。
任何失败都会回滚，不留下部分写入。
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from orderhub.core.exceptions import (
    ConcurrentModification,
    DriverInvalid,
    DriverNotAssignable,
    OrderNotFound,
    OrderTerminal,
)
from orderhub.models.enums import OrderStatus
from orderhub.models.order import Order
from orderhub.models.status_history import StatusHistoryEntry
from orderhub.services import transition_table
from orderhub.services.assignees import AssigneeValidator
from orderhub.services.history import HistoryRecorder
from orderhub.services.notifications import NotificationDispatcher, OrderNotification, notifier
from orderhub.services.order_editor import ItemChange, OrderEditor
from orderhub.services.order_locks import OrderLockRegistry, order_locks
from orderhub.services.state_machine import OrderStateMachine, TransitionSideEffects

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """当前请求的操作身份；user_id 为空表示系统操作"""

    tenant_id: int
    user_id: Optional[int] = None


def order_query(tenant_id: int, order_id: int, with_items: bool = False, with_history: bool = False):
    query = select(Order).where(Order.id == order_id, Order.tenant_id == tenant_id)
    if with_items:
        query = query.options(selectinload(Order.items))
    if with_history:
        query = query.options(selectinload(Order.status_history))
    return query.execution_options(populate_existing=True)


class OrderLifecycleService:

    def __init__(
        self,
        session_factory: sessionmaker,
        locks: OrderLockRegistry = order_locks,
        dispatcher: NotificationDispatcher = notifier,
        editor: Optional[OrderEditor] = None,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.dispatcher = dispatcher
        self.editor = editor or OrderEditor()

    # ===== 工作单元 =====

    @asynccontextmanager
    async def order_unit_of_work(
        self,
        actor: Actor,
        order_id: int,
        with_items: bool = False,
    ) -> AsyncIterator[Tuple[AsyncSession, Order]]:
        """
        在订单锁内打开独立事务并重新读取订单

        正常退出时提交；抛出异常时回滚并原样抛出
        （乐观锁冲突转换为 ConcurrentModification）。
        """
        async with self.locks.hold(order_id):
            async with self.session_factory() as db:
                result = await db.execute(
                    order_query(actor.tenant_id, order_id, with_items=with_items).with_for_update()
                )
                order = result.scalar_one_or_none()
                if not order:
                    raise OrderNotFound(order_id)
                try:
                    yield db, order
                    await db.commit()
                except StaleDataError as e:
                    await db.rollback()
                    logger.warning(f"订单 {order_id} 乐观锁冲突: {e}")
                    raise ConcurrentModification(order_id) from e
                except BaseException:
                    await db.rollback()
                    raise

    async def check_transition(
        self,
        db: AsyncSession,
        actor: Actor,
        order: Order,
        target: OrderStatus,
        driver_id: Optional[int] = None,
    ) -> TransitionSideEffects:
        """状态转换前的校验：先按状态机判断转换是否合法，再校验随转换指派的司机"""
        side_effects = TransitionSideEffects(driver_id=driver_id)
        OrderStateMachine.validate(order, target, side_effects)
        if driver_id is not None and not await AssigneeValidator(db).is_valid_driver(actor.tenant_id, driver_id):
            raise DriverInvalid(driver_id, order_id=order.id)
        return side_effects

    async def check_driver_assignment(
        self,
        db: AsyncSession,
        actor: Actor,
        order: Order,
        driver_id: int,
    ) -> None:
        """单独指派司机前的校验：订单状态允许指派，且司机属于本租户"""
        status = OrderStatus(order.status)
        if transition_table.is_terminal(status):
            raise OrderTerminal(status.value, order_id=order.id)
        if status not in transition_table.DRIVER_ASSIGNABLE_STATUSES:
            raise DriverNotAssignable(status.value, order_id=order.id)
        if not await AssigneeValidator(db).is_valid_driver(actor.tenant_id, driver_id):
            raise DriverInvalid(driver_id, order_id=order.id)

    def notification_for(
        self,
        actor: Actor,
        order: Order,
        entry: StatusHistoryEntry,
    ) -> OrderNotification:
        return OrderNotification(
            tenant_id=actor.tenant_id,
            order_id=order.id,
            order_number=order.order_number,
            from_status=entry.from_status.value if entry.from_status else None,
            to_status=OrderStatus(entry.to_status).value,
            changed_by=entry.changed_by,
            notes=entry.notes,
        )

    # ===== 查询 =====

    async def get_order(self, actor: Actor, order_id: int) -> Order:
        async with self.session_factory() as db:
            result = await db.execute(
                order_query(actor.tenant_id, order_id, with_items=True, with_history=True)
            )
            order = result.scalar_one_or_none()
        if not order:
            raise OrderNotFound(order_id)
        return order

    async def list_history(self, actor: Actor, order_id: int) -> List[StatusHistoryEntry]:
        order = await self.get_order(actor, order_id)
        return list(order.status_history)

    # ===== 状态转换 =====

    async def transition(
        self,
        actor: Actor,
        order_id: int,
        target_status: OrderStatus,
        notes: Optional[str] = None,
        driver_id: Optional[int] = None,
    ) -> Tuple[Order, StatusHistoryEntry]:
        """
        单个订单状态转换

        Returns:
            (转换后的订单, 新追加的历史记录)

        Raises:
            OrderOperationError 的各个子类；失败时不写入任何数据
        """
        async with self.order_unit_of_work(actor, order_id) as (db, order):
            side_effects = await self.check_transition(db, actor, order, target_status, driver_id)
            machine = OrderStateMachine(HistoryRecorder(db))
            entry = machine.transition(
                order,
                target_status,
                actor=actor.user_id,
                notes=notes,
                side_effects=side_effects,
            )

        self.dispatcher.dispatch(self.notification_for(actor, order, entry))
        return order, entry

    # ===== 编辑 =====

    async def edit(
        self,
        actor: Actor,
        order_id: int,
        item_changes: Sequence[ItemChange],
        notes: Optional[str] = None,
        requested_delivery_date: Optional[date] = None,
    ) -> Order:
        async with self.order_unit_of_work(actor, order_id, with_items=True) as (db, order):
            self.editor.apply_edit(
                order,
                item_changes,
                notes=notes,
                requested_delivery_date=requested_delivery_date,
            )
        return await self.get_order(actor, order_id)
