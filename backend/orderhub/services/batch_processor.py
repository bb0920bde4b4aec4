"""
批量订单操作

对一组订单执行同一个操作（状态变更 / 取消 / 指派司机 / 指派业务员）：
- 按请求中的顺序逐个处理，每个订单独立事务、独立结果
- 一个订单失败只回滚它自己，不影响其他订单
- 请求本身不合法（空列表、超出上限、重复ID）时整批拒绝
"""

import asyncio
import logging
from collections import Counter
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.core.config import settings
from orderhub.core.exceptions import (
    BatchValidationError,
    NotCancellable,
    OrderOperationError,
    SalesRepInvalid,
    SalesRepNotAssignable,
)
from orderhub.db.base import utcnow
from orderhub.models.enums import OrderStatus
from orderhub.models.order import Order
from orderhub.models.status_history import StatusHistoryEntry
from orderhub.schemas.batch import BatchOperationResult, BatchPreview, BatchPreviewItem, BatchResultItem
from orderhub.services import transition_table
from orderhub.services.assignees import AssigneeValidator
from orderhub.services.history import HistoryRecorder
from orderhub.services.notifications import OrderNotification
from orderhub.services.order_service import Actor, OrderLifecycleService
from orderhub.services.state_machine import OrderStateMachine

logger = logging.getLogger(__name__)

# 单个订单上执行的操作；返回历史记录（状态有变化时）或 None
OrderStep = Callable[[AsyncSession, Order], Awaitable[Optional[StatusHistoryEntry]]]

PREVIEW_OPERATIONS = ("status_change", "cancel", "assign_driver")


class BatchTransitionProcessor:

    def __init__(
        self,
        service: OrderLifecycleService,
        actor: Actor,
        max_orders: Optional[int] = None,
        concurrency: Optional[int] = None,
    ):
        self.service = service
        self.actor = actor
        self.max_orders = max_orders or settings.BATCH_MAX_ORDERS
        self.concurrency = max(1, concurrency or settings.BATCH_CONCURRENCY)

    # ===== 批量操作 =====

    async def batch_status_change(
        self,
        order_ids: Sequence[int],
        new_status: OrderStatus,
        notes: Optional[str] = None,
        driver_id: Optional[int] = None,
        notify_customers: bool = False,
    ) -> BatchOperationResult:
        target = OrderStatus(new_status)

        async def step(db: AsyncSession, order: Order) -> StatusHistoryEntry:
            side_effects = await self.service.check_transition(db, self.actor, order, target, driver_id)
            machine = OrderStateMachine(HistoryRecorder(db))
            return machine.transition(
                order,
                target,
                actor=self.actor.user_id,
                notes=notes,
                side_effects=side_effects,
            )

        logger.info(f"批量状态变更 → {target.value}: {len(order_ids)} 个订单")
        return await self.run(order_ids, step, notify_customers=notify_customers)

    async def batch_cancel(
        self,
        order_ids: Sequence[int],
        reason: Optional[str] = None,
        notify_customers: bool = False,
    ) -> BatchOperationResult:

        async def step(db: AsyncSession, order: Order) -> StatusHistoryEntry:
            status = OrderStatus(order.status)
            # 不可取消的订单直接跳过，不进入状态机
            if not transition_table.is_cancellable(status):
                raise NotCancellable(status.value, order_id=order.id)
            machine = OrderStateMachine(HistoryRecorder(db))
            return machine.transition(
                order,
                OrderStatus.CANCELLED,
                actor=self.actor.user_id,
                notes=reason,
            )

        logger.info(f"批量取消: {len(order_ids)} 个订单")
        return await self.run(order_ids, step, notify_customers=notify_customers)

    async def assign_driver(self, order_ids: Sequence[int], driver_id: int) -> BatchOperationResult:

        async def step(db: AsyncSession, order: Order) -> None:
            await self.service.check_driver_assignment(db, self.actor, order, driver_id)
            order.driver_id = driver_id
            order.updated_at = utcnow()

        logger.info(f"批量指派司机 {driver_id}: {len(order_ids)} 个订单")
        return await self.run(order_ids, step)

    async def assign_sales_rep(self, order_ids: Sequence[int], sales_rep_id: int) -> BatchOperationResult:

        async def step(db: AsyncSession, order: Order) -> None:
            status = OrderStatus(order.status)
            if status in transition_table.SALES_REP_LOCKED_STATUSES:
                raise SalesRepNotAssignable(status.value, order_id=order.id)
            if not await AssigneeValidator(db).is_valid_sales_rep(self.actor.tenant_id, sales_rep_id):
                raise SalesRepInvalid(sales_rep_id, order_id=order.id)
            order.sales_rep_id = sales_rep_id
            order.updated_at = utcnow()

        logger.info(f"批量指派业务员 {sales_rep_id}: {len(order_ids)} 个订单")
        return await self.run(order_ids, step)

    # ===== 预览 =====

    async def preview(
        self,
        order_ids: Sequence[int],
        operation: str,
        target_status: Optional[OrderStatus] = None,
    ) -> BatchPreview:
        """
        预览批量操作：逐个判断订单能否处理，不加锁、不写入

        只按当前状态判断；真正执行时仍会在订单锁内重新校验。
        """
        self.validate_batch(order_ids)
        if operation not in PREVIEW_OPERATIONS:
            raise BatchValidationError(f"不支持的操作类型: {operation}")
        if operation == "status_change" and target_status is None:
            raise BatchValidationError("状态变更预览需要指定目标状态")
        target = OrderStatus(target_status) if target_status is not None else None

        async with self.service.session_factory() as db:
            result = await db.execute(
                select(Order.id, Order.order_number, Order.status, Order.total_amount).where(
                    Order.id.in_(list(order_ids)),
                    Order.tenant_id == self.actor.tenant_id,
                )
            )
            rows = {row.id: row for row in result}

        items = []
        for order_id in order_ids:
            row = rows.get(order_id)
            if row is None:
                items.append(BatchPreviewItem(order_id=order_id, can_process=False, reason="订单不存在"))
                continue
            status = OrderStatus(row.status)
            reason = self.preview_reason(operation, status, target)
            items.append(BatchPreviewItem(
                order_id=order_id,
                order_number=row.order_number,
                current_status=status,
                total_amount=row.total_amount,
                can_process=reason is None,
                reason=reason,
            ))

        preview = BatchPreview.from_items(items)
        logger.info(f"批量预览 {operation}: 共 {preview.total} 个, 可处理 {preview.can_process}")
        return preview

    @staticmethod
    def preview_reason(operation: str, status: OrderStatus, target: Optional[OrderStatus]) -> Optional[str]:
        if operation == "status_change" and not transition_table.can_transition(status, target):
            return f"不能从 '{status.value}' 变更为 '{target.value}'"
        if operation == "cancel" and not transition_table.is_cancellable(status):
            return f"状态为 '{status.value}' 的订单不能取消"
        if operation == "assign_driver" and status not in transition_table.DRIVER_ASSIGNABLE_STATUSES:
            return f"状态为 '{status.value}' 的订单不能指派司机"
        return None

    # ===== 执行 =====

    def validate_batch(self, order_ids: Sequence[int]) -> None:
        if not order_ids:
            raise BatchValidationError("订单列表不能为空")
        if len(order_ids) > self.max_orders:
            raise BatchValidationError(f"单次最多处理 {self.max_orders} 个订单，收到 {len(order_ids)} 个")
        if len(set(order_ids)) != len(order_ids):
            duplicated = sorted(i for i, n in Counter(order_ids).items() if n > 1)
            raise BatchValidationError(f"订单ID重复: {', '.join(str(i) for i in duplicated)}")

    async def prefetch_order_numbers(self, order_ids: Sequence[int]) -> Dict[int, str]:
        """一次查询取出本租户内存在的订单"""
        async with self.service.session_factory() as db:
            result = await db.execute(
                select(Order.id, Order.order_number).where(
                    Order.id.in_(list(order_ids)),
                    Order.tenant_id == self.actor.tenant_id,
                )
            )
            return {row.id: row.order_number for row in result}

    async def run(
        self,
        order_ids: Sequence[int],
        step: OrderStep,
        notify_customers: bool = False,
    ) -> BatchOperationResult:
        self.validate_batch(order_ids)
        known = await self.prefetch_order_numbers(order_ids)
        notifications: List[OrderNotification] = []

        async def process(order_id: int) -> BatchResultItem:
            return await self.process_one(order_id, known, step, notifications)

        if self.concurrency == 1:
            items = [await process(order_id) for order_id in order_ids]
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def bounded(order_id: int) -> BatchResultItem:
                async with semaphore:
                    return await process(order_id)

            # gather 按输入顺序返回结果
            items = list(await asyncio.gather(*(bounded(order_id) for order_id in order_ids)))

        result = BatchOperationResult.from_items(items)
        logger.info(f"批量操作完成: 共 {result.processed} 个, 成功 {result.succeeded}, 失败 {result.failed}")

        if notify_customers and notifications:
            self.service.dispatcher.dispatch_many(notifications)
        return result

    async def process_one(
        self,
        order_id: int,
        known: Dict[int, str],
        step: OrderStep,
        notifications: List[OrderNotification],
    ) -> BatchResultItem:
        if order_id not in known:
            return BatchResultItem(
                order_id=order_id,
                order_number="N/A",
                success=False,
                error="not_found",
                message="订单不存在",
            )

        order_number = known[order_id]
        previous_status: Optional[OrderStatus] = None
        try:
            async with self.service.order_unit_of_work(self.actor, order_id) as (db, order):
                previous_status = OrderStatus(order.status)
                entry = await step(db, order)
        except OrderOperationError as e:
            return BatchResultItem(
                order_id=order_id,
                order_number=order_number,
                success=False,
                error=e.code,
                message=e.message,
                previous_status=previous_status,
            )
        except SQLAlchemyError as e:
            logger.exception(f"订单 {order_number} 写入失败: {e}")
            return BatchResultItem(
                order_id=order_id,
                order_number=order_number,
                success=False,
                error="persistence_error",
                message=str(e),
                previous_status=previous_status,
            )

        if entry is not None:
            notifications.append(self.service.notification_for(self.actor, order, entry))
        return BatchResultItem(
            order_id=order_id,
            order_number=order_number,
            success=True,
            previous_status=previous_status,
        )
