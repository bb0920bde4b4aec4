"""
订单状态机 - 校验并应用单个订单的状态转换

前置条件按顺序检查，第一个失败即返回：
1. 当前状态为终态（delivered / cancelled）→ OrderTerminal
2. 目标为 cancelled 且当前状态不在 {pending, confirmed} → NotCancellable
3. (当前, 目标) 不在转换表中 → InvalidTransition
4. 目标为 loaded，但订单和本次调用都没有司机 → DriverRequired

校验通过前不修改订单的任何字段。
"""

import logging
from dataclasses import dataclass
from typing import Optional

from orderhub.core.exceptions import (
    DriverRequired,
    InvalidTransition,
    NotCancellable,
    OrderTerminal,
)
from orderhub.db.base import utcnow
from orderhub.models.enums import OrderStatus
from orderhub.models.order import Order
from orderhub.models.status_history import StatusHistoryEntry
from orderhub.services import transition_table
from orderhub.services.history import HistoryRecorder

logger = logging.getLogger(__name__)


@dataclass
class TransitionSideEffects:
    """随转换一起应用的附带修改"""

    driver_id: Optional[int] = None


class OrderStateMachine:

    def __init__(self, recorder: HistoryRecorder):
        self.recorder = recorder

    @staticmethod
    def validate(
        order: Order,
        target_status: OrderStatus,
        side_effects: Optional[TransitionSideEffects] = None,
    ) -> None:
        """
        检查转换是否合法，不合法时抛出对应的 OrderOperationError

        Args:
            order: 已加载当前状态的订单
            target_status: 目标状态
            side_effects: 本次调用附带的修改（司机指派先于第 4 步生效）
        """
        current = OrderStatus(order.status)
        target = OrderStatus(target_status)

        if transition_table.is_terminal(current):
            raise OrderTerminal(current.value, order_id=order.id)

        if target == OrderStatus.CANCELLED and not transition_table.is_cancellable(current):
            raise NotCancellable(current.value, order_id=order.id)

        if not transition_table.can_transition(current, target):
            allowed = transition_table.allowed_targets(current)
            reason = (
                f"允许的目标状态: {', '.join(s.value for s in allowed)}"
                if allowed else f"'{current.value}' 不由本服务推进"
            )
            raise InvalidTransition(current.value, target.value, reason, order_id=order.id)

        if target == OrderStatus.LOADED:
            driver_id = side_effects.driver_id if side_effects and side_effects.driver_id else order.driver_id
            if not driver_id:
                raise DriverRequired(order_id=order.id)

    def transition(
        self,
        order: Order,
        target_status: OrderStatus,
        actor: Optional[int] = None,
        notes: Optional[str] = None,
        side_effects: Optional[TransitionSideEffects] = None,
    ) -> StatusHistoryEntry:
        """
        应用状态转换并追加历史记录

        调用方负责在同一个事务中提交（或回滚）本次修改。

        Returns:
            新追加的 StatusHistoryEntry

        Raises:
            OrderTerminal / NotCancellable / InvalidTransition / DriverRequired
        """
        target = OrderStatus(target_status)
        self.validate(order, target, side_effects)

        previous = OrderStatus(order.status)
        now = utcnow()

        if side_effects and side_effects.driver_id:
            order.driver_id = side_effects.driver_id

        order.status = target
        order.updated_at = now

        if target == OrderStatus.DELIVERED:
            order.delivered_at = now
        elif target == OrderStatus.CANCELLED:
            order.cancelled_at = now
            order.cancelled_by = actor
            order.cancel_reason = notes

        entry = self.recorder.record(
            order,
            from_status=previous,
            to_status=target,
            changed_by=actor,
            notes=notes,
        )
        logger.info(
            f"订单 {order.order_number} 状态变更: {previous.value} → {target.value}"
            f" (操作人: {actor if actor is not None else 'system'})"
        )
        return entry
