"""状态历史记录器 - 订单审计轨迹的唯一写入方"""

from typing import Optional, Protocol

from orderhub.db.base import utcnow
from orderhub.models.enums import OrderStatus
from orderhub.models.order import Order
from orderhub.models.status_history import StatusHistoryEntry


class HistorySink(Protocol):
    def add(self, instance) -> None: ...


class HistoryRecorder:
    """
    只追加的历史记录器

    由状态机在每次转换被接受后调用，不单独使用。
    sink 通常是当前事务的 AsyncSession（session.add 为同步方法）。
    """

    def __init__(self, sink: HistorySink):
        self.sink = sink

    def record(
        self,
        order: Order,
        from_status: Optional[OrderStatus],
        to_status: OrderStatus,
        changed_by: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StatusHistoryEntry:
        entry = StatusHistoryEntry(
            order_id=order.id,
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            notes=notes,
            created_at=utcnow(),
        )
        self.sink.add(entry)
        return entry
