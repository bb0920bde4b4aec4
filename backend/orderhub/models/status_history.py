"""
订单状态历史 - 审计轨迹

只追加，不修改、不删除。每一次被接受的状态转换都对应一条记录。
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, event
from sqlalchemy.orm import relationship

from orderhub.db.base import Base, utcnow
from orderhub.models.enums import OrderStatus, enum_column_type


class StatusHistoryEntry(Base):
    """状态历史记录"""
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    # 初始记录（订单创建）没有来源状态
    from_status = Column(enum_column_type(OrderStatus, "history_from_status"), nullable=True)
    to_status = Column(enum_column_type(OrderStatus, "history_to_status"), nullable=False)

    # 系统发起的变更没有操作人
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=True, comment="操作人")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="status_history")

    def __repr__(self):
        return f"<StatusHistoryEntry {self.order_id}: {self.from_status} -> {self.to_status}>"


class HistoryImmutableError(RuntimeError):
    """尝试修改或删除已写入的历史记录"""


@event.listens_for(StatusHistoryEntry, "before_update")
def _reject_update(mapper, connection, target):
    raise HistoryImmutableError(f"状态历史 #{target.id} 不允许修改")


@event.listens_for(StatusHistoryEntry, "before_delete")
def _reject_delete(mapper, connection, target):
    raise HistoryImmutableError(f"状态历史 #{target.id} 不允许删除")
