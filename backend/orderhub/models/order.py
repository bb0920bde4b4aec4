"""
订单模型

金额关系：total_amount = subtotal_amount - discount_amount + tax_amount
已付金额 paid_amount 不得超过 total_amount（由收款对账维护，本模块的写入也不得破坏）
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, Date, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship

from orderhub.db.base import Base, utcnow
from orderhub.models.enums import OrderStatus, PaymentStatus, enum_column_type


class Order(Base):
    """订单"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True, comment="租户ID")

    # 订单号，如 ORD-1001
    order_number = Column(String(50), unique=True, nullable=False, index=True, comment="订单号")

    customer_id = Column(Integer, index=True, comment="客户ID")
    sales_rep_id = Column(Integer, ForeignKey("users.id"), comment="业务员ID")
    driver_id = Column(Integer, ForeignKey("users.id"), comment="司机ID")
    created_by_user_id = Column(Integer, ForeignKey("users.id"), comment="下单人ID")

    status = Column(
        enum_column_type(OrderStatus, "order_status"),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
        comment="订单状态",
    )
    payment_status = Column(
        enum_column_type(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.UNPAID,
        comment="付款状态（仅展示，不影响状态转换）",
    )

    # 金额
    subtotal_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="明细合计")
    discount_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="整单折扣")
    tax_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="税额")
    total_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="应付总额")
    paid_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="已付金额")

    notes = Column(Text, comment="备注")
    delivery_notes = Column(Text, comment="配送备注")
    requested_delivery_date = Column(Date, comment="期望送达日期")

    delivered_at = Column(DateTime, comment="送达时间")
    cancelled_at = Column(DateTime, comment="取消时间")
    cancelled_by = Column(Integer, ForeignKey("users.id"), comment="取消人")
    cancel_reason = Column(Text, comment="取消原因")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # 乐观锁版本号，每次 UPDATE 自动递增并校验
    version = Column(Integer, nullable=False, default=1)

    # 明细和状态历史（按插入顺序）
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    status_history = relationship(
        "StatusHistoryEntry",
        back_populates="order",
        cascade="save-update, merge",
        order_by="StatusHistoryEntry.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status})>"

    @property
    def status_display(self) -> str:
        """状态显示名称"""
        if isinstance(self.status, OrderStatus):
            return self.status.display
        return str(self.status)
