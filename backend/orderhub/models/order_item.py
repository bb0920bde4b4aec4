"""
订单明细模型 - 订单中的商品行
line_total = unit_price × qty_ordered - discount_amount + tax_amount
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship

from orderhub.db.base import Base, utcnow


class OrderItem(Base):
    """订单明细"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True, comment="商品ID")

    unit_price = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="单价")

    # 数量（开始履约后 picked/delivered/returned 不超过 ordered）
    qty_ordered = Column(Integer, nullable=False, comment="订购数量")
    qty_picked = Column(Integer, nullable=False, default=0, comment="已拣数量")
    qty_delivered = Column(Integer, nullable=False, default=0, comment="已送数量")
    qty_returned = Column(Integer, nullable=False, default=0, comment="退货数量")

    discount_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="行折扣")
    tax_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="行税额")
    line_total = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="行合计")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.product_id} x {self.qty_ordered} @ {self.unit_price}>"

