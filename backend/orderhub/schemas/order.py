"""订单Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal

from orderhub.models.enums import OrderStatus, PaymentStatus


# ===== 明细 =====
class OrderItemResponse(BaseModel):
    """明细响应"""
    id: int
    order_id: int
    product_id: Optional[int] = None
    unit_price: Decimal
    qty_ordered: int
    qty_picked: int = 0
    qty_delivered: int = 0
    qty_returned: int = 0
    discount_amount: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    line_total: Decimal

    class Config:
        from_attributes = True


class ItemChangeInput(BaseModel):
    """编辑明细数量，qty_ordered = 0 表示删除该明细"""
    item_id: int = Field(..., description="明细ID")
    qty_ordered: int = Field(..., ge=0, description="新的订购数量")


# ===== 状态历史 =====
class StatusHistoryResponse(BaseModel):
    """状态历史响应"""
    id: int
    order_id: int
    from_status: Optional[OrderStatus] = None
    to_status: OrderStatus
    changed_by: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ===== 订单 =====
class OrderResponse(BaseModel):
    """订单响应（含明细、历史和当前可用的状态转换）"""
    id: int
    tenant_id: int
    order_number: str
    customer_id: Optional[int] = None
    sales_rep_id: Optional[int] = None
    driver_id: Optional[int] = None
    status: OrderStatus
    status_display: str = ""
    payment_status: PaymentStatus
    subtotal_amount: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    notes: Optional[str] = None
    delivery_notes: Optional[str] = None
    requested_delivery_date: Optional[date] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int
    items: List[OrderItemResponse] = []
    status_history: List[StatusHistoryResponse] = []
    allowed_transitions: List[OrderStatus] = []

    class Config:
        from_attributes = True


class OrderUpdate(BaseModel):
    """编辑订单（仅 pending / confirmed / approved）"""
    notes: Optional[str] = Field(None, description="备注")
    requested_delivery_date: Optional[date] = Field(None, description="期望送达日期")
    items: List[ItemChangeInput] = Field(default_factory=list, description="明细数量修改")


# ===== 状态转换 =====
class TransitionRequest(BaseModel):
    """单个订单状态转换"""
    target_status: OrderStatus = Field(..., description="目标状态")
    notes: Optional[str] = Field(None, description="备注（取消时作为取消原因）")
    driver_id: Optional[int] = Field(None, description="同时指派的司机ID")


class TransitionResponse(BaseModel):
    """状态转换结果"""
    order_id: int
    order_number: str
    status: OrderStatus
    driver_id: Optional[int] = None
    version: int
    history_entry: StatusHistoryResponse
