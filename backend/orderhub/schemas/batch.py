"""批量操作Schema"""
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from orderhub.models.enums import OrderStatus


class BatchOrderIds(BaseModel):
    order_ids: List[int] = Field(..., description="订单ID列表（按此顺序处理）")


class BatchStatusChange(BatchOrderIds):
    """批量状态变更"""
    new_status: OrderStatus = Field(..., description="目标状态")
    notes: Optional[str] = Field(None, description="备注")
    driver_id: Optional[int] = Field(None, description="同时指派的司机ID")
    notify_customers: bool = Field(False, description="是否通知客户")


class BatchCancel(BatchOrderIds):
    """批量取消"""
    reason: Optional[str] = Field(None, description="取消原因")
    notify_customers: bool = Field(False, description="是否通知客户")


class BatchAssignDriver(BatchOrderIds):
    driver_id: int = Field(..., description="司机ID")


class BatchAssignSalesRep(BatchOrderIds):
    sales_rep_id: int = Field(..., description="业务员ID")


class BatchResultItem(BaseModel):
    """单个订单的处理结果"""
    order_id: int
    order_number: str = "N/A"
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None
    previous_status: Optional[OrderStatus] = None


class BatchOperationResult(BaseModel):
    """批量操作汇总（不落库）"""
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    results: List[BatchResultItem] = []

    @classmethod
    def from_items(cls, items: List[BatchResultItem]) -> "BatchOperationResult":
        succeeded = sum(1 for item in items if item.success)
        return cls(
            processed=len(items),
            succeeded=succeeded,
            failed=len(items) - succeeded,
            results=items,
        )


PreviewOperation = Literal["status_change", "cancel", "assign_driver"]


class BatchPreviewRequest(BatchOrderIds):
    """批量操作预览（只检查，不写入）"""
    operation: PreviewOperation = Field(..., description="操作类型")
    target_status: Optional[OrderStatus] = Field(None, description="状态变更的目标状态")


class BatchPreviewItem(BaseModel):
    order_id: int
    order_number: str = "N/A"
    current_status: Optional[OrderStatus] = None
    total_amount: Optional[Decimal] = None
    can_process: bool
    reason: Optional[str] = None


class BatchPreview(BaseModel):
    total: int = 0
    can_process: int = 0
    cannot_process: int = 0
    orders: List[BatchPreviewItem] = []

    @classmethod
    def from_items(cls, items: List[BatchPreviewItem]) -> "BatchPreview":
        can_process = sum(1 for item in items if item.can_process)
        return cls(
            total=len(items),
            can_process=can_process,
            cannot_process=len(items) - can_process,
            orders=items,
        )
