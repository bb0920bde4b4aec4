"""
批量订单操作API

每个订单独立处理，结果逐个返回；部分失败不影响其他订单。
"""

from typing import Any

from fastapi import APIRouter, Depends

from orderhub.core.deps import get_batch_processor
from orderhub.schemas.batch import (
    BatchAssignDriver,
    BatchAssignSalesRep,
    BatchCancel,
    BatchOperationResult,
    BatchPreview,
    BatchPreviewRequest,
    BatchStatusChange,
)
from orderhub.services.batch_processor import BatchTransitionProcessor

router = APIRouter()


@router.post("/status", response_model=BatchOperationResult)
async def batch_change_status(
    batch_in: BatchStatusChange,
    processor: BatchTransitionProcessor = Depends(get_batch_processor),
) -> Any:
    """批量状态变更"""
    return await processor.batch_status_change(
        batch_in.order_ids,
        batch_in.new_status,
        notes=batch_in.notes,
        driver_id=batch_in.driver_id,
        notify_customers=batch_in.notify_customers,
    )


@router.post("/cancel", response_model=BatchOperationResult)
async def batch_cancel_orders(
    batch_in: BatchCancel,
    processor: BatchTransitionProcessor = Depends(get_batch_processor),
) -> Any:
    """批量取消（仅 pending / confirmed 的订单会被取消）"""
    return await processor.batch_cancel(
        batch_in.order_ids,
        reason=batch_in.reason,
        notify_customers=batch_in.notify_customers,
    )


@router.post("/assign-driver", response_model=BatchOperationResult)
async def batch_assign_driver(
    batch_in: BatchAssignDriver,
    processor: BatchTransitionProcessor = Depends(get_batch_processor),
) -> Any:
    return await processor.assign_driver(batch_in.order_ids, batch_in.driver_id)


@router.post("/assign-sales-rep", response_model=BatchOperationResult)
async def batch_assign_sales_rep(
    batch_in: BatchAssignSalesRep,
    processor: BatchTransitionProcessor = Depends(get_batch_processor),
) -> Any:
    return await processor.assign_sales_rep(batch_in.order_ids, batch_in.sales_rep_id)


@router.post("/preview", response_model=BatchPreview)
async def batch_preview(
    preview_in: BatchPreviewRequest,
    processor: BatchTransitionProcessor = Depends(get_batch_processor),
) -> Any:
    """预览批量操作，逐个返回能否处理及原因（不修改任何订单）"""
    return await processor.preview(
        preview_in.order_ids,
        preview_in.operation,
        target_status=preview_in.target_status,
    )
