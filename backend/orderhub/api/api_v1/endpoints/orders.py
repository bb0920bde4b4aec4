"""
订单API
- 查询订单（含明细、状态历史、可用转换）
- 单个订单状态转换
- 编辑订单（履约开始前）
"""

from typing import Any, List

from fastapi import APIRouter, Depends

from orderhub.core.deps import get_actor, get_order_service
from orderhub.models.order import Order
from orderhub.schemas.order import (
    OrderResponse,
    OrderUpdate,
    StatusHistoryResponse,
    TransitionRequest,
    TransitionResponse,
)
from orderhub.services import transition_table
from orderhub.services.order_editor import ItemChange
from orderhub.services.order_service import Actor, OrderLifecycleService

router = APIRouter()


def build_order_response(order: Order) -> OrderResponse:
    """构建订单响应（附带当前状态允许的目标状态）"""
    response = OrderResponse.model_validate(order)
    response.allowed_transitions = transition_table.allowed_targets(order.status)
    return response


@router.get("/{order_id}", response_model=OrderResponse)
async def read_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_order_service),
) -> Any:
    """获取订单详情"""
    order = await service.get_order(actor, order_id)
    return build_order_response(order)


@router.get("/{order_id}/history", response_model=List[StatusHistoryResponse])
async def read_order_history(
    order_id: int,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_order_service),
) -> Any:
    """获取订单状态历史（按发生顺序）"""
    return await service.list_history(actor, order_id)


@router.post("/{order_id}/transition", response_model=TransitionResponse)
async def transition_order(
    order_id: int,
    transition_in: TransitionRequest,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_order_service),
) -> Any:
    """
    订单状态转换

    不合法的转换返回对应的错误码，订单保持不变
    """
    order, entry = await service.transition(
        actor,
        order_id,
        transition_in.target_status,
        notes=transition_in.notes,
        driver_id=transition_in.driver_id,
    )
    return TransitionResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        driver_id=order.driver_id,
        version=order.version,
        history_entry=StatusHistoryResponse.model_validate(entry),
    )


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    order_in: OrderUpdate,
    actor: Actor = Depends(get_actor),
    service: OrderLifecycleService = Depends(get_order_service),
) -> Any:
    """编辑订单明细数量、备注、期望送达日期"""
    order = await service.edit(
        actor,
        order_id,
        [ItemChange(item_id=item.item_id, qty_ordered=item.qty_ordered) for item in order_in.items],
        notes=order_in.notes,
        requested_delivery_date=order_in.requested_delivery_date,
    )
    return build_order_response(order)
