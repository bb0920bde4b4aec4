"""V1 API 路由聚合"""
from fastapi import APIRouter

from orderhub.api.api_v1.endpoints import batch_orders, orders

api_router = APIRouter()

# 批量路由必须先于 /orders/{order_id} 注册
api_router.include_router(batch_orders.router, prefix="/orders/batch", tags=["批量订单操作"])
api_router.include_router(orders.router, prefix="/orders", tags=["订单管理"])
