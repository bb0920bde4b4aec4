# models包初始化文件

from orderhub.models.enums import OrderStatus, PaymentStatus, UserRole
from orderhub.models.user import User
from orderhub.models.order import Order
from orderhub.models.order_item import OrderItem
from orderhub.models.status_history import StatusHistoryEntry

__all__ = [
    "OrderStatus",
    "PaymentStatus",
    "UserRole",
    "User",
    "Order",
    "OrderItem",
    "StatusHistoryEntry",
]
