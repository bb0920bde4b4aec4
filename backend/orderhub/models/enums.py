"""
订单相关枚举

状态字段使用封闭的枚举类型，而不是自由字符串，
这样非法状态在代码中无法表示，转换表也可以写成枚举对上的完整映射。
"""

import enum

from sqlalchemy import Enum as SAEnum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    APPROVED = "approved"
    PICKING = "picking"
    PICKED = "picked"
    LOADED = "loaded"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    PARTIAL = "partial"
    RETURNED = "returned"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @property
    def display(self) -> str:
        return _STATUS_DISPLAY.get(self, self.value)


_STATUS_DISPLAY = {
    OrderStatus.PENDING: "待确认",
    OrderStatus.CONFIRMED: "已确认",
    OrderStatus.APPROVED: "已审核",
    OrderStatus.PICKING: "拣货中",
    OrderStatus.PICKED: "已拣货",
    OrderStatus.LOADED: "已装车",
    OrderStatus.DELIVERING: "配送中",
    OrderStatus.DELIVERED: "已送达",
    OrderStatus.PARTIAL: "部分送达",
    OrderStatus.RETURNED: "已退货",
    OrderStatus.CANCELLED: "已取消",
}


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"

    def __str__(self) -> str:
        return self.value


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    TENANT_ADMIN = "tenant_admin"
    SUPERVISOR = "supervisor"
    WAREHOUSE = "warehouse"
    DRIVER = "driver"
    SALES_REP = "sales_rep"

    def __str__(self) -> str:
        return self.value


def enum_column_type(enum_cls, name: str) -> SAEnum:
    """以字符串值存储枚举（不依赖数据库原生枚举类型）"""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
