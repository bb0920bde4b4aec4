"""
订单操作异常

所有异常都是调用方可处理的业务错误，不代表系统故障。
- 单笔操作：直接抛出第一个失败原因，不做任何写入
- 批量操作：由批处理器捕获，转换为每个订单的结果记录
"""

from typing import Optional


class OrderOperationError(Exception):
    """订单操作异常基类"""

    code = "order_error"
    http_status = 400

    def __init__(self, message: str = "", *, order_id: Optional[int] = None):
        self.message = message or self.code
        self.order_id = order_id
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidTransition(OrderOperationError):
    """状态转换表中不存在该转换"""

    code = "invalid_transition"
    http_status = 409

    def __init__(self, from_status: str, to_status: str, reason: str = "", **kwargs):
        self.from_status = from_status
        self.to_status = to_status
        message = f"不允许从 '{from_status}' 转换到 '{to_status}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, **kwargs)


class OrderTerminal(OrderOperationError):
    """订单已处于终态（已送达/已取消）"""

    code = "order_terminal"
    http_status = 409

    def __init__(self, status: str, **kwargs):
        self.status = status
        super().__init__(f"订单状态 '{status}' 为终态，不允许任何后续转换", **kwargs)


class DriverRequired(OrderOperationError):
    code = "driver_required"
    http_status = 400

    def __init__(self, **kwargs):
        super().__init__("装车（loaded）前必须指派司机", **kwargs)


class NotCancellable(OrderOperationError):
    code = "not_cancellable"
    http_status = 409

    def __init__(self, status: str, **kwargs):
        self.status = status
        super().__init__(f"状态为 '{status}' 的订单不能取消", **kwargs)


class OrderNotEditable(OrderOperationError):
    code = "order_not_editable"
    http_status = 409

    def __init__(self, status: str, **kwargs):
        self.status = status
        super().__init__(f"状态为 '{status}' 的订单已开始履约，不能修改", **kwargs)


class ItemNotFound(OrderOperationError):
    code = "item_not_found"
    http_status = 400

    def __init__(self, item_id: int, **kwargs):
        self.item_id = item_id
        super().__init__(f"明细ID {item_id} 不属于该订单", **kwargs)


class OrderNotFound(OrderOperationError):
    """订单不存在或不属于当前租户"""

    code = "not_found"
    http_status = 404

    def __init__(self, order_id: Optional[int] = None):
        super().__init__("订单不存在", order_id=order_id)


class DriverInvalid(OrderOperationError):
    """指派目标不是本租户内有效的司机/业务员"""

    code = "driver_invalid"
    http_status = 400

    def __init__(self, user_id: int, role: str = "driver", **kwargs):
        self.user_id = user_id
        self.role = role
        super().__init__(f"用户 {user_id} 不是本租户内有效的 {role}", **kwargs)


class DriverNotAssignable(OrderOperationError):
    code = "driver_not_assignable"
    http_status = 409

    def __init__(self, status: str, **kwargs):
        self.status = status
        super().__init__(f"状态为 '{status}' 的订单不能指派司机", **kwargs)


class InvalidEdit(OrderOperationError):
    code = "invalid_edit"
    http_status = 400


class ConcurrentModification(OrderOperationError):
    """订单在读取后被其他进程修改（乐观锁冲突）"""

    code = "concurrent_modification"
    http_status = 409

    def __init__(self, order_id: Optional[int] = None):
        super().__init__("订单已被其他操作修改，请刷新后重试", order_id=order_id)


class BatchValidationError(OrderOperationError):
    """批量请求本身不合法，整批不处理"""

    code = "batch_invalid"
    http_status = 422


class SalesRepInvalid(DriverInvalid):
    code = "sales_rep_invalid"

    def __init__(self, user_id: int, **kwargs):
        super().__init__(user_id, role="sales_rep", **kwargs)


class SalesRepNotAssignable(OrderOperationError):
    code = "sales_rep_not_assignable"
    http_status = 409

    def __init__(self, status: str, **kwargs):
        self.status = status
        super().__init__(f"状态为 '{status}' 的订单不能更换业务员", **kwargs)
