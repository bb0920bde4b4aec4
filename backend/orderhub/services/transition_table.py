"""
订单状态转换表

    pending → confirmed → approved → picking → picked → loaded → delivering → delivered
       ↓          ↓                                                      ↓
   cancelled  cancelled                                               partial

partial / returned 由退货子系统产生，本模块把它们当作合法的当前状态，
但不会从它们发起任何转换。
"""

from typing import Dict, FrozenSet, List

from orderhub.models.enums import OrderStatus


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.APPROVED, OrderStatus.CANCELLED}),
    OrderStatus.APPROVED: frozenset({OrderStatus.PICKING}),
    OrderStatus.PICKING: frozenset({OrderStatus.PICKED}),
    OrderStatus.PICKED: frozenset({OrderStatus.LOADED}),
    OrderStatus.LOADED: frozenset({OrderStatus.DELIVERING}),
    OrderStatus.DELIVERING: frozenset({OrderStatus.DELIVERED, OrderStatus.PARTIAL}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.PARTIAL: frozenset(),
    OrderStatus.RETURNED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

# 尚未开始履约，可以修改明细
EDITABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.APPROVED})

DRIVER_ASSIGNABLE_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.APPROVED,
    OrderStatus.PICKED,
    OrderStatus.LOADED,
})

# 这些状态下不能再更换业务员
SALES_REP_LOCKED_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.RETURNED,
})


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return OrderStatus(to_status) in TRANSITIONS[OrderStatus(from_status)]


def allowed_targets(from_status: OrderStatus) -> List[OrderStatus]:
    """当前状态可以转换到的目标状态（按生命周期顺序）"""
    targets = TRANSITIONS[OrderStatus(from_status)]
    return [s for s in OrderStatus if s in targets]


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def is_cancellable(status: OrderStatus) -> bool:
    return OrderStatus(status) in CANCELLABLE_STATUSES


def is_editable_status(status: OrderStatus) -> bool:
    return OrderStatus(status) in EDITABLE_STATUSES
