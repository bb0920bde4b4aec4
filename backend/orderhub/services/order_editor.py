"""
订单编辑 - 履约开始前修改明细数量并重算金额

- 仅 pending / confirmed / approved 状态可编辑
- qty_ordered = 0 表示删除该明细
- 修改后的明细：line_total = unit_price × qty_ordered（单价按下单时固定）
  该行原有的折扣和税额按旧数量计算，修改数量后清零，由定价模块按需重新计算
- subtotal = Σ line_total；整单折扣、税额不变；total = subtotal - discount + tax
- 全部校验通过后才修改，任何一项不合法都不写入
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence

from orderhub.core.exceptions import InvalidEdit, ItemNotFound, OrderNotEditable
from orderhub.db.base import utcnow
from orderhub.models.enums import OrderStatus
from orderhub.models.order import Order
from orderhub.models.order_item import OrderItem
from orderhub.services import transition_table

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """金额统一保留两位小数"""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class ItemChange:
    item_id: int
    qty_ordered: int


def is_editable(order: Order) -> bool:
    return transition_table.is_editable_status(OrderStatus(order.status))


class OrderEditor:

    def apply_edit(
        self,
        order: Order,
        item_changes: Sequence[ItemChange],
        notes: Optional[str] = None,
        requested_delivery_date: Optional[date] = None,
    ) -> Order:
        """
        应用一次编辑（订单的 items 必须已加载）

        Raises:
            OrderNotEditable: 订单已开始履约
            ItemNotFound: 明细不属于该订单
            InvalidEdit: 重复明细、删除全部明细、或金额不合法
        """
        if not is_editable(order):
            raise OrderNotEditable(OrderStatus(order.status).value, order_id=order.id)

        items_by_id: Dict[int, OrderItem] = {item.id: item for item in order.items}

        seen = set()
        for change in item_changes:
            if change.item_id in seen:
                raise InvalidEdit(f"明细ID {change.item_id} 在一次编辑中出现多次", order_id=order.id)
            seen.add(change.item_id)
            if change.item_id not in items_by_id:
                raise ItemNotFound(change.item_id, order_id=order.id)
            if change.qty_ordered < 0:
                raise InvalidEdit(f"明细ID {change.item_id} 的数量不能为负数", order_id=order.id)

        # 先算出完整结果，再统一写入
        new_qty = {change.item_id: change.qty_ordered for change in item_changes}
        removed: List[OrderItem] = []
        line_totals: Dict[int, Decimal] = {}
        for item in order.items:
            if item.id in new_qty:
                qty = new_qty[item.id]
                if qty == 0:
                    removed.append(item)
                    continue
                line_totals[item.id] = to_money(Decimal(str(item.unit_price)) * qty)
            else:
                line_totals[item.id] = to_money(item.line_total)

        if not line_totals:
            raise InvalidEdit("订单至少需要保留一条明细", order_id=order.id)

        subtotal = to_money(sum(line_totals.values(), Decimal("0")))
        discount = to_money(order.discount_amount)
        tax = to_money(order.tax_amount)
        total = to_money(subtotal - discount + tax)

        if total < 0:
            raise InvalidEdit(f"修改后总额为负数（折扣 {discount} 超过明细合计 {subtotal}）", order_id=order.id)
        if total < to_money(order.paid_amount):
            raise InvalidEdit(f"修改后总额 {total} 低于已付金额 {to_money(order.paid_amount)}", order_id=order.id)

        # ===== 写入 =====
        now = utcnow()
        for item in removed:
            order.items.remove(item)
        for item in order.items:
            if item.id in new_qty:
                item.qty_ordered = new_qty[item.id]
                item.discount_amount = Decimal("0.00")
                item.tax_amount = Decimal("0.00")
                item.line_total = line_totals[item.id]
                item.updated_at = now

        order.subtotal_amount = subtotal
        order.total_amount = total
        if notes is not None:
            order.notes = notes
        if requested_delivery_date is not None:
            order.requested_delivery_date = requested_delivery_date
        order.updated_at = now

        logger.info(
            f"订单 {order.order_number} 已编辑: 修改 {len(new_qty) - len(removed)} 行, "
            f"删除 {len(removed)} 行, 合计 {subtotal}, 总额 {total}"
        )
        return order
