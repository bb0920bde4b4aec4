"""
单个订单工作单元测试（临时 SQLite 数据库）
"""
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from orderhub.core.exceptions import (
    ConcurrentModification,
    DriverInvalid,
    InvalidTransition,
    ItemNotFound,
    OrderNotFound,
    OrderTerminal,
)
from orderhub.models import Order, OrderItem, OrderStatus, StatusHistoryEntry
from orderhub.models.status_history import HistoryImmutableError
from orderhub.services.order_editor import ItemChange
from orderhub.services.order_service import Actor

from tests.conftest import OTHER_TENANT_ID, TENANT_ID


async def test_transition_commits_status_and_history(service, actor, create_order, load_order, dispatcher, sender):
    order_id = await create_order()

    order, entry = await service.transition(actor, order_id, OrderStatus.CONFIRMED, notes="电话确认")
    await dispatcher.drain()

    assert order.status == OrderStatus.CONFIRMED
    assert entry.id is not None
    stored = await load_order(order_id)
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.version == 2
    assert [(h.from_status, h.to_status) for h in stored.status_history] == [
        (None, OrderStatus.PENDING),
        (OrderStatus.PENDING, OrderStatus.CONFIRMED),
    ]
    assert stored.status_history[-1].notes == "电话确认"
    assert [(n.from_status, n.to_status) for n in sender.sent] == [("pending", "confirmed")]


async def test_transition_records_actor(service, users, create_order, load_order):
    order_id = await create_order()
    admin = Actor(tenant_id=TENANT_ID, user_id=users["admin"])

    await service.transition(admin, order_id, OrderStatus.CANCELLED, notes="客户取消")

    stored = await load_order(order_id)
    assert stored.status == OrderStatus.CANCELLED
    assert stored.cancelled_by == users["admin"]
    assert stored.cancel_reason == "客户取消"
    assert stored.status_history[-1].changed_by == users["admin"]


async def test_rejected_transition_writes_nothing(service, actor, create_order, load_order, dispatcher, sender):
    order_id = await create_order(status=OrderStatus.APPROVED)

    for _ in range(2):
        with pytest.raises(InvalidTransition):
            await service.transition(actor, order_id, OrderStatus.DELIVERED)
    await dispatcher.drain()

    stored = await load_order(order_id)
    assert stored.status == OrderStatus.APPROVED
    assert stored.version == 1
    assert len(stored.status_history) == 1
    assert sender.sent == []


async def test_delivered_to_confirmed_is_terminal(service, actor, create_order):
    order_id = await create_order(status=OrderStatus.DELIVERED)

    with pytest.raises(OrderTerminal):
        await service.transition(actor, order_id, OrderStatus.CONFIRMED, notes="重开")


async def test_other_tenant_order_not_found(service, create_order):
    order_id = await create_order(tenant_id=OTHER_TENANT_ID)

    with pytest.raises(OrderNotFound):
        await service.get_order(Actor(tenant_id=TENANT_ID), order_id)
    with pytest.raises(OrderNotFound):
        await service.transition(Actor(tenant_id=TENANT_ID), order_id, OrderStatus.CONFIRMED)


async def test_loaded_with_valid_driver(service, actor, users, create_order, load_order):
    order_id = await create_order(status=OrderStatus.PICKED)

    order, _ = await service.transition(actor, order_id, OrderStatus.LOADED, driver_id=users["driver"])

    assert order.driver_id == users["driver"]
    stored = await load_order(order_id)
    assert stored.status == OrderStatus.LOADED
    assert stored.driver_id == users["driver"]


@pytest.mark.parametrize("driver_key", ["inactive_driver", "foreign_driver", "sales_rep"])
async def test_loaded_with_invalid_driver(service, actor, users, create_order, load_order, driver_key):
    order_id = await create_order(status=OrderStatus.PICKED)

    with pytest.raises(DriverInvalid):
        await service.transition(actor, order_id, OrderStatus.LOADED, driver_id=users[driver_key])

    stored = await load_order(order_id)
    assert stored.status == OrderStatus.PICKED
    assert stored.driver_id is None


async def test_driver_set_on_any_legal_transition(service, actor, users, create_order, load_order):
    order_id = await create_order(status=OrderStatus.PICKING)

    order, _ = await service.transition(actor, order_id, OrderStatus.PICKED, driver_id=users["driver"])

    assert order.driver_id == users["driver"]
    stored = await load_order(order_id)
    assert stored.status == OrderStatus.PICKED
    assert stored.driver_id == users["driver"]


async def test_illegal_transition_reported_before_driver_check(service, actor, users, create_order, load_order):
    order_id = await create_order(status=OrderStatus.PENDING)

    with pytest.raises(InvalidTransition):
        await service.transition(actor, order_id, OrderStatus.DELIVERING, driver_id=users["sales_rep"])

    stored = await load_order(order_id)
    assert stored.status == OrderStatus.PENDING
    assert stored.driver_id is None


async def test_terminal_order_reported_before_driver_check(service, actor, users, create_order):
    order_id = await create_order(status=OrderStatus.DELIVERED)

    with pytest.raises(OrderTerminal):
        await service.transition(actor, order_id, OrderStatus.DELIVERING, driver_id=users["inactive_driver"])


async def test_edit_recomputes_and_persists(service, actor, create_order, load_order):
    order_id = await create_order(discount="5.00")
    stored = await load_order(order_id)
    first_item = stored.items[0].id

    order = await service.edit(actor, order_id, [ItemChange(item_id=first_item, qty_ordered=5)], notes="加量")

    assert order.subtotal_amount == Decimal("100.00")
    assert order.total_amount == Decimal("95.00")
    stored = await load_order(order_id)
    assert stored.items[0].qty_ordered == 5
    assert stored.items[0].line_total == Decimal("50.00")
    assert stored.notes == "加量"
    assert len(stored.status_history) == 1


async def test_edit_with_unknown_item_is_atomic(service, actor, create_order, load_order):
    order_id = await create_order()
    stored = await load_order(order_id)
    first_item = stored.items[0].id

    with pytest.raises(ItemNotFound):
        await service.edit(
            actor,
            order_id,
            [ItemChange(item_id=first_item, qty_ordered=9), ItemChange(item_id=999, qty_ordered=1)],
        )

    stored = await load_order(order_id)
    assert stored.items[0].qty_ordered == 3
    assert stored.subtotal_amount == Decimal("80.00")


async def test_edit_removal_deletes_line(service, actor, create_order, load_order, session_factory):
    order_id = await create_order()
    stored = await load_order(order_id)
    second_item = stored.items[1].id

    await service.edit(actor, order_id, [ItemChange(item_id=second_item, qty_ordered=0)])

    async with session_factory() as db:
        count = await db.scalar(select(func.count(OrderItem.id)).where(OrderItem.order_id == order_id))
    assert count == 1


async def test_list_history_in_insertion_order(service, actor, create_order):
    order_id = await create_order()
    for target in (OrderStatus.CONFIRMED, OrderStatus.APPROVED, OrderStatus.PICKING):
        await service.transition(actor, order_id, target)

    history = await service.list_history(actor, order_id)

    assert [h.to_status for h in history] == [
        OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.APPROVED, OrderStatus.PICKING,
    ]


async def test_stale_version_reported_as_concurrent_modification(service, actor, create_order, load_order, session_factory):
    order_id = await create_order()

    with pytest.raises(ConcurrentModification):
        async with service.order_unit_of_work(actor, order_id) as (db, order):
            # 另一个会话抢先提交，版本号递增
            async with session_factory() as other:
                competing = await other.get(Order, order_id)
                competing.notes = "其他进程"
                await other.commit()
            order.notes = "本次修改"

    stored = await load_order(order_id)
    assert stored.notes == "其他进程"
    assert stored.version == 2


async def test_history_rows_are_immutable(create_order, session_factory):
    order_id = await create_order()

    async with session_factory() as db:
        entry = await db.scalar(select(StatusHistoryEntry).where(StatusHistoryEntry.order_id == order_id))
        entry.notes = "篡改"
        with pytest.raises(HistoryImmutableError):
            await db.commit()
        await db.rollback()

        entry = await db.scalar(select(StatusHistoryEntry).where(StatusHistoryEntry.order_id == order_id))
        await db.delete(entry)
        with pytest.raises(HistoryImmutableError):
            await db.commit()
