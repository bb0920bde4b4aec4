"""
订单状态机测试（不依赖数据库）
"""
import itertools

import pytest

from orderhub.core.exceptions import (
    DriverRequired,
    InvalidTransition,
    NotCancellable,
    OrderTerminal,
)
from orderhub.models.enums import OrderStatus
from orderhub.models.order import Order
from orderhub.services.history import HistoryRecorder
from orderhub.services.state_machine import OrderStateMachine, TransitionSideEffects
from orderhub.services.transition_table import TERMINAL_STATUSES, TRANSITIONS

from tests.test_transition_table import LEGAL_EDGES


class ListSink:
    def __init__(self):
        self.entries = []

    def add(self, instance):
        self.entries.append(instance)


def make_order(status: OrderStatus, driver_id=None) -> Order:
    return Order(id=1, tenant_id=1, order_number="ORD-1", status=status, driver_id=driver_id)


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def machine(sink):
    return OrderStateMachine(HistoryRecorder(sink))


def expected_error(from_status: OrderStatus, to_status: OrderStatus):
    if from_status in TERMINAL_STATUSES:
        return OrderTerminal
    if to_status == OrderStatus.CANCELLED:
        return NotCancellable
    return InvalidTransition


ILLEGAL_PAIRS = [
    (s, t) for s, t in itertools.product(OrderStatus, repeat=2)
    if t not in TRANSITIONS[s]
]


@pytest.mark.parametrize("from_status,to_status", LEGAL_EDGES)
def test_legal_edge_applies_and_records_history(machine, sink, from_status, to_status):
    order = make_order(from_status, driver_id=7 if to_status == OrderStatus.LOADED else None)

    entry = machine.transition(order, to_status, actor=42, notes="ok")

    assert order.status == to_status
    assert sink.entries == [entry]
    assert entry.from_status == from_status
    assert entry.to_status == to_status
    assert entry.changed_by == 42
    assert entry.notes == "ok"
    assert entry.order_id == order.id


@pytest.mark.parametrize("from_status,to_status", ILLEGAL_PAIRS)
def test_illegal_pair_rejected_without_mutation(machine, sink, from_status, to_status):
    order = make_order(from_status, driver_id=7)

    with pytest.raises(expected_error(from_status, to_status)):
        machine.transition(order, to_status, actor=42)

    assert order.status == from_status
    assert order.updated_at is None
    assert sink.entries == []


def test_rejection_is_idempotent(machine, sink):
    order = make_order(OrderStatus.APPROVED)

    with pytest.raises(NotCancellable) as first:
        machine.transition(order, OrderStatus.CANCELLED)
    with pytest.raises(NotCancellable) as second:
        machine.transition(order, OrderStatus.CANCELLED)

    assert first.value.code == second.value.code
    assert first.value.message == second.value.message
    assert order.status == OrderStatus.APPROVED
    assert sink.entries == []


@pytest.mark.parametrize("actor,notes", [(None, None), (1, "重新确认"), (99, "")])
def test_delivered_order_is_terminal(machine, actor, notes):
    order = make_order(OrderStatus.DELIVERED)

    with pytest.raises(OrderTerminal) as exc_info:
        machine.transition(order, OrderStatus.CONFIRMED, actor=actor, notes=notes)

    assert exc_info.value.code == "order_terminal"
    assert order.status == OrderStatus.DELIVERED


def test_loaded_requires_driver(machine, sink):
    order = make_order(OrderStatus.PICKED)

    with pytest.raises(DriverRequired):
        machine.transition(order, OrderStatus.LOADED)

    assert order.status == OrderStatus.PICKED
    assert order.driver_id is None
    assert sink.entries == []


def test_loaded_with_driver_in_same_call(machine, sink):
    order = make_order(OrderStatus.PICKED)

    machine.transition(order, OrderStatus.LOADED, side_effects=TransitionSideEffects(driver_id=5))

    assert order.status == OrderStatus.LOADED
    assert order.driver_id == 5
    assert len(sink.entries) == 1


def test_invalid_transition_lists_allowed_targets(machine):
    order = make_order(OrderStatus.PENDING)

    with pytest.raises(InvalidTransition) as exc_info:
        machine.transition(order, OrderStatus.DELIVERED)

    assert exc_info.value.from_status == "pending"
    assert exc_info.value.to_status == "delivered"
    assert "confirmed" in exc_info.value.message


def test_cancel_stamps_cancellation_fields(machine):
    order = make_order(OrderStatus.CONFIRMED)

    machine.transition(order, OrderStatus.CANCELLED, actor=3, notes="客户取消")

    assert order.cancelled_at is not None
    assert order.cancelled_by == 3
    assert order.cancel_reason == "客户取消"


def test_delivered_stamps_delivered_at(machine):
    order = make_order(OrderStatus.DELIVERING)

    machine.transition(order, OrderStatus.DELIVERED)

    assert order.delivered_at is not None
    assert order.updated_at == order.delivered_at


def test_validate_has_no_side_effects():
    order = make_order(OrderStatus.PICKED)

    OrderStateMachine.validate(order, OrderStatus.LOADED, TransitionSideEffects(driver_id=9))

    assert order.status == OrderStatus.PICKED
    assert order.driver_id is None
