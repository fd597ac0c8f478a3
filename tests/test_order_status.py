# tests/test_order_status.py
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from pizzeria.schemas.order import (
    DeliveryMethod,
    ItemSnapshot,
    OrderSnapshot,
    OrderStatus,
    PaymentStatus,
)
from pizzeria.services import order_status
from pizzeria.services.order_status import (
    NEXT_STATES,
    can_delivery_update_status,
    can_manually_update_status,
    estimate_preparation_time,
    generate_status_report,
    get_admin_alerts,
    get_automatic_transition,
    get_estimated_remaining_time,
    get_next_valid_states,
    is_valid_transition,
)

S = OrderStatus
NOW = datetime(2024, 10, 17, 19, 0, tzinfo=timezone.utc)

PIZZA = ItemSnapshot(product_name="Margherita", quantity=1, unit_price=10.0, base_type="tomato")
DRINK = ItemSnapshot(product_name="Cola", quantity=1, unit_price=2.5)


def snapshot(
    status: OrderStatus,
    minutes_ago: float,
    method: DeliveryMethod = DeliveryMethod.DELIVERY,
    items=(PIZZA,),
    total: float = 20.0,
    updated_minutes_ago: float | None = None,
) -> OrderSnapshot:
    created = NOW - timedelta(minutes=minutes_ago)
    updated = NOW - timedelta(minutes=updated_minutes_ago) if updated_minutes_ago is not None else created
    return OrderSnapshot(
        id=uuid.uuid4(),
        order_number="CMD2410170001",
        customer_name="Jean",
        customer_email=None,
        customer_phone=None,
        delivery_method=method,
        status=status,
        payment_status=PaymentStatus.UNPAID,
        total=total,
        created_at=created,
        updated_at=updated,
        items=tuple(items),
    )


# -------- Transition graph --------


@pytest.mark.parametrize("method", list(DeliveryMethod))
@pytest.mark.parametrize("status", list(OrderStatus))
def test_next_states_are_graph_edges(status, method):
    assert set(get_next_valid_states(status, method)) <= set(NEXT_STATES[status])


@pytest.mark.parametrize("status", [S.COMPLETED, S.CANCELLED])
def test_terminal_statuses_have_no_next_state(status):
    assert get_next_valid_states(status, DeliveryMethod.PICKUP) == []
    assert get_next_valid_states(status, DeliveryMethod.DELIVERY) == []


def test_ready_branches_on_delivery_method():
    assert get_next_valid_states("ready", "pickup") == [S.COMPLETED, S.CANCELLED]
    assert get_next_valid_states("ready", "delivery") == [S.DELIVERING, S.CANCELLED]


def test_invalid_input_yields_empty_list():
    assert get_next_valid_states("shipped", "delivery") == []
    assert get_next_valid_states("ready", "drone") == []
    assert get_next_valid_states(None, None) == []


def test_is_valid_transition_explains_method_only_edges():
    assert is_valid_transition(S.READY, S.COMPLETED, DeliveryMethod.PICKUP).allowed

    check = is_valid_transition(S.READY, S.COMPLETED, DeliveryMethod.DELIVERY)
    assert not check.allowed
    assert "pickup" in check.reason

    assert not is_valid_transition(S.CONFIRMED, S.COMPLETED, DeliveryMethod.PICKUP).allowed


# -------- Manual / courier rules --------


@pytest.mark.parametrize("role", ["customer", "delivery", "", "ADMIN"])
@pytest.mark.parametrize("current", list(OrderStatus))
def test_only_admins_update_manually(role, current):
    assert not can_manually_update_status(current, S.CANCELLED, role).allowed


@pytest.mark.parametrize("current", [S.COMPLETED, S.CANCELLED])
@pytest.mark.parametrize("target", list(OrderStatus))
def test_finished_orders_cannot_be_modified(current, target):
    check = can_manually_update_status(current, target, "admin")
    assert not check.allowed
    assert check.reason == "A finished order cannot be modified"


def test_completed_requires_ready_or_delivering():
    assert can_manually_update_status(S.READY, S.COMPLETED, "admin").allowed
    assert can_manually_update_status(S.DELIVERING, S.COMPLETED, "admin").allowed

    check = can_manually_update_status(S.CONFIRMED, S.COMPLETED, "admin")
    assert not check.allowed
    assert "ready" in check.reason


def test_manual_rule_does_not_check_the_graph():
    # pending -> ready is not an edge; only is_valid_transition rejects it
    assert can_manually_update_status(S.PENDING, S.READY, "admin").allowed
    assert not is_valid_transition(S.PENDING, S.READY, DeliveryMethod.DELIVERY).allowed


def test_courier_rule():
    assert can_delivery_update_status(S.READY, S.DELIVERING, DeliveryMethod.DELIVERY).allowed
    assert can_delivery_update_status(S.DELIVERING, S.COMPLETED, DeliveryMethod.DELIVERY).allowed
    assert not can_delivery_update_status(S.READY, S.COMPLETED, DeliveryMethod.DELIVERY).allowed
    assert not can_delivery_update_status(S.PREPARING, S.READY, DeliveryMethod.DELIVERY).allowed

    check = can_delivery_update_status(S.READY, S.DELIVERING, DeliveryMethod.PICKUP)
    assert not check.allowed
    assert check.reason == "This order is not a delivery order"


# -------- Timing --------


def test_preparation_time():
    assert estimate_preparation_time([]) == 15
    assert estimate_preparation_time([PIZZA]) == 15
    many = [
        ItemSnapshot(product_name="Regina", quantity=3, unit_price=12.0, base_type="tomato"),
        ItemSnapshot(product_name="Cola", quantity=2, unit_price=2.5),
    ]
    assert estimate_preparation_time(many) == 10 + 9 + 2


def test_preparation_time_grows_with_items():
    times = [
        estimate_preparation_time(
            [ItemSnapshot(product_name="Regina", quantity=q, unit_price=12.0, base_type="cream")]
        )
        for q in range(1, 10)
    ]
    assert times == sorted(times)


def test_abandoned_payment_is_cancelled():
    created = NOW - timedelta(minutes=35)
    assert get_automatic_transition(S.PENDING, [PIZZA], PaymentStatus.UNPAID, created, NOW) == S.CANCELLED


def test_paid_order_is_confirmed_immediately():
    assert get_automatic_transition(S.PENDING, [PIZZA], PaymentStatus.PAID, NOW, NOW) == S.CONFIRMED
    assert get_automatic_transition(S.PENDING, [PIZZA], PaymentStatus.UNPAID, NOW, NOW) is None


@pytest.mark.parametrize(
    "status, minutes, expected",
    [
        (S.CONFIRMED, 4, None),
        (S.CONFIRMED, 6, S.PREPARING),
        (S.PREPARING, 14, None),
        (S.PREPARING, 16, S.READY),
        (S.READY, 120, None),
        (S.DELIVERING, 120, None),
        (S.COMPLETED, 120, None),
    ],
)
def test_kitchen_automatic_transitions(status, minutes, expected):
    created = NOW - timedelta(minutes=minutes)
    assert get_automatic_transition(status, [PIZZA], PaymentStatus.PAID, created, NOW) == expected


def test_naive_timestamps_are_treated_as_utc():
    created = (NOW - timedelta(minutes=35)).replace(tzinfo=None)
    assert get_automatic_transition(S.PENDING, [], "unpaid", created, NOW) == S.CANCELLED


def test_remaining_time():
    def remaining(status, minutes, method=DeliveryMethod.DELIVERY):
        created = NOW - timedelta(minutes=minutes)
        return get_estimated_remaining_time(status, [PIZZA], method, created, NOW)

    assert remaining(S.PENDING, 1) == 2
    assert remaining(S.CONFIRMED, 2) == 3
    assert remaining(S.CONFIRMED, 10) == 0
    assert remaining(S.PREPARING, 5) == 10
    assert remaining(S.READY, 0, DeliveryMethod.PICKUP) == 0
    assert remaining(S.READY, 0) == 5
    assert remaining(S.DELIVERING, 0) == 25
    assert remaining(S.COMPLETED, 0) is None


# -------- Dashboard --------


def test_admin_alerts():
    orders = [
        snapshot(S.PENDING, 20),
        snapshot(S.PENDING, 10),
        snapshot(S.PREPARING, 26),
        snapshot(S.READY, 16, DeliveryMethod.DELIVERY),
        snapshot(S.READY, 16, DeliveryMethod.PICKUP),
        snapshot(S.READY, 31, DeliveryMethod.PICKUP),
        snapshot(S.DELIVERING, 50),
        snapshot(S.COMPLETED, 500),
    ]

    alerts = get_admin_alerts(orders, NOW)

    assert [(a.type, a.message) for a in alerts] == [
        ("warning", "Order pending for 20 minutes"),
        ("error", "Preparation late by 11 minutes"),
        ("warning", "Order ready but not dispatched for 16 minutes"),
        ("warning", "Order waiting for pickup for 31 minutes"),
        ("error", "Delivery in progress for 50 minutes"),
    ]
    assert alerts[0].order_id == str(orders[0].id)


def test_status_report():
    orders = [
        snapshot(S.COMPLETED, 60, total=20.0, updated_minutes_ago=40),
        snapshot(S.COMPLETED, 60, total=30.5, updated_minutes_ago=20),
        snapshot(S.PENDING, 5, total=12.0),
    ]

    report = generate_status_report(orders)

    assert report.total_orders == 3
    assert set(report.status_breakdown) == set(OrderStatus)
    assert report.status_breakdown[S.COMPLETED] == 2
    assert report.status_breakdown[S.CANCELLED] == 0
    assert report.revenue_by_status[S.COMPLETED] == 50.5
    assert report.avg_processing_minutes == pytest.approx(30.0)


def test_status_report_without_completed_orders():
    report = generate_status_report([])
    assert report.total_orders == 0
    assert report.avg_processing_minutes == 0.0


def test_constants_match_rules():
    assert order_status.PAYMENT_TIMEOUT_MINUTES == 30
    assert order_status.KITCHEN_ACK_MINUTES == 5
