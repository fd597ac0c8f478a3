# pizzeria/services/order_status.py
"""
Order status state machine.

Pure functions over the status vocabulary in `pizzeria.schemas.order`:
  - legal transition graph (per delivery method)
  - manual / courier transition rules
  - time-based automatic transitions
  - remaining-time estimates and admin alerts (advisory only)

Nothing here touches the database; callers pass order data in.
"""
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Literal, Protocol

from pizzeria.schemas.order import (
    TERMINAL_STATUSES,
    DeliveryMethod,
    OrderSnapshot,
    OrderStatus,
    PaymentStatus,
    TransitionCheck,
)
from pizzeria.schemas.stats import AdminAlert, StatusReport

logger = logging.getLogger(__name__)

S = OrderStatus

# Directed graph of legal transitions. Method-specific edges are filtered
# in get_next_valid_states().
NEXT_STATES: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    S.PENDING: (S.CONFIRMED, S.PAYMENT_FAILED, S.CANCELLED),
    S.PAYMENT_FAILED: (S.PENDING, S.CANCELLED),
    S.CONFIRMED: (S.PREPARING, S.CANCELLED),
    S.PREPARING: (S.READY, S.CANCELLED),
    S.READY: (S.DELIVERING, S.COMPLETED, S.CANCELLED),
    S.DELIVERING: (S.COMPLETED, S.CANCELLED),
    S.COMPLETED: (),
    S.CANCELLED: (),
}

# Edges that only exist for one delivery method: (from, to) -> method
METHOD_ONLY_EDGES: dict[tuple[OrderStatus, OrderStatus], DeliveryMethod] = {
    (S.READY, S.DELIVERING): DeliveryMethod.DELIVERY,
    (S.READY, S.COMPLETED): DeliveryMethod.PICKUP,
}

# Automatic transition thresholds (minutes since creation)
PAYMENT_TIMEOUT_MINUTES = 30
KITCHEN_ACK_MINUTES = 5

# Preparation estimate
BASE_PREPARATION_MINUTES = 10
MINUTES_PER_PIZZA = 3
MINUTES_PER_OTHER_ITEM = 1
MIN_PREPARATION_MINUTES = 15

# Remaining-time estimates (minutes)
PENDING_CONFIRMATION_MINUTES = 2
COURIER_PICKUP_MINUTES = 5
DELIVERY_MINUTES = 25

# Admin alert thresholds (minutes)
PENDING_ALERT_MINUTES = 15
PREPARATION_GRACE_MINUTES = 10
READY_PICKUP_ALERT_MINUTES = 30
READY_DELIVERY_ALERT_MINUTES = 15
DELIVERING_ALERT_MINUTES = 45


class PreparedItem(Protocol):
    base_type: str | None
    quantity: int


def coerce_status(value: object) -> OrderStatus | None:
    """Return the OrderStatus for a raw value, or None if it is not one."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def coerce_method(value: object) -> DeliveryMethod | None:
    if isinstance(value, DeliveryMethod):
        return value
    try:
        return DeliveryMethod(value)
    except ValueError:
        return None


# -------- Transition graph --------


def get_next_valid_states(current_status, delivery_method) -> list[OrderStatus]:
    """
    Statuses directly reachable from `current_status` for this delivery
    method. Bad input is logged and yields an empty list.
    """
    current = coerce_status(current_status)
    method = coerce_method(delivery_method)
    if current is None or method is None:
        logger.warning(
            "get_next_valid_states: invalid input status=%r method=%r",
            current_status,
            delivery_method,
        )
        return []

    return [
        target
        for target in NEXT_STATES[current]
        if METHOD_ONLY_EDGES.get((current, target), method) == method
    ]


def is_valid_transition(current_status, target_status, delivery_method) -> TransitionCheck:
    """
    Graph-edge rule: is `target_status` adjacent to `current_status`?
    """
    current = coerce_status(current_status)
    target = coerce_status(target_status)
    if current is None or target is None:
        return TransitionCheck(False, "Unknown order status")

    if target in get_next_valid_states(current, delivery_method):
        return TransitionCheck(True)

    if (current, target) in METHOD_ONLY_EDGES:
        method = METHOD_ONLY_EDGES[(current, target)]
        return TransitionCheck(
            False,
            f"Transition {current.value} -> {target.value} is only available "
            f"for {method.value} orders",
        )
    return TransitionCheck(
        False,
        f"Transition {current.value} -> {target.value} is not allowed",
    )


def can_manually_update_status(current_status, target_status, actor_role: str) -> TransitionCheck:
    """
    Admin rule for manual status changes.

    NOTE:
      This does not consult the transition graph. Callers that need graph
      adjacency must also run is_valid_transition().
    """
    if actor_role != "admin":
        return TransitionCheck(False, "Insufficient permissions")

    current = coerce_status(current_status)
    target = coerce_status(target_status)
    if current is None or target is None:
        return TransitionCheck(False, "Unknown order status")

    if current in TERMINAL_STATUSES:
        return TransitionCheck(False, "A finished order cannot be modified")

    if target == S.COMPLETED and current not in (S.READY, S.DELIVERING):
        return TransitionCheck(False, "The order must be ready before it can be completed")

    return TransitionCheck(True)


def can_delivery_update_status(current_status, target_status, delivery_method) -> TransitionCheck:
    """
    Courier rule: delivery orders only, and only
    ready -> delivering or delivering -> completed.
    """
    if coerce_method(delivery_method) != DeliveryMethod.DELIVERY:
        return TransitionCheck(False, "This order is not a delivery order")

    edge = (coerce_status(current_status), coerce_status(target_status))
    if edge in ((S.READY, S.DELIVERING), (S.DELIVERING, S.COMPLETED)):
        return TransitionCheck(True)
    return TransitionCheck(False, "Transition not allowed for couriers")


# -------- Timing --------


def estimate_preparation_time(items: Iterable[PreparedItem]) -> int:
    """
    Minutes the kitchen needs: a base time plus a per-unit increment,
    heavier for pizzas (items with a base type).
    """
    total = BASE_PREPARATION_MINUTES
    for item in items:
        if item.base_type:
            total += item.quantity * MINUTES_PER_PIZZA
        else:
            total += item.quantity * MINUTES_PER_OTHER_ITEM
    return max(total, MIN_PREPARATION_MINUTES)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def order_age_minutes(created_at: datetime, now: datetime | None = None) -> float:
    now = _as_utc(now or datetime.now(timezone.utc))
    return (now - _as_utc(created_at)).total_seconds() / 60


def get_automatic_transition(
    current_status,
    items: Iterable[PreparedItem],
    payment_status,
    created_at: datetime,
    now: datetime | None = None,
) -> OrderStatus | None:
    """
    Status the order should move to on its own, or None.

      pending    -> confirmed  as soon as payment is 'paid'
      pending    -> cancelled  after the payment timeout
      confirmed  -> preparing  after the kitchen acknowledgement delay
      preparing  -> ready      after the estimated preparation time
    """
    current = coerce_status(current_status)
    age = order_age_minutes(created_at, now)

    if current == S.PENDING:
        if payment_status == PaymentStatus.PAID:
            return S.CONFIRMED
        if age > PAYMENT_TIMEOUT_MINUTES:
            return S.CANCELLED
    elif current == S.CONFIRMED:
        if age > KITCHEN_ACK_MINUTES:
            return S.PREPARING
    elif current == S.PREPARING:
        if age > estimate_preparation_time(items):
            return S.READY

    return None


def get_estimated_remaining_time(
    current_status,
    items: Iterable[PreparedItem],
    delivery_method,
    created_at: datetime,
    now: datetime | None = None,
) -> float | None:
    """Minutes until the next expected transition (display only)."""
    current = coerce_status(current_status)
    age = order_age_minutes(created_at, now)

    if current == S.PENDING:
        return PENDING_CONFIRMATION_MINUTES
    if current == S.CONFIRMED:
        return max(KITCHEN_ACK_MINUTES - age, 0)
    if current == S.PREPARING:
        return max(estimate_preparation_time(items) - age, 0)
    if current == S.READY:
        if coerce_method(delivery_method) == DeliveryMethod.PICKUP:
            return 0
        return COURIER_PICKUP_MINUTES
    if current == S.DELIVERING:
        return DELIVERY_MINUTES
    return None


# -------- Dashboard --------


def get_admin_alerts(
    orders: Iterable[OrderSnapshot],
    now: datetime | None = None,
) -> list[AdminAlert]:
    """
    Warnings / errors for orders stuck too long in a status.
    Purely advisory: nothing is mutated.
    """
    alerts: list[AdminAlert] = []

    for order in orders:
        age = order_age_minutes(order.created_at, now)
        status = coerce_status(order.status)

        def alert(kind: Literal["warning", "error"], message: str) -> None:
            alerts.append(
                AdminAlert(
                    type=kind,
                    message=message,
                    order_id=str(order.id),
                    order_number=order.order_number,
                )
            )

        if status == S.PENDING and age > PENDING_ALERT_MINUTES:
            alert("warning", f"Order pending for {round(age)} minutes")

        elif status == S.PREPARING:
            expected = estimate_preparation_time(order.items)
            if age > expected + PREPARATION_GRACE_MINUTES:
                alert("error", f"Preparation late by {round(age - expected)} minutes")

        elif status == S.READY:
            is_pickup = coerce_method(order.delivery_method) == DeliveryMethod.PICKUP
            limit = READY_PICKUP_ALERT_MINUTES if is_pickup else READY_DELIVERY_ALERT_MINUTES
            if age > limit:
                if is_pickup:
                    alert("warning", f"Order waiting for pickup for {round(age)} minutes")
                else:
                    alert("warning", f"Order ready but not dispatched for {round(age)} minutes")

        elif status == S.DELIVERING and age > DELIVERING_ALERT_MINUTES:
            alert("error", f"Delivery in progress for {round(age)} minutes")

    return alerts


def generate_status_report(orders: Iterable[OrderSnapshot]) -> StatusReport:
    """
    Order counts and revenue per status, plus the average processing
    time (creation to last update) of completed orders.
    """
    breakdown = {status: 0 for status in OrderStatus}
    revenue = {status: 0.0 for status in OrderStatus}
    processing_total = 0.0
    completed = 0
    total_orders = 0

    for order in orders:
        total_orders += 1
        status = coerce_status(order.status)
        if status is None:
            logger.warning("Order %s has unknown status %r", order.id, order.status)
            continue
        breakdown[status] += 1
        revenue[status] = round(revenue[status] + order.total, 2)

        if status == S.COMPLETED:
            processing_total += order_age_minutes(order.created_at, order.updated_at)
            completed += 1

    return StatusReport(
        total_orders=total_orders,
        status_breakdown=breakdown,
        revenue_by_status=revenue,
        avg_processing_minutes=processing_total / completed if completed else 0.0,
    )
