# pizzeria/routers/orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from pizzeria.core.auth import get_current_user, require_admin, require_auth, require_staff
from pizzeria.core.dependencies import get_order_service
from pizzeria.database import get_session
from pizzeria.models.user import User
from pizzeria.schemas.order import (
    NextStatusesRead,
    OrderCreate,
    OrderRead,
    OrderStatus,
    OrderStatusUpdate,
    OrderWithItemsRead,
    PaymentStatus,
    PaymentUpdate,
    StatusChangeRead,
    StatusTransitionResult,
    SweepResult,
)
from pizzeria.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


# -------- Customer-facing endpoints --------


@router.post(
    "",
    response_model=OrderWithItemsRead,
    status_code=201,
)
def place_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Place an order. Guests may order; signed-in customers get the order
    linked to their account.
    """
    return service.create_order(session, current_user, payload)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: OrderService = Depends(get_order_service),
    skip: int = 0,
    limit: int = 50,
):
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: OrderService = Depends(get_order_service),
):
    return service.get_user_order(session, current_user.id, order_id)


# -------- Staff endpoints --------


@router.post(
    "/sweep",
    response_model=SweepResult,
    dependencies=[Depends(require_admin)],
)
def run_sweep(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Apply automatic transitions (payment timeout, kitchen timings) now.
    Safe to call repeatedly.
    """
    return service.run_automatic_sweep(session)


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_staff)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    return service.list_all_orders(session, skip, limit, status)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_staff)],
)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(session, order_id)


@router.get(
    "/{order_id}/next-statuses",
    response_model=NextStatusesRead,
    dependencies=[Depends(require_staff)],
)
def get_next_statuses(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Statuses reachable from the current one for this delivery method,
    plus the estimated minutes until the next expected step.
    """
    return service.compute_valid_next_statuses(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=StatusTransitionResult,
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    actor: User = Depends(require_staff),
    service: OrderService = Depends(get_order_service),
):
    """
    Change an order's status.

      admin    : any non-final order, along the status graph
      delivery : ready -> delivering -> completed on delivery orders

    The response carries the updated order and, separately, how the
    customer notifications went. A failed notification does not fail
    the request.
    """
    return service.attempt_manual_transition(session, order_id, payload.status, actor)


@router.patch(
    "/{order_id}/payment",
    response_model=StatusTransitionResult,
    dependencies=[Depends(require_admin)],
)
def record_payment(
    order_id: uuid.UUID,
    payload: PaymentUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Record the payment outcome reported by the payment provider.
    """
    return service.record_payment(session, order_id, PaymentStatus(payload.payment_status))


@router.get(
    "/{order_id}/history",
    response_model=list[StatusChangeRead],
    dependencies=[Depends(require_admin)],
)
def get_order_history(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_status_history(session, order_id)
