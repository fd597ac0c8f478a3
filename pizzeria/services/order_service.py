# pizzeria/services/order_service.py
import logging
import random
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from pizzeria.models.order import Order, OrderItem, OrderStatusChange
from pizzeria.models.user import User
from pizzeria.repositories.order_repo import OrderRepository
from pizzeria.schemas.order import (
    AppliedTransition,
    DeliveryMethod,
    NextStatusesRead,
    NotificationSummary,
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderStatus,
    OrderWithItemsRead,
    ACTIVE_STATUSES,
    PaymentStatus,
    StatusChangeEvent,
    StatusChangeRead,
    StatusTransitionResult,
    SweepResult,
)
from pizzeria.schemas.stats import AdminAlert, AdminDashboard, StatusReport
from pizzeria.services import order_status
from pizzeria.services.cart_service import CartService
from pizzeria.services.status_change import StatusChangeOrchestrator

logger = logging.getLogger(__name__)

S = OrderStatus

ORDER_NUMBER_PREFIX = "CMD"
ORDER_NUMBER_ATTEMPTS = 5


def merge_summaries(summaries: list[NotificationSummary]) -> NotificationSummary:
    merged = NotificationSummary()
    for s in summaries:
        merged.email_sent += s.email_sent
        merged.email_failed += s.email_failed
        merged.sms_sent += s.sms_sent
        merged.sms_failed += s.sms_failed
        merged.errors.extend(s.errors)
    return merged


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create orders priced by the cart service (status 'pending')
      - Manual status changes (admin / courier) through the state machine
      - Payment outcomes and the periodic automatic sweep
      - Admin dashboard, status history and listings

    Every status write is a compare-and-set on the expected current status,
    committed together with its history row, before notifications go out.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_service: CartService,
        orchestrator: StatusChangeOrchestrator,
        strict_transitions: bool = True,
        max_active_deliveries: int = 2,
    ):
        self.order_repo = order_repo
        self.cart_service = cart_service
        self.orchestrator = orchestrator
        self.strict_transitions = strict_transitions
        self.max_active_deliveries = max_active_deliveries

    # -------- Checkout --------

    def create_order(
        self,
        session: Session,
        user: User | None,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Place an order.

        Steps:
          1. Delivery orders need an address.
          2. Price the lines (catalogue prices, promotion, delivery fee).
          3. Create Order row (status='pending', payment 'unpaid').
          4. Create OrderItem rows with product snapshots.
          5. Commit and return the full order.
        """
        is_delivery = payload.delivery_method == DeliveryMethod.DELIVERY
        if is_delivery and not payload.delivery_address:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Delivery address is required for delivery orders",
            )

        quote = self.cart_service.quote(
            session,
            payload.delivery_method,
            payload.items,
            payload.menus,
        )

        order = Order(
            order_number=self._generate_order_number(session),
            user_id=user.id if user else None,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            delivery_address=payload.delivery_address if is_delivery else None,
            delivery_method=payload.delivery_method.value,
            status=S.PENDING.value,
            payment_method=payload.payment_method,
            payment_status=PaymentStatus.UNPAID.value,
            subtotal=quote.subtotal,
            discount=quote.discount,
            delivery_fee=quote.delivery_fee,
            total=quote.total,
            notes=payload.notes,
        )
        order = self.order_repo.create_order(session, order)

        items = self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    menu_id=line.menu_id,
                    product_name=line.name,
                    variant_name=line.variant_name,
                    base_type=line.base_type,
                    category_slug=line.category_slug,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=round(line.line_total, 2),
                )
                for line in quote.lines
            ],
        )

        session.commit()
        session.refresh(order)
        logger.info("Order %s placed (%.2f)", order.order_number, order.total)

        return self._build_order_with_items_dto(order, items)

    def _generate_order_number(self, session: Session) -> str:
        """CMD + yymmdd + 4 random digits, retried on collision."""
        date_part = datetime.now(timezone.utc).strftime("%y%m%d")
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            candidate = f"{ORDER_NUMBER_PREFIX}{date_part}{random.randint(0, 9999):04d}"
            if self.order_repo.get_by_number(session, candidate) is None:
                return candidate
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not allocate an order number, please retry",
        )

    # -------- Status transitions --------

    def compute_valid_next_statuses(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> NextStatusesRead:
        order = self._get_order_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return NextStatusesRead(
            order_id=order.id,
            current_status=order.status,
            next_statuses=order_status.get_next_valid_states(order.status, order.delivery_method),
            estimated_remaining_minutes=order_status.get_estimated_remaining_time(
                order.status,
                items,
                order.delivery_method,
                order.created_at,
            ),
        )

    def attempt_manual_transition(
        self,
        session: Session,
        order_id: uuid.UUID,
        target: OrderStatus,
        actor: User,
    ) -> StatusTransitionResult:
        """
        Staff status change.

          admin    -> role / terminal rule, then the transition graph
                      (when strict transitions are on)
          delivery -> courier rule and the active-delivery limit;
                      the courier is assigned on ready -> delivering

        Raises
        ------
        HTTPException(404): order not found
        HTTPException(403): actor may not change this order
        HTTPException(400): transition rejected by the rules
        HTTPException(409): status changed concurrently
        """
        order = self._get_order_or_404(session, order_id)
        current = OrderStatus(order.status)
        extra: dict[str, object] = {}

        if actor.role == "delivery":
            self._check_courier_transition(session, order, current, target, actor)
            if target == S.DELIVERING:
                extra["deliverer_id"] = actor.id
        else:
            check = order_status.can_manually_update_status(current, target, actor.role)
            if not check.allowed and actor.role != "admin":
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=check.reason)
            if not check.allowed:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=check.reason)

            if current == target:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Order is already {current.value}",
                )

            if self.strict_transitions:
                check = order_status.is_valid_transition(current, target, order.delivery_method)
                if not check.allowed:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=check.reason)

        event = self._write_transition(
            session,
            order.id,
            current,
            target,
            automatic=False,
            triggered_by=actor.id,
            **extra,
        )
        if event is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Order status was changed by someone else, reload and retry",
            )
        session.commit()
        logger.info("Order %s: %s -> %s by %s", order.order_number, current.value, target.value, actor.id)

        notifications = self.orchestrator.handle(session, event)
        session.refresh(order)
        return StatusTransitionResult(
            order=OrderRead.model_validate(order),
            notifications=notifications,
        )

    def _check_courier_transition(
        self,
        session: Session,
        order: Order,
        current: OrderStatus,
        target: OrderStatus,
        courier: User,
    ) -> None:
        check = order_status.can_delivery_update_status(current, target, order.delivery_method)
        if not check.allowed:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=check.reason)

        if target == S.DELIVERING:
            active = self.order_repo.count_active_deliveries(session, courier.id)
            if active >= self.max_active_deliveries:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Maximum of {self.max_active_deliveries} active deliveries reached",
                )
        elif order.deliverer_id is not None and order.deliverer_id != courier.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="This order is assigned to another courier",
            )

    def _write_transition(
        self,
        session: Session,
        order_id: uuid.UUID,
        current: OrderStatus,
        target: OrderStatus,
        automatic: bool,
        triggered_by: uuid.UUID | None = None,
        **values,
    ) -> StatusChangeEvent | None:
        """
        Compare-and-set the status and append the history row, uncommitted.
        None when the order is no longer in `current`.
        """
        if not self.order_repo.update_status_if_matches(session, order_id, current, target, **values):
            return None

        change = self.order_repo.add_status_change(
            session,
            OrderStatusChange(
                order_id=order_id,
                old_status=current.value,
                new_status=target.value,
                automatic=automatic,
                triggered_by=triggered_by,
            ),
        )
        return StatusChangeEvent(
            order_id=order_id,
            old_status=current,
            new_status=target,
            timestamp=change.changed_at,
            automatic=automatic,
            triggered_by=triggered_by,
        )

    # -------- Payment --------

    def record_payment(
        self,
        session: Session,
        order_id: uuid.UUID,
        outcome: PaymentStatus,
    ) -> StatusTransitionResult:
        """
        Store a payment outcome and apply the payment-driven transitions:

          pending        + paid   -> confirmed
          pending        + failed -> payment_failed
          payment_failed + paid   -> pending -> confirmed

        A late `paid` is stored on any other active order without a
        status change.

        Raises
        ------
        HTTPException(404):
            If the order does not exist.
        HTTPException(409):
            If the outcome does not fit the order status (e.g. `failed`
            on a confirmed order, anything on a finished order).
        """
        order = self._get_order_or_404(session, order_id)
        current = OrderStatus(order.status)

        awaiting_payment = current in (S.PENDING, S.PAYMENT_FAILED)
        late_payment = outcome == PaymentStatus.PAID and current in ACTIVE_STATUSES
        if not (awaiting_payment or late_payment):
            logger.warning(
                "Ignoring payment %s for order %s in status %s",
                outcome.value,
                order.order_number,
                current.value,
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Payment {outcome.value} cannot be recorded on a {current.value} order",
            )

        order.payment_status = outcome.value
        self.order_repo.update_order(session, order)

        if outcome == PaymentStatus.PAID:
            path = {S.PENDING: [S.CONFIRMED], S.PAYMENT_FAILED: [S.PENDING, S.CONFIRMED]}
        else:
            path = {S.PENDING: [S.PAYMENT_FAILED]}

        events: list[StatusChangeEvent] = []
        for target in path.get(current, []):
            event = self._write_transition(session, order.id, current, target, automatic=True)
            if event is None:
                session.rollback()
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Order status was changed concurrently, retry",
                )
            events.append(event)
            current = target

        session.commit()
        logger.info("Order %s payment %s", order.order_number, outcome.value)

        notifications = merge_summaries([self.orchestrator.handle(session, e) for e in events])
        session.refresh(order)
        return StatusTransitionResult(
            order=OrderRead.model_validate(order),
            notifications=notifications,
        )

    # -------- Automatic sweep --------

    def run_automatic_sweep(self, session: Session, now: datetime | None = None) -> SweepResult:
        """
        Re-evaluate every active order against the automatic rules.

        Each applied transition is committed before its notifications are
        sent; re-running the sweep without a newly crossed threshold is a
        no-op.
        """
        snapshots = self.order_repo.snapshots(session, self.order_repo.list_active(session))
        applied: list[AppliedTransition] = []

        for snap in snapshots:
            target = order_status.get_automatic_transition(
                snap.status,
                snap.items,
                snap.payment_status,
                snap.created_at,
                now,
            )
            if target is None:
                continue

            event = self._write_transition(session, snap.id, snap.status, target, automatic=True)
            if event is None:
                logger.info("Order %s changed during sweep, skipped", snap.order_number)
                continue
            session.commit()

            applied.append(
                AppliedTransition(
                    order_id=snap.id,
                    order_number=snap.order_number,
                    old_status=snap.status,
                    new_status=target,
                    notifications=self.orchestrator.handle(session, event),
                )
            )

        if applied:
            logger.info("Sweep applied %d of %d active orders", len(applied), len(snapshots))
        return SweepResult(evaluated=len(snapshots), applied=applied)

    # -------- Dashboard / history --------

    def get_admin_alerts(self, session: Session, now: datetime | None = None) -> list[AdminAlert]:
        snapshots = self.order_repo.snapshots(session, self.order_repo.list_active(session))
        return order_status.get_admin_alerts(snapshots, now)

    def get_status_report(self, session: Session) -> StatusReport:
        snapshots = self.order_repo.snapshots(session, self.order_repo.list_every(session))
        return order_status.generate_status_report(snapshots)

    def get_dashboard(self, session: Session, now: datetime | None = None) -> AdminDashboard:
        return AdminDashboard(
            alerts=self.get_admin_alerts(session, now),
            report=self.get_status_report(session),
        )

    def get_status_history(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[StatusChangeRead]:
        order = self._get_order_or_404(session, order_id)
        return [
            StatusChangeRead.model_validate(change)
            for change in self.order_repo.list_status_changes(session, order.id)
        ]

    # -------- Listings --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return orders  # type: ignore[return-value]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        - 404 if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status_filter: OrderStatus | None = None,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_all(session, skip, limit, status_filter)
        return orders  # type: ignore[return-value]

    def get_order(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        order = self._get_order_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    # -------- Helpers --------

    def _get_order_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        return OrderWithItemsRead(
            **OrderRead.model_validate(order).model_dump(),
            items=[OrderItemRead.model_validate(it) for it in items],
        )
