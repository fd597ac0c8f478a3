# pizzeria/repositories/order_repo.py
import uuid
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, col, func, select

from pizzeria.models.order import Order, OrderItem, OrderStatusChange
from pizzeria.schemas.order import (
    ACTIVE_STATUSES,
    DeliveryMethod,
    ItemSnapshot,
    OrderSnapshot,
    OrderStatus,
    PaymentStatus,
)


def to_snapshot(order: Order, items: list[OrderItem]) -> OrderSnapshot:
    return OrderSnapshot(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        delivery_method=DeliveryMethod(order.delivery_method),
        status=OrderStatus(order.status),
        payment_status=PaymentStatus(order.payment_status),
        total=order.total,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=tuple(
            ItemSnapshot(
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                base_type=it.base_type,
            )
            for it in items
        ),
    )


class OrderRepository:
    """
    Data access layer for orders, order_items and order_status_changes.

    NOTE:
      - No commits here; order creation and status changes are multi-step
        transactions. The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(col(Order.created_at).desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: OrderStatus | None = None,
    ) -> list[Order]:
        stmt = select(Order)
        if status is not None:
            stmt = stmt.where(Order.status == status.value)
        stmt = stmt.order_by(col(Order.created_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_active(self, session: Session) -> list[Order]:
        """Orders not yet completed or cancelled, oldest first."""
        stmt = (
            select(Order)
            .where(col(Order.status).in_([s.value for s in ACTIVE_STATUSES]))
            .order_by(col(Order.created_at))
        )
        return list(session.exec(stmt).all())

    def list_every(self, session: Session) -> list[Order]:
        return list(session.exec(select(Order)).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_by_number(self, session: Session, order_number: str) -> Order | None:
        stmt = select(Order).where(Order.order_number == order_number)
        return session.exec(stmt).first()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    def update_status_if_matches(
        self,
        session: Session,
        order_id: uuid.UUID,
        expected: OrderStatus,
        new: OrderStatus,
        **values,
    ) -> bool:
        """
        Compare-and-set status write:

            UPDATE orders SET status = :new ... WHERE id = :id AND status = :expected

        Returns False when another writer changed the status first.
        Extra column values (e.g. deliverer_id) are written in the same statement.
        """
        stmt = (
            update(Order)
            .where(col(Order.id) == order_id, col(Order.status) == expected.value)
            .values(
                status=new.value,
                updated_at=datetime.now(timezone.utc),
                **values,
            )
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1

    def count_active_deliveries(self, session: Session, deliverer_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(
                Order.deliverer_id == deliverer_id,
                Order.status == OrderStatus.DELIVERING.value,
            )
        )
        return session.exec(stmt).one()

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Snapshots ----

    def load_snapshot(self, session: Session, order_id: uuid.UUID) -> OrderSnapshot | None:
        """Order + items read fresh from the database, or None."""
        order = self.get_by_id(session, order_id)
        if order is None:
            return None
        session.refresh(order)
        return to_snapshot(order, self.list_items_for_order(session, order.id))

    def snapshots(self, session: Session, orders: list[Order]) -> list[OrderSnapshot]:
        """Snapshots for many orders, items loaded in one query."""
        if not orders:
            return []

        stmt = select(OrderItem).where(col(OrderItem.order_id).in_([o.id for o in orders]))
        items_by_order: dict[uuid.UUID, list[OrderItem]] = defaultdict(list)
        for item in session.exec(stmt).all():
            items_by_order[item.order_id].append(item)

        return [to_snapshot(order, items_by_order[order.id]) for order in orders]

    # ---- Status history ----

    def add_status_change(
        self,
        session: Session,
        change: OrderStatusChange,
    ) -> OrderStatusChange:
        session.add(change)
        session.flush()
        return change

    def list_status_changes(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderStatusChange]:
        stmt = (
            select(OrderStatusChange)
            .where(OrderStatusChange.order_id == order_id)
            .order_by(col(OrderStatusChange.changed_at))
        )
        return list(session.exec(stmt).all())
