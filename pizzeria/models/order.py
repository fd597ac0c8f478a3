# pizzeria/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Customer order.

    Lifecycle:
      - created once at checkout with status 'pending'
      - status only changes through validated transitions
      - never deleted; cancellation is a status
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="Human-readable number, e.g. CMD2410170042",
    )

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    customer_name: str
    customer_email: str | None = None
    customer_phone: str | None = None

    delivery_address: str | None = Field(
        default=None,
        description="Null for pickup orders",
    )

    # delivery | pickup
    delivery_method: str = Field(index=True)

    # pending | payment_failed | confirmed | preparing | ready
    # | delivering | completed | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    payment_method: str = Field(default="card")

    # unpaid | paid | failed
    payment_status: str = Field(default="unpaid")

    subtotal: float = Field(description="Sum of lines before promotion")
    discount: float = Field(default=0.0, description="Promotion discount")
    delivery_fee: float = Field(default=0.0)
    total: float = Field(description="subtotal - discount + delivery_fee")

    notes: str | None = None

    # Courier who took the order out for delivery
    deliverer_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=_utcnow,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="Last status change (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. Product data is snapshotted at checkout.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    # Null for menu lines
    product_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="products.id",
        index=True,
    )

    variant_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="product_variants.id",
    )

    menu_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="menus.id",
    )

    product_name: str
    variant_name: str | None = None

    # Non-null base type marks a pizza (drives preparation time)
    base_type: str | None = None
    category_slug: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        description="Base price + variant surcharge at time of order",
    )

    total_price: float


class OrderStatusChange(SQLModel, table=True):
    """
    Append-only audit row, written in the same transaction as the
    status update it describes.
    """

    __tablename__ = "order_status_changes"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    old_status: str
    new_status: str

    changed_at: datetime = Field(default_factory=_utcnow)

    automatic: bool = Field(default=False)

    # Acting user for manual changes
    triggered_by: uuid.UUID | None = Field(default=None)
