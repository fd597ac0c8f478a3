# pizzeria/schemas/order.py
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field


class OrderStatus(str, Enum):
    """Closed set of order lifecycle states."""

    PENDING = "pending"
    PAYMENT_FAILED = "payment_failed"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERING = "delivering"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DeliveryMethod(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusInfo:
    label: str
    color: str
    description: str


# Static display configuration, one entry per status.
STATUS_INFO: dict[OrderStatus, StatusInfo] = {
    OrderStatus.PENDING: StatusInfo(
        label="Pending",
        color="yellow",
        description="Order created, waiting for payment confirmation",
    ),
    OrderStatus.PAYMENT_FAILED: StatusInfo(
        label="Payment failed",
        color="red",
        description="The payment could not be processed",
    ),
    OrderStatus.CONFIRMED: StatusInfo(
        label="Confirmed",
        color="blue",
        description="Payment accepted, order sent to the kitchen",
    ),
    OrderStatus.PREPARING: StatusInfo(
        label="Preparing",
        color="purple",
        description="The kitchen is preparing your order",
    ),
    OrderStatus.READY: StatusInfo(
        label="Ready",
        color="green",
        description="Order ready for pickup or delivery",
    ),
    OrderStatus.DELIVERING: StatusInfo(
        label="Out for delivery",
        color="orange",
        description="The courier is on the way to your address",
    ),
    OrderStatus.COMPLETED: StatusInfo(
        label="Completed",
        color="emerald",
        description="Order delivered successfully",
    ),
    OrderStatus.CANCELLED: StatusInfo(
        label="Cancelled",
        color="red",
        description="Order cancelled",
    ),
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)
ACTIVE_STATUSES: frozenset[OrderStatus] = frozenset(OrderStatus) - TERMINAL_STATUSES


# -------- Checkout payloads --------


class OrderItemCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    variant_id: uuid.UUID | None = None
    quantity: int = Field(gt=0)


class MenuLineCreate(SQLModel):
    """
    A composed menu ordered as one line; priced from the menus table.
    """

    model_config = ConfigDict(extra="forbid")

    menu_id: uuid.UUID
    quantity: int = Field(gt=0)


class OrderCreate(SQLModel):
    """
    Payload for placing an order.

    Backend derives:
      - order_number
      - status = 'pending', payment_status = 'unpaid'
      - subtotal / discount / delivery_fee / total from catalogue prices
        and the active promotion
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str
    customer_email: EmailStr | None = None
    customer_phone: str | None = None
    delivery_address: str | None = None
    delivery_method: DeliveryMethod
    payment_method: str = "card"
    notes: str | None = None
    items: list[OrderItemCreate] = Field(default_factory=list)
    menus: list[MenuLineCreate] = Field(default_factory=list)

    @field_validator("customer_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("customer_phone", "delivery_address", "notes")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


# -------- Read models --------


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    customer_name: str
    customer_email: str | None
    customer_phone: str | None
    delivery_address: str | None
    delivery_method: DeliveryMethod
    status: OrderStatus
    payment_method: str
    payment_status: PaymentStatus
    subtotal: float
    discount: float
    delivery_fee: float
    total: float
    notes: str | None
    user_id: uuid.UUID | None
    deliverer_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class OrderItemRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID | None
    variant_id: uuid.UUID | None
    menu_id: uuid.UUID | None = None
    product_name: str
    variant_name: str | None
    quantity: int
    unit_price: float
    total_price: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


# -------- Status changes --------


class OrderStatusUpdate(SQLModel):
    """
    Staff payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class NextStatusesRead(SQLModel):
    """
    Statuses an order can move to from where it is now.
    """

    order_id: uuid.UUID
    current_status: OrderStatus
    next_statuses: list[OrderStatus]
    estimated_remaining_minutes: float | None = None


class PaymentUpdate(SQLModel):
    """
    Payment outcome reported for an order.
    """

    model_config = ConfigDict(extra="forbid")

    payment_status: Literal["paid", "failed"]


@dataclass(frozen=True)
class TransitionCheck:
    """Outcome of a transition rule: never raised, always returned."""

    allowed: bool
    reason: str | None = None


@dataclass(frozen=True)
class ItemSnapshot:
    product_name: str
    quantity: int
    unit_price: float
    base_type: str | None = None


@dataclass(frozen=True)
class OrderSnapshot:
    """
    Order plus its items as loaded fresh from the database; the shape the
    state machine and the notification generator work on.
    """

    id: uuid.UUID
    order_number: str
    customer_name: str
    customer_email: str | None
    customer_phone: str | None
    delivery_method: DeliveryMethod
    status: OrderStatus
    payment_status: PaymentStatus
    total: float
    created_at: datetime
    updated_at: datetime
    items: tuple[ItemSnapshot, ...] = ()


@dataclass(frozen=True)
class StatusChangeEvent:
    """One status transition, as held by the in-process history."""

    order_id: uuid.UUID
    old_status: OrderStatus
    new_status: OrderStatus
    timestamp: datetime
    automatic: bool
    triggered_by: uuid.UUID | None = None


class StatusChangeRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    old_status: OrderStatus
    new_status: OrderStatus
    changed_at: datetime
    automatic: bool
    triggered_by: uuid.UUID | None


class NotificationSummary(SQLModel):
    """
    Per-channel tally for the notifications triggered by one transition.
    """

    email_sent: int = 0
    email_failed: int = 0
    sms_sent: int = 0
    sms_failed: int = 0
    errors: list[str] = Field(default_factory=list)


class StatusTransitionResult(SQLModel):
    """
    The status change itself succeeded; notification problems are
    reported on the side.
    """

    order: OrderRead
    notifications: NotificationSummary


class AppliedTransition(SQLModel):
    order_id: uuid.UUID
    order_number: str
    old_status: OrderStatus
    new_status: OrderStatus
    notifications: NotificationSummary


class SweepResult(SQLModel):
    evaluated: int
    applied: list[AppliedTransition]
