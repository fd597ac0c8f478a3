# pizzeria/schemas/stats.py
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

from pizzeria.schemas.order import OrderStatus


class AdminAlert(SQLModel):
    """
    Advisory record for an order stuck too long in a status.
    """
    model_config = ConfigDict(extra="forbid")

    type: Literal["warning", "error", "info"]
    message: str
    order_id: str
    order_number: str


class StatusReport(SQLModel):
    """
    Order counts and revenue per status.
    """
    model_config = ConfigDict(extra="forbid")

    total_orders: int
    status_breakdown: dict[OrderStatus, int]
    revenue_by_status: dict[OrderStatus, float]
    avg_processing_minutes: float


class AdminDashboard(SQLModel):
    """
    Full payload for the admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    alerts: list[AdminAlert]
    report: StatusReport
