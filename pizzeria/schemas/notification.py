# pizzeria/schemas/notification.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from pizzeria.schemas.order import OrderStatus


class NotificationChannel(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class NotificationMessage(SQLModel):
    """
    One rendered message for one recipient. Never persisted: created per
    transition and handed straight to the dispatcher.
    """

    model_config = ConfigDict(frozen=True)

    channel: NotificationChannel
    recipient: str
    body: str
    order_id: uuid.UUID
    status: OrderStatus
    audience: Literal["customer", "admin"] = "customer"
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class SendResult(SQLModel):
    """
    Outcome of one delivery attempt (or of a configuration check).
    """

    success: bool
    error: str | None = None
    channel: NotificationChannel | None = None
    recipient: str | None = None


class BatchSendResult(SQLModel):
    """
    Results in the same order as the messages that were sent.
    """

    results: list[SendResult] = Field(default_factory=list)

    @property
    def email_results(self) -> list[SendResult]:
        return [r for r in self.results if r.channel == NotificationChannel.EMAIL]

    @property
    def sms_results(self) -> list[SendResult]:
        return [r for r in self.results if r.channel == NotificationChannel.SMS]

    @staticmethod
    def _count(results: list[SendResult], success: bool) -> int:
        return sum(1 for r in results if r.success is success)

    @property
    def email_sent(self) -> int:
        return self._count(self.email_results, True)

    @property
    def email_failed(self) -> int:
        return self._count(self.email_results, False)

    @property
    def sms_sent(self) -> int:
        return self._count(self.sms_results, True)

    @property
    def sms_failed(self) -> int:
        return self._count(self.sms_results, False)
