# pizzeria/models/settings.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class NotificationSettingsRecord(SQLModel, table=True):
    """
    Single-row table holding the notification configuration.

    Fields mirror `schemas.settings.NotificationSettings` one to one.
    Absence of the row means notifications are disabled.
    """

    __tablename__ = "notification_settings"

    id: int | None = Field(default=None, primary_key=True)

    notifications_enabled: bool = False

    email_notifications_enabled: bool = False
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from_name: str | None = None
    email_from_address: str | None = None
    admin_email: str | None = None

    sms_notifications_enabled: bool = False
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None

    notify_on_confirmed: bool = True
    notify_on_preparing: bool = True
    notify_on_ready: bool = True
    notify_on_delivering: bool = True
    notify_on_completed: bool = True
    notify_on_cancelled: bool = True
    notify_on_payment_failed: bool = True

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class PromotionSettingsRecord(SQLModel, table=True):
    """
    Single-row table holding the pizza promotion configuration.
    """

    __tablename__ = "promotion_settings"

    id: int | None = Field(default=None, primary_key=True)

    promotions_enabled: bool = False

    delivery_promotion_enabled: bool = False
    delivery_buy_count: int = 2
    delivery_get_count: int = 1

    pickup_promotion_enabled: bool = False
    pickup_buy_count: int = 1
    pickup_get_count: int = 1

    promotion_description: str | None = None

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
