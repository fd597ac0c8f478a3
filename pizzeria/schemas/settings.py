# pizzeria/schemas/settings.py
from typing import Literal

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel, Field


class NotificationSettings(SQLModel):
    """
    Admin-editable notification configuration.

    Immutable value: the admin surface replaces it wholesale (PUT),
    validation happens here at the boundary. Defaults mean
    "notifications effectively disabled".
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    # General
    notifications_enabled: bool = False

    # Email
    email_notifications_enabled: bool = False
    smtp_host: str | None = None
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_secure: bool = False
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from_name: str | None = None
    email_from_address: str | None = None
    admin_email: str | None = None

    # SMS
    sms_notifications_enabled: bool = False
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None

    # Per-status switches
    notify_on_confirmed: bool = True
    notify_on_preparing: bool = True
    notify_on_ready: bool = True
    notify_on_delivering: bool = True
    notify_on_completed: bool = True
    notify_on_cancelled: bool = True
    notify_on_payment_failed: bool = True


class PromotionSettings(SQLModel):
    """
    "Buy N, get M free" pizza promotion, configurable per delivery method.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    promotions_enabled: bool = False

    delivery_promotion_enabled: bool = False
    delivery_buy_count: int = Field(default=2, ge=1)
    delivery_get_count: int = Field(default=1, ge=0)

    pickup_promotion_enabled: bool = False
    pickup_buy_count: int = Field(default=1, ge=1)
    pickup_get_count: int = Field(default=1, ge=0)

    promotion_description: str | None = None

    @model_validator(mode="after")
    def enabled_promotions_give_something(self) -> "PromotionSettings":
        if self.delivery_promotion_enabled and self.delivery_get_count < 1:
            raise ValueError("delivery_get_count must be >= 1 when enabled")
        if self.pickup_promotion_enabled and self.pickup_get_count < 1:
            raise ValueError("pickup_get_count must be >= 1 when enabled")
        return self


class NotificationTestRequest(SQLModel):
    """
    Admin dry-run of a channel configuration.
    """

    model_config = ConfigDict(extra="forbid")

    channel: Literal["email", "sms"]
