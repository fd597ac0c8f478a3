# pizzeria/services/notification_service.py
import logging
from collections.abc import Callable, Iterable
from typing import Any, assert_never

from pizzeria.core.email_client import SmtpEmailClient
from pizzeria.core.sms_client import TwilioSmsClient
from pizzeria.schemas.notification import (
    BatchSendResult,
    NotificationChannel,
    NotificationMessage,
    SendResult,
)
from pizzeria.schemas.order import OrderStatus
from pizzeria.schemas.settings import NotificationSettings
from pizzeria.services.notification_content import NotificationContentGenerator

logger = logging.getLogger(__name__)

S = OrderStatus

EmailClientFactory = Callable[[NotificationSettings], Any]
SmsClientFactory = Callable[[NotificationSettings], Any]


def normalize_phone_number(number: str, default_country_code: str) -> str:
    """
    Numbers without a leading "+" are treated as national numbers:
    "06 12 34 56 78" -> "+33612345678".
    """
    cleaned = "".join(number.split())
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("0"):
        cleaned = cleaned[1:]
    return default_country_code + cleaned


class NotificationDispatcher:
    """
    Email / SMS delivery for order notifications.

    Responsibilities:
      - build each channel backend from NotificationSettings
        (a broken channel is logged and left disabled, never raised)
      - decide per status whether anything is sent
      - deliver messages and report one SendResult per message

    `initialize()` is idempotent and must be called with fresh settings
    before each batch: settings can change between calls.
    """

    def __init__(
        self,
        content: NotificationContentGenerator,
        email_client_factory: EmailClientFactory = SmtpEmailClient.from_settings,
        sms_client_factory: SmsClientFactory = TwilioSmsClient.from_settings,
        default_country_code: str = "+33",
    ):
        self.content = content
        self.email_client_factory = email_client_factory
        self.sms_client_factory = sms_client_factory
        self.default_country_code = default_country_code

        self.settings: NotificationSettings | None = None
        self.email_client = None
        self.sms_client = None
        self.email_error: str | None = None
        self.sms_error: str | None = None

    # ---- setup ----

    def initialize(self, settings: NotificationSettings | None) -> None:
        self.settings = settings
        self.email_client = None
        self.sms_client = None
        self.email_error = None
        self.sms_error = None

        if settings is None:
            logger.warning("No notification settings found; notifications disabled")
            self.email_error = self.sms_error = "Notification settings missing"
            return

        self._setup_email_client(settings)
        self._setup_sms_client(settings)

    def _setup_email_client(self, settings: NotificationSettings) -> None:
        if not settings.email_notifications_enabled:
            self.email_error = "Email notifications are disabled"
            return

        if not (settings.smtp_host and settings.smtp_user and settings.smtp_password):
            logger.warning("Incomplete email configuration")
            self.email_error = "Email configuration incomplete"
            return

        try:
            client = self.email_client_factory(settings)
            client.verify()
        except Exception as exc:
            logger.error("Email channel disabled: %s", exc)
            self.email_error = str(exc)
            return

        self.email_client = client
        logger.info("Email transport ready (%s:%s)", settings.smtp_host, settings.smtp_port)

    def _setup_sms_client(self, settings: NotificationSettings) -> None:
        if not settings.sms_notifications_enabled:
            self.sms_error = "SMS notifications are disabled"
            return

        if not (settings.twilio_account_sid and settings.twilio_auth_token):
            logger.warning("Incomplete Twilio configuration")
            self.sms_error = "Twilio configuration incomplete"
            return

        try:
            self.sms_client = self.sms_client_factory(settings)
        except Exception as exc:
            logger.error("SMS channel disabled: %s", exc)
            self.sms_error = str(exc)
            return

        logger.info("Twilio client ready")

    # ---- rules ----

    def should_notify_for_status(self, status: OrderStatus) -> bool:
        settings = self.settings
        if settings is None or not settings.notifications_enabled:
            return False

        match status:
            case S.CONFIRMED:
                return settings.notify_on_confirmed
            case S.PREPARING:
                return settings.notify_on_preparing
            case S.READY:
                return settings.notify_on_ready
            case S.DELIVERING:
                return settings.notify_on_delivering
            case S.COMPLETED:
                return settings.notify_on_completed
            case S.CANCELLED:
                return settings.notify_on_cancelled
            case S.PAYMENT_FAILED:
                return settings.notify_on_payment_failed
            case S.PENDING:
                return False
            case _:
                assert_never(status)

    # ---- delivery ----

    def send_email(self, message: NotificationMessage) -> SendResult:
        channel = NotificationChannel.EMAIL
        settings = self.settings

        if self.email_client is None or settings is None or not settings.email_notifications_enabled:
            return SendResult(success=False, error="Email not configured", channel=channel, recipient=message.recipient)

        if not self.should_notify_for_status(message.status):
            return SendResult(
                success=False,
                error="Notifications disabled for this status",
                channel=channel,
                recipient=message.recipient,
            )

        try:
            self.email_client.send_email(
                to_email=message.recipient,
                subject=self.content.email_subject(message.status, settings.email_from_name),
                text_body=message.body,
                html_body=self.content.email_html(message, settings.email_from_name),
            )
        except Exception as exc:
            logger.error("Email to %s failed: %s", message.recipient, exc)
            return SendResult(success=False, error=str(exc), channel=channel, recipient=message.recipient)

        logger.info("Email sent to %s (order %s)", message.recipient, message.order_id)
        return SendResult(success=True, channel=channel, recipient=message.recipient)

    def send_sms(self, message: NotificationMessage) -> SendResult:
        channel = NotificationChannel.SMS
        settings = self.settings

        if self.sms_client is None or settings is None or not settings.sms_notifications_enabled:
            return SendResult(success=False, error="SMS not configured", channel=channel, recipient=message.recipient)

        if not self.should_notify_for_status(message.status):
            return SendResult(
                success=False,
                error="Notifications disabled for this status",
                channel=channel,
                recipient=message.recipient,
            )

        if not settings.twilio_phone_number:
            return SendResult(
                success=False,
                error="Twilio sender number not configured",
                channel=channel,
                recipient=message.recipient,
            )

        to_number = normalize_phone_number(message.recipient, self.default_country_code)
        try:
            sid = self.sms_client.send_sms(to_number, message.body)
        except Exception as exc:
            logger.error("SMS to %s failed: %s", to_number, exc)
            return SendResult(success=False, error=str(exc), channel=channel, recipient=to_number)

        logger.info("SMS sent to %s (%s)", to_number, sid)
        return SendResult(success=True, channel=channel, recipient=to_number)

    def send(self, message: NotificationMessage) -> SendResult:
        match message.channel:
            case NotificationChannel.EMAIL:
                return self.send_email(message)
            case NotificationChannel.SMS:
                return self.send_sms(message)
            case _:
                assert_never(message.channel)

    def send_all(self, messages: Iterable[NotificationMessage]) -> BatchSendResult:
        """
        Send every message through its channel. Partial failure is expected:
        one result per message, in order, and nothing is raised.
        """
        return BatchSendResult(results=[self.send(message) for message in messages])

    # ---- admin checks ----

    def test_email_configuration(self, settings: NotificationSettings | None) -> SendResult:
        """Dry run of the email channel using the live initialization path."""
        self.initialize(settings)
        if self.email_client is None:
            return SendResult(
                success=False,
                error=self.email_error or "Email configuration missing or invalid",
                channel=NotificationChannel.EMAIL,
            )
        return SendResult(success=True, channel=NotificationChannel.EMAIL)

    def test_sms_configuration(self, settings: NotificationSettings | None) -> SendResult:
        """Dry run of the SMS channel: build the client, then fetch the account."""
        self.initialize(settings)
        if self.sms_client is None or not (settings and settings.twilio_phone_number):
            return SendResult(
                success=False,
                error=self.sms_error or "Twilio configuration missing or invalid",
                channel=NotificationChannel.SMS,
            )

        try:
            self.sms_client.verify()
        except Exception as exc:
            return SendResult(success=False, error=str(exc), channel=NotificationChannel.SMS)
        return SendResult(success=True, channel=NotificationChannel.SMS)
