# pizzeria/services/status_change.py
import logging
import threading
import uuid

from sqlmodel import Session

from pizzeria.repositories.order_repo import OrderRepository
from pizzeria.repositories.settings_repo import SettingsRepository
from pizzeria.schemas.notification import BatchSendResult
from pizzeria.schemas.order import NotificationSummary, OrderStatus, StatusChangeEvent
from pizzeria.services.notification_content import NotificationContentGenerator
from pizzeria.services.notification_service import NotificationDispatcher
from pizzeria.services.status_history import StatusHistory

logger = logging.getLogger(__name__)


def summarize(batch: BatchSendResult) -> NotificationSummary:
    return NotificationSummary(
        email_sent=batch.email_sent,
        email_failed=batch.email_failed,
        sms_sent=batch.sms_sent,
        sms_failed=batch.sms_failed,
        errors=[
            f"{r.channel.value if r.channel else 'unknown'} to {r.recipient}: {r.error}"
            for r in batch.results
            if not r.success
        ],
    )


class StatusChangeOrchestrator:
    """
    Reacts to committed status changes by notifying the customer (and the
    admin where relevant).

    Runs after the status write has been committed: nothing here can undo
    or block it. Every failure ends up in the returned NotificationSummary.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        settings_repo: SettingsRepository,
        dispatcher: NotificationDispatcher,
        content: NotificationContentGenerator,
        history: StatusHistory,
        fallback_admin_email: str | None = None,
    ):
        self.order_repo = order_repo
        self.settings_repo = settings_repo
        self.dispatcher = dispatcher
        self.content = content
        self.history = history
        self.fallback_admin_email = fallback_admin_email
        # The dispatcher holds per-batch channel state
        self._dispatch_lock = threading.Lock()

    def notify(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: OrderStatus,
    ) -> NotificationSummary:
        """
        Load the order fresh, render its messages and send them with the
        notification settings as currently stored.
        """
        order = self.order_repo.load_snapshot(session, order_id)
        if order is None:
            logger.warning("Order %s not found, no notification sent", order_id)
            return NotificationSummary()

        settings = self.settings_repo.get_notification_settings(session)
        admin_email = (settings.admin_email if settings else None) or self.fallback_admin_email

        messages = self.content.build_messages(order, new_status, admin_email)
        if not messages:
            return NotificationSummary()

        with self._dispatch_lock:
            self.dispatcher.initialize(settings)
            batch = self.dispatcher.send_all(messages)

        summary = summarize(batch)
        logger.info(
            "Order %s -> %s: email %d sent / %d failed, sms %d sent / %d failed",
            order.order_number,
            new_status.value,
            summary.email_sent,
            summary.email_failed,
            summary.sms_sent,
            summary.sms_failed,
        )
        for error in summary.errors:
            logger.warning("Order %s notification not delivered: %s", order.order_number, error)
        return summary

    def handle(self, session: Session, event: StatusChangeEvent) -> NotificationSummary:
        """
        Entry point for one status change event.

        The event is always recorded; a repeat of the latest recorded
        status for the same order is not notified twice.
        """
        previous = self.history.latest(event.order_id)
        self.history.record(event)

        if previous is not None and previous.new_status == event.new_status:
            logger.info(
                "Duplicate status event for order %s (%s), skipping notifications",
                event.order_id,
                event.new_status.value,
            )
            return NotificationSummary()

        try:
            return self.notify(session, event.order_id, event.new_status)
        except Exception as exc:
            logger.exception("Notification handling failed for order %s", event.order_id)
            return NotificationSummary(errors=[str(exc)])
