# pizzeria/services/settings_service.py
import logging

from sqlmodel import Session

from pizzeria.repositories.settings_repo import SettingsRepository
from pizzeria.schemas.notification import NotificationChannel, SendResult
from pizzeria.schemas.settings import NotificationSettings, PromotionSettings
from pizzeria.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


class SettingsService:
    """
    Admin-editable runtime configuration.

    Missing rows read as the defaults (everything disabled). Saves replace
    the stored value wholesale; validation already happened on the payload.
    """

    def __init__(self, settings_repo: SettingsRepository, dispatcher: NotificationDispatcher):
        self.settings_repo = settings_repo
        self.dispatcher = dispatcher

    def get_notification_settings(self, session: Session) -> NotificationSettings:
        return self.settings_repo.get_notification_settings(session) or NotificationSettings()

    def update_notification_settings(
        self,
        session: Session,
        payload: NotificationSettings,
    ) -> NotificationSettings:
        saved = self.settings_repo.save_notification_settings(session, payload)
        session.commit()
        logger.info(
            "Notification settings updated (email=%s, sms=%s)",
            saved.email_notifications_enabled,
            saved.sms_notifications_enabled,
        )
        return saved

    def get_promotion_settings(self, session: Session) -> PromotionSettings:
        return self.settings_repo.get_promotion_settings(session) or PromotionSettings()

    def update_promotion_settings(
        self,
        session: Session,
        payload: PromotionSettings,
    ) -> PromotionSettings:
        saved = self.settings_repo.save_promotion_settings(session, payload)
        session.commit()
        logger.info("Promotion settings updated (enabled=%s)", saved.promotions_enabled)
        return saved

    def test_channel(self, session: Session, channel: NotificationChannel) -> SendResult:
        """
        Dry run of one channel with the stored settings. The dispatcher used
        here is separate from the one sending order notifications.
        """
        settings = self.settings_repo.get_notification_settings(session)
        if channel == NotificationChannel.EMAIL:
            result = self.dispatcher.test_email_configuration(settings)
        else:
            result = self.dispatcher.test_sms_configuration(settings)

        if not result.success:
            logger.warning("%s configuration test failed: %s", channel.value, result.error)
        return result
