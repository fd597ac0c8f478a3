# pizzeria/repositories/settings_repo.py
from datetime import datetime, timezone

from sqlmodel import Session, select

from pizzeria.models.settings import NotificationSettingsRecord, PromotionSettingsRecord
from pizzeria.schemas.settings import NotificationSettings, PromotionSettings

_RECORD_META = {"id", "updated_at"}


class SettingsRepository:
    """
    Single-row configuration tables.

    Reads return immutable schema values (None when nothing is stored);
    saves replace the stored row wholesale. No commits here.
    """

    # ---- Notifications ----

    def get_notification_settings(self, session: Session) -> NotificationSettings | None:
        record = session.exec(select(NotificationSettingsRecord)).first()
        if record is None:
            return None
        return NotificationSettings(**record.model_dump(exclude=_RECORD_META))

    def save_notification_settings(
        self,
        session: Session,
        settings: NotificationSettings,
    ) -> NotificationSettings:
        record = session.exec(select(NotificationSettingsRecord)).first()
        if record is None:
            record = NotificationSettingsRecord()
        for field, value in settings.model_dump().items():
            setattr(record, field, value)
        record.updated_at = datetime.now(timezone.utc)

        session.add(record)
        session.flush()
        return settings

    # ---- Promotions ----

    def get_promotion_settings(self, session: Session) -> PromotionSettings | None:
        record = session.exec(select(PromotionSettingsRecord)).first()
        if record is None:
            return None
        return PromotionSettings(**record.model_dump(exclude=_RECORD_META))

    def save_promotion_settings(
        self,
        session: Session,
        settings: PromotionSettings,
    ) -> PromotionSettings:
        record = session.exec(select(PromotionSettingsRecord)).first()
        if record is None:
            record = PromotionSettingsRecord()
        for field, value in settings.model_dump().items():
            setattr(record, field, value)
        record.updated_at = datetime.now(timezone.utc)

        session.add(record)
        session.flush()
        return settings
