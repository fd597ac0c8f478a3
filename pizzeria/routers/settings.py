# pizzeria/routers/settings.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from pizzeria.core.auth import require_admin
from pizzeria.core.dependencies import get_settings_service
from pizzeria.database import get_session
from pizzeria.schemas.notification import NotificationChannel, SendResult
from pizzeria.schemas.settings import (
    NotificationSettings,
    NotificationTestRequest,
    PromotionSettings,
)
from pizzeria.services.settings_service import SettingsService

router = APIRouter(
    prefix="/settings",
    tags=["Settings"],
    dependencies=[Depends(require_admin)],
)


# -------- Notifications --------


@router.get("/notifications", response_model=NotificationSettings)
def get_notification_settings(
    session: Session = Depends(get_session),
    service: SettingsService = Depends(get_settings_service),
):
    return service.get_notification_settings(session)


@router.put("/notifications", response_model=NotificationSettings)
def replace_notification_settings(
    payload: NotificationSettings,
    session: Session = Depends(get_session),
    service: SettingsService = Depends(get_settings_service),
):
    """
    Replace the notification configuration. Fields left out fall back to
    their defaults. Takes effect for the next status change.
    """
    return service.update_notification_settings(session, payload)


@router.post("/notifications/test", response_model=SendResult)
def test_notification_channel(
    payload: NotificationTestRequest,
    session: Session = Depends(get_session),
    service: SettingsService = Depends(get_settings_service),
):
    """
    Check the stored email or SMS configuration without sending anything
    to a customer. Returns success or the reason it failed.
    """
    return service.test_channel(session, NotificationChannel(payload.channel))


# -------- Promotions --------


@router.get("/promotions", response_model=PromotionSettings)
def get_promotion_settings(
    session: Session = Depends(get_session),
    service: SettingsService = Depends(get_settings_service),
):
    return service.get_promotion_settings(session)


@router.put("/promotions", response_model=PromotionSettings)
def replace_promotion_settings(
    payload: PromotionSettings,
    session: Session = Depends(get_session),
    service: SettingsService = Depends(get_settings_service),
):
    return service.update_promotion_settings(session, payload)
