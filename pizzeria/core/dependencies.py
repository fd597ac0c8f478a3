# pizzeria/core/dependencies.py
"""
Service wiring.

One instance of each service per process, so the status history and the
notification dispatcher are shared by the API and the automatic sweep.
Tests replace these through `app.dependency_overrides`.
"""
from functools import lru_cache

from pizzeria.core.config import Settings, get_settings
from pizzeria.repositories.order_repo import OrderRepository
from pizzeria.repositories.product_repo import ProductRepository
from pizzeria.repositories.settings_repo import SettingsRepository
from pizzeria.services.cart_service import CartService
from pizzeria.services.notification_content import NotificationContentGenerator
from pizzeria.services.notification_service import NotificationDispatcher
from pizzeria.services.order_service import OrderService
from pizzeria.services.settings_service import SettingsService
from pizzeria.services.status_change import StatusChangeOrchestrator
from pizzeria.services.status_history import StatusHistory


def build_content(settings: Settings) -> NotificationContentGenerator:
    return NotificationContentGenerator(settings.RESTAURANT_NAME, settings.CURRENCY)


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    return NotificationDispatcher(
        build_content(settings),
        default_country_code=settings.DEFAULT_PHONE_COUNTRY_CODE,
    )


def build_cart_service(settings: Settings) -> CartService:
    return CartService(ProductRepository(), SettingsRepository(), settings.DELIVERY_FEE)


def build_order_service(
    settings: Settings,
    dispatcher: NotificationDispatcher | None = None,
    history: StatusHistory | None = None,
) -> OrderService:
    order_repo = OrderRepository()
    orchestrator = StatusChangeOrchestrator(
        order_repo=order_repo,
        settings_repo=SettingsRepository(),
        dispatcher=dispatcher if dispatcher is not None else build_dispatcher(settings),
        content=build_content(settings),
        history=history if history is not None else StatusHistory(settings.STATUS_HISTORY_MAX_ORDERS),
        fallback_admin_email=settings.ADMIN_EMAIL,
    )
    return OrderService(
        order_repo,
        build_cart_service(settings),
        orchestrator,
        strict_transitions=settings.STRICT_STATUS_TRANSITIONS,
        max_active_deliveries=settings.MAX_ACTIVE_DELIVERIES,
    )


@lru_cache
def get_order_service() -> OrderService:
    return build_order_service(get_settings())


@lru_cache
def get_cart_service() -> CartService:
    return build_cart_service(get_settings())


@lru_cache
def get_settings_service() -> SettingsService:
    return SettingsService(SettingsRepository(), build_dispatcher(get_settings()))
