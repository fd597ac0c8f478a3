# tests/conftest.py
import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_TRANSITIONS_ENABLED"] = "false"
os.environ["STRICT_STATUS_TRANSITIONS"] = "true"

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from pizzeria.core.auth import get_current_user
from pizzeria.core.config import get_settings
from pizzeria.core.dependencies import (
    build_cart_service,
    build_content,
    build_order_service,
    get_cart_service,
    get_order_service,
    get_settings_service,
)
from pizzeria.database import get_session
from pizzeria.main import app
from pizzeria.models.order import Order, OrderItem
from pizzeria.models.product import Menu, Product, ProductVariant
from pizzeria.models.user import User
from pizzeria.repositories.settings_repo import SettingsRepository
from pizzeria.schemas.settings import NotificationSettings
from pizzeria.services.notification_service import NotificationDispatcher
from pizzeria.services.settings_service import SettingsService
from pizzeria.services.status_history import StatusHistory


# -------- Fake channel clients --------


class FakeEmailClient:
    def __init__(self):
        self.sent: list[dict] = []
        self.verify_error: Exception | None = None
        self.send_error: Exception | None = None

    def verify(self) -> None:
        if self.verify_error:
            raise self.verify_error

    def send_email(self, to_email, subject, text_body, html_body=None) -> None:
        if self.send_error:
            raise self.send_error
        self.sent.append(
            {"to": to_email, "subject": subject, "text": text_body, "html": html_body}
        )


class FakeSmsClient:
    def __init__(self):
        self.sent: list[dict] = []
        self.send_error: Exception | None = None
        self.verify_error: Exception | None = None

    def send_sms(self, to_number, body) -> str:
        if self.send_error:
            raise self.send_error
        self.sent.append({"to": to_number, "body": body})
        return f"SM{len(self.sent)}"

    def verify(self) -> None:
        if self.verify_error:
            raise self.verify_error


ENABLED_SETTINGS = NotificationSettings(
    notifications_enabled=True,
    email_notifications_enabled=True,
    smtp_host="smtp.example.com",
    smtp_port=587,
    smtp_user="orders@example.com",
    smtp_password="secret",
    email_from_name="Bella Pizza",
    admin_email="admin@example.com",
    sms_notifications_enabled=True,
    twilio_account_sid="AC123",
    twilio_auth_token="token",
    twilio_phone_number="+33100000000",
)


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def sms_client() -> FakeSmsClient:
    return FakeSmsClient()


@pytest.fixture
def dispatcher(email_client, sms_client) -> NotificationDispatcher:
    return NotificationDispatcher(
        build_content(get_settings()),
        email_client_factory=lambda settings: email_client,
        sms_client_factory=lambda settings: sms_client,
        default_country_code="+33",
    )


# -------- Database --------


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def enable_notifications(session):
    """Store fully enabled notification settings."""

    def _enable(**overrides) -> NotificationSettings:
        settings = ENABLED_SETTINGS.model_copy(update=overrides)
        SettingsRepository().save_notification_settings(session, settings)
        session.commit()
        return settings

    return _enable


# -------- Services / app --------


@pytest.fixture
def history() -> StatusHistory:
    return StatusHistory()


@pytest.fixture
def order_service(dispatcher, history):
    return build_order_service(get_settings(), dispatcher=dispatcher, history=history)


@pytest.fixture
def client(session, order_service, dispatcher):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_order_service] = lambda: order_service
    app.dependency_overrides[get_cart_service] = lambda: build_cart_service(get_settings())
    app.dependency_overrides[get_settings_service] = lambda: SettingsService(
        SettingsRepository(), dispatcher
    )
    app.dependency_overrides[get_current_user] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Act as the given user (None = guest) for the following requests."""

    def _login(user: User | None) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return _login


# -------- Data factories --------


def _make_user(session: Session, role: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{role}-{uuid.uuid4().hex[:6]}@example.com",
        name=role,
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin(session) -> User:
    return _make_user(session, "admin")


@pytest.fixture
def courier(session) -> User:
    return _make_user(session, "delivery")


@pytest.fixture
def customer(session) -> User:
    return _make_user(session, "customer")


@pytest.fixture
def make_product(session):
    def _make(
        name: str = "Margherita",
        price: float = 10.0,
        category_slug: str | None = "pizzas",
        base_type: str | None = "tomato",
        is_active: bool = True,
    ) -> Product:
        product = Product(
            name=name,
            price=price,
            category_slug=category_slug,
            base_type=base_type,
            is_active=is_active,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_variant(session):
    def _make(product: Product, name: str = "Large", price: float = 3.0) -> ProductVariant:
        variant = ProductVariant(product_id=product.id, name=name, price=price)
        session.add(variant)
        session.commit()
        session.refresh(variant)
        return variant

    return _make


@pytest.fixture
def make_menu(session):
    def _make(name: str = "Menu Duo", price: float = 20.0, is_active: bool = True) -> Menu:
        menu = Menu(name=name, price=price, is_active=is_active)
        session.add(menu)
        session.commit()
        session.refresh(menu)
        return menu

    return _make


@pytest.fixture
def make_order(session, make_product):
    """Insert an order directly, bypassing checkout."""

    def _make(
        status: str = "pending",
        delivery_method: str = "delivery",
        payment_status: str = "unpaid",
        minutes_ago: float = 0,
        customer_email: str | None = "client@example.com",
        customer_phone: str | None = "06 12 34 56 78",
        pizzas: int = 1,
        total: float = 25.0,
        deliverer_id: uuid.UUID | None = None,
    ) -> Order:
        created = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
        order = Order(
            order_number=f"CMD{uuid.uuid4().hex[:10]}",
            customer_name="Jean Client",
            customer_email=customer_email,
            customer_phone=customer_phone,
            delivery_address="1 rue de la Paix" if delivery_method == "delivery" else None,
            delivery_method=delivery_method,
            status=status,
            payment_status=payment_status,
            subtotal=total,
            total=total,
            deliverer_id=deliverer_id,
            created_at=created,
            updated_at=created,
        )
        session.add(order)
        session.commit()
        session.refresh(order)

        if pizzas:
            product = make_product()
            session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    base_type=product.base_type,
                    category_slug=product.category_slug,
                    quantity=pizzas,
                    unit_price=product.price,
                    total_price=product.price * pizzas,
                )
            )
            session.commit()
        return order

    return _make
