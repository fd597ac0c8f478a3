# pizzeria/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized process settings loaded from environment.

    Required env vars (.env):
      - JWT_SECRET (HS256 signing secret shared with the auth provider)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file)
      - AUTO_TRANSITIONS_ENABLED / AUTO_TRANSITION_INTERVAL_SECONDS
        (periodic automatic status sweep)

    NOTE:
      Notification channels (SMTP, Twilio) and promotions are NOT configured
      here. They are admin-editable and stored in the database.
    """

    PROJECT_NAME: str = "Bella Pizza API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./pizzeria.db"

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    # Restaurant identity used in notification texts
    RESTAURANT_NAME: str = "Bella Pizza"
    ADMIN_EMAIL: str | None = "admin@bellapizza.fr"
    CURRENCY: str = "EUR"

    # Pricing
    DELIVERY_FEE: float = 3.5

    # SMS numbers without a leading "+" are assumed to be national numbers
    DEFAULT_PHONE_COUNTRY_CODE: str = "+33"

    # When true, admin transitions must also follow the status graph
    STRICT_STATUS_TRANSITIONS: bool = True

    # Periodic automatic transitions
    AUTO_TRANSITIONS_ENABLED: bool = False
    AUTO_TRANSITION_INTERVAL_SECONDS: int = 60

    # A courier may carry at most this many orders at once
    MAX_ACTIVE_DELIVERIES: int = 2

    # Orders kept in the in-process status history
    STATUS_HISTORY_MAX_ORDERS: int = 5000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
