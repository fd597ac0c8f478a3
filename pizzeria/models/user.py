# pizzeria/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: matches the "sub" claim of the access token

    Role:
      - "customer" | "admin" | "delivery"
      - guests are represented by the absence of a token.

    Password hashes are owned by the auth provider, not this table.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches the token subject",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(
        max_length=50,
        description="Display name; first part of email by default",
    )

    # Application role
    role: str = Field(
        default="customer",
        index=True,
        description="Application role: customer | admin | delivery",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
