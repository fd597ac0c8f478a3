# pizzeria/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalogue entry (pizza, drink, dessert...).

    Only the fields needed for cart pricing and kitchen timing live here;
    catalogue management is handled elsewhere.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
        description="Display name",
    )

    category_slug: str | None = Field(
        default=None,
        index=True,
        description="Category identifier, 'pizzas' for pizzas",
    )

    # tomato | cream | ... ; null for non-pizza products
    base_type: str | None = Field(
        default=None,
        description="Pizza base; set only for pizzas",
    )

    price: float = Field(
        ge=0,
        description="Base unit price",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product can be ordered",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ProductVariant(SQLModel, table=True):
    """
    Size / option of a product. `price` is a surcharge added to the
    product's base price.
    """

    __tablename__ = "product_variants"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    name: str = Field(max_length=100)

    price: float = Field(
        default=0.0,
        ge=0,
        description="Surcharge over the product base price",
    )


class Menu(SQLModel, table=True):
    """
    Composed menu (e.g. pizza + drink + dessert) sold as one line at a
    fixed price. Never counted as a pizza for promotions.
    """

    __tablename__ = "menus"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100)

    price: float = Field(
        ge=0,
        description="Unit price of the whole menu",
    )

    is_active: bool = Field(
        default=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
