# pizzeria/schemas/cart.py
import uuid

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from pizzeria.schemas.order import DeliveryMethod, MenuLineCreate, OrderItemCreate


class CartQuoteRequest(SQLModel):
    """
    Cart contents as held by the client, to be priced by the backend.
    """

    model_config = ConfigDict(extra="forbid")

    delivery_method: DeliveryMethod
    items: list[OrderItemCreate] = Field(default_factory=list)
    menus: list[MenuLineCreate] = Field(default_factory=list)


class CartLine(SQLModel):
    """
    One priced cart line.

    unit_price = product base price + variant surcharge
    (menus are priced from the menus table and are never pizzas).
    """

    model_config = ConfigDict(frozen=True)

    product_id: uuid.UUID | None = None
    variant_id: uuid.UUID | None = None
    menu_id: uuid.UUID | None = None
    name: str
    variant_name: str | None = None
    category_slug: str | None = None
    base_type: str | None = None
    unit_price: float
    quantity: int = Field(gt=0)
    is_menu: bool = False

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class AppliedPromotion(SQLModel):
    """
    Record of a promotion that gave free pizzas on this cart.
    """

    method: DeliveryMethod
    description: str | None
    pizzas_free: int
    total_pizzas: int


class CartQuote(SQLModel):
    """
    Priced cart:

      subtotal_with_promotion = subtotal - discount
      total                   = subtotal_with_promotion + delivery_fee
    """

    lines: list[CartLine]
    delivery_method: DeliveryMethod
    subtotal: float
    promotion: AppliedPromotion | None
    discount: float
    subtotal_with_promotion: float
    delivery_fee: float
    total: float
    items_count: int
