# pizzeria/services/cart_service.py
from fastapi import HTTPException, status
from sqlmodel import Session

from pizzeria.repositories.product_repo import ProductRepository
from pizzeria.repositories.settings_repo import SettingsRepository
from pizzeria.schemas.cart import CartLine, CartQuote
from pizzeria.schemas.order import DeliveryMethod, MenuLineCreate, OrderItemCreate
from pizzeria.services.promotion import quote_cart


class CartService:
    """
    Cart pricing.

    Responsibilities:
      - validate product, variant and menu existence and active flag
      - price each line from the catalogue (base price + variant surcharge,
        or the menu price)
      - apply the stored promotion and the delivery fee

    The cart itself lives on the client; checkout uses the same pricing so
    stored order totals match the quote.
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        settings_repo: SettingsRepository,
        delivery_fee: float,
    ):
        self.product_repo = product_repo
        self.settings_repo = settings_repo
        self.delivery_fee = delivery_fee

    def build_lines(
        self,
        session: Session,
        items: list[OrderItemCreate],
        menus: list[MenuLineCreate],
    ) -> list[CartLine]:
        """
        Resolve requested items against the catalogue.

        Raises
        ------
        HTTPException(400):
            If the cart is empty or any line references an unknown or
            inactive product or menu, or a variant of another product.
        """
        if not items and not menus:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        errors: list[dict[str, str]] = []
        lines: list[CartLine] = []

        for it in items:
            product = self.product_repo.get_by_id(session, it.product_id)
            if not product:
                errors.append({"product_id": str(it.product_id), "reason": "Product not found"})
                continue
            if not product.is_active:
                errors.append({"product_id": str(it.product_id), "reason": "Product is inactive"})
                continue

            variant_name = None
            unit_price = product.price
            if it.variant_id is not None:
                variant = self.product_repo.get_variant(session, it.variant_id)
                if not variant or variant.product_id != product.id:
                    errors.append({"product_id": str(it.product_id), "reason": "Variant not found"})
                    continue
                variant_name = variant.name
                unit_price += variant.price

            lines.append(
                CartLine(
                    product_id=product.id,
                    variant_id=it.variant_id,
                    name=product.name,
                    variant_name=variant_name,
                    category_slug=product.category_slug,
                    base_type=product.base_type,
                    unit_price=round(unit_price, 2),
                    quantity=it.quantity,
                )
            )

        for line in menus:
            menu = self.product_repo.get_menu(session, line.menu_id)
            if not menu:
                errors.append({"menu_id": str(line.menu_id), "reason": "Menu not found"})
                continue
            if not menu.is_active:
                errors.append({"menu_id": str(line.menu_id), "reason": "Menu is inactive"})
                continue

            lines.append(
                CartLine(
                    menu_id=menu.id,
                    name=menu.name,
                    unit_price=round(menu.price, 2),
                    quantity=line.quantity,
                    is_menu=True,
                )
            )

        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Cart validation failed", "items": errors},
            )

        return lines

    def quote(
        self,
        session: Session,
        delivery_method: DeliveryMethod,
        items: list[OrderItemCreate],
        menus: list[MenuLineCreate],
    ) -> CartQuote:
        lines = self.build_lines(session, items, menus)
        promotions = self.settings_repo.get_promotion_settings(session)
        return quote_cart(lines, delivery_method, promotions, self.delivery_fee)
