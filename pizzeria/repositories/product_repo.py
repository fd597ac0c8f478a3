# pizzeria/repositories/product_repo.py
import uuid

from sqlmodel import Session

from pizzeria.models.product import Menu, Product, ProductVariant


class ProductRepository:
    """
    Read access to the catalogue for cart pricing.

    - Pure DB operations.
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_variant(self, session: Session, variant_id: uuid.UUID) -> ProductVariant | None:
        return session.get(ProductVariant, variant_id)

    def get_menu(self, session: Session, menu_id: uuid.UUID) -> Menu | None:
        return session.get(Menu, menu_id)
