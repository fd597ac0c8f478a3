# pizzeria/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from pizzeria.core.dependencies import get_cart_service
from pizzeria.database import get_session
from pizzeria.schemas.cart import CartQuote, CartQuoteRequest
from pizzeria.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.post("/quote", response_model=CartQuote)
def quote_cart(
    payload: CartQuoteRequest,
    session: Session = Depends(get_session),
    service: CartService = Depends(get_cart_service),
):
    """
    Price a cart: catalogue prices, current pizza promotion and delivery fee.

    Public endpoint; the same pricing is applied when the order is placed.
    """
    return service.quote(session, payload.delivery_method, payload.items, payload.menus)
