# pizzeria/services/promotion.py
"""
"Buy N pizzas, get M free" promotion and cart totals.

Pure functions: the caller supplies priced cart lines, the delivery
method and the current PromotionSettings.
"""
from collections.abc import Iterable, Sequence

from pizzeria.schemas.cart import AppliedPromotion, CartLine, CartQuote
from pizzeria.schemas.order import DeliveryMethod
from pizzeria.schemas.settings import PromotionSettings

PIZZA_CATEGORY_SLUG = "pizzas"


def is_pizza(line: CartLine) -> bool:
    """A line counts as a pizza by category or by having a base type."""
    if line.is_menu:
        return False
    return line.category_slug == PIZZA_CATEGORY_SLUG or line.base_type is not None


def _method_config(
    settings: PromotionSettings,
    method: DeliveryMethod,
) -> tuple[bool, int, int]:
    if method == DeliveryMethod.DELIVERY:
        return (
            settings.delivery_promotion_enabled,
            settings.delivery_buy_count,
            settings.delivery_get_count,
        )
    return (
        settings.pickup_promotion_enabled,
        settings.pickup_buy_count,
        settings.pickup_get_count,
    )


def calculate_promotion(
    pizza_lines: Iterable[CartLine],
    method: DeliveryMethod,
    settings: PromotionSettings | None,
) -> AppliedPromotion | None:
    """
    Number of free pizzas earned by this cart, or None.

    One promotion group = buy_count + get_count pizzas; each complete
    group earns get_count free pizzas.
    """
    if settings is None or not settings.promotions_enabled:
        return None

    enabled, buy_count, get_count = _method_config(settings, method)
    if not enabled:
        return None

    total_pizzas = sum(line.quantity for line in pizza_lines)
    group_size = buy_count + get_count
    groups = total_pizzas // group_size
    pizzas_free = groups * get_count

    if pizzas_free <= 0:
        return None

    return AppliedPromotion(
        method=method,
        description=settings.promotion_description,
        pizzas_free=pizzas_free,
        total_pizzas=total_pizzas,
    )


def calculate_discount(pizza_lines: Sequence[CartLine], pizzas_free: int) -> float:
    """
    Price of the `pizzas_free` cheapest pizza units.

    Lines are taken by ascending unit price; ties keep cart order
    (sorted() is stable).
    """
    remaining = pizzas_free
    discount = 0.0

    for line in sorted(pizza_lines, key=lambda line: line.unit_price):
        if remaining <= 0:
            break
        taken = min(remaining, line.quantity)
        discount += line.unit_price * taken
        remaining -= taken

    return round(discount, 2)


def quote_cart(
    lines: Sequence[CartLine],
    method: DeliveryMethod,
    settings: PromotionSettings | None,
    delivery_fee: float,
) -> CartQuote:
    """
    Price a cart: subtotal over every line, promotion discount on pizzas,
    delivery fee for delivery orders only.
    """
    subtotal = round(sum(line.line_total for line in lines), 2)

    pizza_lines = [line for line in lines if is_pizza(line)]
    promotion = calculate_promotion(pizza_lines, method, settings)
    discount = calculate_discount(pizza_lines, promotion.pizzas_free) if promotion else 0.0

    subtotal_with_promotion = round(subtotal - discount, 2)
    fee = 0.0 if method == DeliveryMethod.PICKUP else round(delivery_fee, 2)

    return CartQuote(
        lines=list(lines),
        delivery_method=method,
        subtotal=subtotal,
        promotion=promotion,
        discount=discount,
        subtotal_with_promotion=subtotal_with_promotion,
        delivery_fee=fee,
        total=round(subtotal_with_promotion + fee, 2),
        items_count=sum(line.quantity for line in lines),
    )
