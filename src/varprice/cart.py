"""Session cart: stable line identity and quantity aggregation.

A cart is an immutable tuple of ``CartLine``. Every mutation returns a new
tuple, and returns the very same tuple when nothing changed, so callers can
detect changes by identity.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Tuple

from .config import get_config
from .pricing import available_stock, display_price
from .types import CartLine, Money, Product, SimpleProduct, Variant

logger = logging.getLogger(__name__)

Cart = Tuple[CartLine, ...]


def cart_item_id(product_id: str, variant_id: Optional[str] = None) -> str:
    """Compound key ``<product>_<variant>``; simple products use ``simple``."""
    return f"{product_id}_{variant_id or get_config().simple_variant_token}"


def _find_line(cart: Cart, item_id: str) -> int:
    for index, line in enumerate(cart):
        if line.cart_item_id == item_id:
            return index
    return -1


def _stock_snapshot(product: Product, variant: Optional[Variant]) -> int:
    if variant is not None:
        return variant.stock_quantity
    if isinstance(product, SimpleProduct):
        return product.stock_quantity
    return 0


def _new_line(product: Product, variant: Optional[Variant], item_id: str, quantity: int) -> CartLine:
    return CartLine(
        cart_item_id=item_id,
        product_id=product.id,
        name=product.name,
        quantity=quantity,
        unit_price=variant.price if variant is not None else display_price(product),
        variant_id=variant.id if variant is not None else None,
        variant_title=variant.title if variant is not None else None,
        selected_options=dict(variant.options) if variant is not None else None,
        image_url=(variant.image_url if variant is not None else None) or product.image_url,
        track_inventory=product.track_inventory,
        stock_quantity=_stock_snapshot(product, variant),
    )


def add_to_cart(cart: Iterable[CartLine], product: Product, variant: Optional[Variant] = None, quantity: int = 1) -> Cart:
    """Add ``quantity`` units of a product (or one of its variants).

    Repeated adds of the same product/variant pair aggregate on one line.
    When inventory is tracked an add never pushes the line past the available
    stock; a request beyond it is silently capped. An add onto an existing line also
    refreshes its stock snapshot and never lowers its quantity, even when
    stock has dropped below it since the line was created.
    """
    cart = tuple(cart or ())
    if quantity < 1:
        return cart

    item_id = cart_item_id(product.id, variant.id if variant is not None else None)
    limit = available_stock(product, variant)
    index = _find_line(cart, item_id)

    if index >= 0:
        line = cart[index]
        new_quantity = int(max(line.quantity, min(line.quantity + quantity, limit)))
        refreshed = replace(
            line,
            quantity=new_quantity,
            track_inventory=product.track_inventory,
            stock_quantity=_stock_snapshot(product, variant),
        )
        if refreshed == line:
            logger.debug("Cart line %s already at stock limit %s", item_id, limit)
            return cart
        return cart[:index] + (refreshed,) + cart[index + 1 :]

    initial = int(min(quantity, limit))
    if initial < 1:
        logger.debug("Cart line %s not added: no stock available", item_id)
        return cart
    if initial < quantity:
        logger.debug("Cart line %s clamped from %d to %d", item_id, quantity, initial)
    return cart + (_new_line(product, variant, item_id, initial),)


def update_quantity(cart: Iterable[CartLine], item_id: str, delta: int) -> Cart:
    """Apply a signed quantity delta; the result is clamped to ``[0, stock]``.

    A line reaching zero is removed. A positive delta never lowers the
    quantity of a line that already sits above its stock snapshot.
    """
    cart = tuple(cart or ())
    index = _find_line(cart, item_id)
    if index < 0:
        return cart

    line = cart[index]
    new_quantity = int(max(0, min(line.quantity + delta, line.available_stock)))
    if delta > 0:
        new_quantity = max(line.quantity, new_quantity)
    if new_quantity == 0:
        return cart[:index] + cart[index + 1 :]
    if new_quantity == line.quantity:
        return cart
    return cart[:index] + (replace(line, quantity=new_quantity),) + cart[index + 1 :]


def remove_from_cart(cart: Iterable[CartLine], item_id: str) -> Cart:
    cart = tuple(cart or ())
    if _find_line(cart, item_id) < 0:
        return cart
    return tuple(line for line in cart if line.cart_item_id != item_id)


def clear_cart() -> Cart:
    return ()


def cart_total(cart: Iterable[CartLine]) -> Money:
    return sum(line.subtotal for line in cart or ())


def cart_count(cart: Iterable[CartLine]) -> int:
    return sum(line.quantity for line in cart or ())
