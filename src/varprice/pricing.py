"""Display price, price range, availability and selection matching.

Only active variants (``is_active`` not False) are sellable. When a product
has no active variant, price helpers fall back to the lowest positive price
over the whole set so the storefront still shows a sensible figure.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional, Sequence

from .keys import variant_key
from .types import Money, Product, SimpleProduct, Variant, VariantProduct


def product_variants(product: Product) -> Sequence[Variant]:
    if isinstance(product, VariantProduct):
        return product.variants
    return ()


def active_variants(variants: Sequence[Variant]) -> list[Variant]:
    return [variant for variant in variants or () if variant.is_active is not False]


def _fallback_price(variants: Sequence[Variant]) -> Money:
    positive = [variant.price for variant in variants or () if (variant.price or 0) > 0]
    return min(positive) if positive else 0


def min_price(variants: Sequence[Variant]) -> Money:
    active = active_variants(variants)
    if not active:
        return _fallback_price(variants)
    return min(variant.price or 0 for variant in active)


def max_price(variants: Sequence[Variant]) -> Money:
    active = active_variants(variants)
    if not active:
        return _fallback_price(variants)
    return max(variant.price or 0 for variant in active)


def display_price(product: Product) -> Money:
    """Own price for a simple product, lowest active-variant price otherwise."""
    if isinstance(product, VariantProduct):
        return min_price(product.variants)
    return product.price or 0


def has_price_range(product: Product) -> bool:
    if not isinstance(product, VariantProduct):
        return False
    return min_price(product.variants) != max_price(product.variants)


def product_availability(product: Product) -> bool:
    """Whether the product as a whole can be bought.

    Without inventory tracking stock counts are ignored; with tracking at
    least one unit must exist (on an active variant, for variant products).
    """
    if not product.track_inventory:
        if isinstance(product, VariantProduct):
            return bool(active_variants(product.variants))
        return product.is_active is not False

    if isinstance(product, VariantProduct):
        return any((variant.stock_quantity or 0) > 0 for variant in active_variants(product.variants))
    return (product.stock_quantity or 0) > 0


def variant_availability(product: Product, variant: Optional[Variant]) -> bool:
    if variant is None or variant.is_active is False:
        return False
    if not product.track_inventory:
        return True
    return (variant.stock_quantity or 0) > 0


def available_stock(product: Product, variant: Optional[Variant] = None) -> float:
    """Units a cart line may hold; ``math.inf`` when inventory is not tracked."""
    if not product.track_inventory:
        return math.inf
    if variant is not None:
        return variant.stock_quantity or 0
    if isinstance(product, SimpleProduct):
        return product.stock_quantity or 0
    return 0


def find_matching_variant(variants: Sequence[Variant], selection: Optional[Mapping[str, str]]) -> Optional[Variant]:
    """Variant whose canonical key equals the selection's, or ``None``.

    ``None`` means the selection is incomplete or names no existing variant.
    """
    if not variants or selection is None:
        return None
    target = variant_key(selection)
    for variant in variants:
        if variant_key(variant.options) == target:
            return variant
    return None


def is_value_available(
    variants: Sequence[Variant], selection: Optional[Mapping[str, str]], option_name: str, value: str
) -> bool:
    """Whether picking ``option_name=value`` still leads to some active variant."""
    candidate = {**(selection or {}), option_name: value}
    for variant in active_variants(variants):
        if all(variant.options.get(name) == chosen for name, chosen in candidate.items() if chosen is not None):
            return True
    return False


def default_selection(product: Product) -> Dict[str, str]:
    active = active_variants(product_variants(product))
    if active:
        return dict(active[0].options)
    return {}


def selection_price(product: Product, selection: Optional[Mapping[str, str]] = None) -> Money:
    variant = find_matching_variant(product_variants(product), selection)
    if variant is not None:
        return variant.price
    return display_price(product)


def discount_percent(product: Product) -> int:
    """Whole-percent markdown from ``compare_price``; simple products only."""
    if not isinstance(product, SimpleProduct):
        return 0
    if not product.compare_price or product.compare_price <= product.price:
        return 0
    return int(math.floor((1 - product.price / product.compare_price) * 100 + 0.5))


def price_summary(product: Product, selection: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    variants = product_variants(product)
    selected = find_matching_variant(variants, selection) if selection else None
    stock = available_stock(product, selected)
    return {
        "product_id": product.id,
        "has_variants": product.has_variants,
        "display_price": display_price(product),
        "min_price": min_price(variants) if variants else display_price(product),
        "max_price": max_price(variants) if variants else display_price(product),
        "has_price_range": has_price_range(product),
        "discount_percent": discount_percent(product),
        "available": product_availability(product),
        "selected_variant": selected.as_dict() if selected is not None else None,
        "selection_price": selection_price(product, selection),
        "selection_available": variant_availability(product, selected) if selection else None,
        "available_stock": None if math.isinf(stock) else stock,
    }
