"""Typed records shared by the option, variant, pricing, cart and order layers.

Products are a tagged sum: ``SimpleProduct`` carries its own scalar price and
stock, ``VariantProduct`` owns a non-empty variant set that supersedes the
scalar price for display. Code dispatches on the concrete class.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, TypedDict, Union

Money = Union[int, float]


@dataclass(frozen=True)
class OptionDefinition:
    """A named axis of variation with its ordered allowed values."""

    name: str
    values: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "values": list(self.values)}


@dataclass(frozen=True)
class Variant:
    """One concrete, independently priced and stocked option combination.

    Invariant:
    - ``options`` holds exactly one value per defined option of the product.
    """

    id: str
    title: str
    options: Dict[str, str] = field(default_factory=dict)
    price: Money = 0
    compare_price: Optional[Money] = None
    sku: Optional[str] = None
    stock_quantity: int = 0
    image_url: Optional[str] = None
    is_active: bool = True

    def as_dict(self) -> "VariantRecord":
        return {
            "id": self.id,
            "title": self.title,
            "options": dict(self.options),
            "price": self.price,
            "compare_price": self.compare_price,
            "sku": self.sku,
            "stock_quantity": self.stock_quantity,
            "image_url": self.image_url,
            "is_active": self.is_active,
        }


class VariantRecord(TypedDict, total=False):
    """Persisted variant shape exchanged with the storage collaborator."""

    id: str
    title: str
    options: Dict[str, str]
    price: Money
    compare_price: Optional[Money]
    sku: Optional[str]
    stock_quantity: int
    image_url: Optional[str]
    is_active: bool


@dataclass(frozen=True)
class SimpleProduct:
    id: str
    name: str
    price: Money = 0
    compare_price: Optional[Money] = None
    stock_quantity: int = 0
    track_inventory: bool = False
    is_active: bool = True
    image_url: Optional[str] = None

    @property
    def has_variants(self) -> bool:
        return False


@dataclass(frozen=True)
class VariantProduct:
    id: str
    name: str
    variants: Tuple[Variant, ...]
    options: Tuple[OptionDefinition, ...] = ()
    price: Money = 0
    track_inventory: bool = False
    is_active: bool = True
    image_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.variants:
            raise ValueError(f"Variant product '{self.id}' requires at least one variant")

    @property
    def has_variants(self) -> bool:
        return True


Product = Union[SimpleProduct, VariantProduct]


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


@dataclass(frozen=True)
class MergeResult:
    """Outcome of reconciling fresh variants against persisted ones.

    ``orphaned`` lists persisted variants whose key no longer exists in the
    fresh set, so their commercial data can be reconciled by the owner.
    """

    variants: List[Variant]
    orphaned: List[Variant] = field(default_factory=list)


@dataclass(frozen=True)
class CartLine:
    cart_item_id: str
    product_id: str
    name: str
    quantity: int
    unit_price: Money
    variant_id: Optional[str] = None
    variant_title: Optional[str] = None
    selected_options: Optional[Dict[str, str]] = None
    image_url: Optional[str] = None
    track_inventory: bool = False
    stock_quantity: int = 0

    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity

    @property
    def available_stock(self) -> float:
        if not self.track_inventory:
            return math.inf
        return max(0, self.stock_quantity)


@dataclass(frozen=True)
class OrderLine:
    """Minimal line shape consumed by the order serializer."""

    name: str
    quantity: int
    unit_price: Money

    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PlanLimit:
    max: int
    is_unlimited: bool
