"""Plan feature gates and resource limits as explicit, pure predicates.

Plan data is passed in by the caller; nothing here reads ambient state. A
limit of ``-1`` means unlimited.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Set

from .errors import RecordFormatError
from .types import PlanLimit

UNLIMITED = -1
RESOURCES = ("products", "categories", "templates")


@dataclass(frozen=True)
class Plan:
    plan_id: str = "gratis"
    features: Dict[str, Any] = field(default_factory=dict)
    max_products: int = 10
    max_categories: int = 3
    templates: int = 1


def _limit(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def plan_from_record(record: Optional[Mapping[str, Any]]) -> Plan:
    """Build a ``Plan`` from a stored plan row; missing limits use free-plan defaults."""
    if record is None:
        return Plan()
    if not isinstance(record, Mapping):
        raise RecordFormatError(f"Plan record must be a JSON object, got {type(record).__name__}")
    features = record.get("features") or {}
    if not isinstance(features, Mapping):
        raise RecordFormatError("Plan field 'features' must be an object")
    return Plan(
        plan_id=str(record.get("id") or record.get("plan_id") or "gratis"),
        features=dict(features),
        max_products=_limit(record.get("max_products"), 10),
        max_categories=_limit(record.get("max_categories"), 3),
        templates=_limit(record.get("templates"), 1),
    )


def has_feature(plan_features: Optional[Mapping[str, Any]], key: str) -> bool:
    """Booleans are taken as-is; ``-1`` or a positive number grants the feature."""
    value = (plan_features or {}).get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == UNLIMITED or value > 0
    return False


def get_limit(plan: Plan, resource: str) -> PlanLimit:
    limits = {
        "products": plan.max_products,
        "categories": plan.max_categories,
        "templates": plan.templates,
    }
    maximum = limits.get(resource, 0)
    return PlanLimit(max=maximum, is_unlimited=maximum == UNLIMITED)


def can_add(plan: Plan, resource: str, current_count: int) -> bool:
    limit = get_limit(plan, resource)
    return limit.is_unlimited or current_count < limit.max


def can_add_product(plan: Plan, current_count: int) -> bool:
    return can_add(plan, "products", current_count)


def can_add_category(plan: Plan, current_count: int) -> bool:
    return can_add(plan, "categories", current_count)


def blocked_product_ids(products: Iterable[Mapping[str, Any]], plan: Plan) -> Set[str]:
    """Ids of products beyond the plan's product limit.

    Products are ranked by ``sort_order`` and then ``created_at``; everything
    past the first ``max_products`` is blocked.
    """
    limit = get_limit(plan, "products")
    if limit.is_unlimited:
        return set()

    def rank(product: Mapping[str, Any]):
        sort_order = product.get("sort_order")
        return (sort_order is None, sort_order if sort_order is not None else 0, str(product.get("created_at") or ""))

    ranked = sorted(products, key=rank)
    return {str(product.get("id")) for product in ranked[max(0, limit.max) :]}
