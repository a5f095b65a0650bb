"""Boundary coercion of persisted and JSON records into typed engine records.

Loose numeric fields are coerced the way the storefront saves them (blank
price becomes 0, blank compare price becomes ``None``). Structural problems
raise ``RecordFormatError`` so malformed data fails at the load boundary.
"""

from __future__ import annotations

import json
import math
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import get_config
from .errors import RecordFormatError
from .types import Money, OptionDefinition, OrderLine, Product, SimpleProduct, Variant, VariantProduct, VariantRecord
from .variants import generate_variant_id


def _to_number(value: Any, default: Optional[Money] = 0) -> Optional[Money]:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return int(number) if number.is_integer() else number


def _to_count(value: Any) -> int:
    number = _to_number(value, 0)
    return int(number or 0)


def _to_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_mapping(record: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(record, Mapping):
        raise RecordFormatError(f"{what} must be a JSON object, got {type(record).__name__}")
    return record


def options_from_records(records: Any) -> List[OptionDefinition]:
    """Read option definitions; structure only, use ``validate_options`` for rules."""
    if records is None:
        return []
    if not isinstance(records, list):
        raise RecordFormatError(f"Options must be a JSON array, got {type(records).__name__}")
    options = []
    for index, record in enumerate(records, start=1):
        record = _require_mapping(record, f"Option {index}")
        values = record.get("values") or []
        if not isinstance(values, list):
            raise RecordFormatError(f"Option {index} field 'values' must be an array")
        options.append(OptionDefinition(name=str(record.get("name") or ""), values=tuple(str(v) for v in values)))
    return options


def variant_from_record(record: Any) -> Variant:
    if isinstance(record, Variant):
        return record
    record = _require_mapping(record, "Variant record")

    options = record.get("options") or {}
    if not isinstance(options, Mapping):
        raise RecordFormatError(f"Variant field 'options' must be an object, got {type(options).__name__}")

    price = _to_number(record.get("price"), 0)
    if price < 0:
        raise RecordFormatError(f"Variant '{record.get('title') or record.get('id')}' has a negative price: {price}")
    stock_quantity = _to_count(record.get("stock_quantity"))
    if stock_quantity < 0:
        raise RecordFormatError(f"Variant '{record.get('title') or record.get('id')}' has negative stock: {stock_quantity}")

    compare_price = _to_number(record.get("compare_price"), None)
    return Variant(
        id=str(record.get("id") or generate_variant_id()),
        title=str(record.get("title") or ""),
        options={str(name): str(value) for name, value in options.items()},
        price=price,
        compare_price=compare_price if compare_price else None,
        sku=_optional_text(record.get("sku")),
        stock_quantity=stock_quantity,
        image_url=_optional_text(record.get("image_url")),
        is_active=_to_bool(record.get("is_active"), True),
    )


def variants_from_records(records: Any) -> List[Variant]:
    if records is None:
        return []
    if not isinstance(records, list):
        raise RecordFormatError(f"Variants must be a JSON array, got {type(records).__name__}")
    return [variant_from_record(record) for record in records]


def prepare_variants_for_save(variants: Iterable[Any]) -> List[VariantRecord]:
    """Normalize variants into the persisted record shape."""
    return [variant_from_record(variant).as_dict() for variant in variants]


def product_from_record(record: Any) -> Product:
    """Build a ``SimpleProduct`` or ``VariantProduct`` from a product record."""
    record = _require_mapping(record, "Product record")
    product_id = record.get("id")
    if product_id is None or str(product_id).strip() == "":
        raise RecordFormatError("Product record missing required field 'id'")

    common: Dict[str, Any] = {
        "id": str(product_id),
        "name": str(record.get("name") or ""),
        "track_inventory": _to_bool(record.get("track_inventory"), False),
        "is_active": _to_bool(record.get("is_active"), True),
        "image_url": _optional_text(record.get("image_url") or record.get("main_image_url")),
    }

    variants = variants_from_records(record.get("variants"))
    if _to_bool(record.get("has_variants"), False) and variants:
        return VariantProduct(
            variants=tuple(variants),
            options=tuple(options_from_records(record.get("options"))),
            price=_to_number(record.get("price"), 0),
            **common,
        )

    compare_price = _to_number(record.get("compare_price"), None)
    return SimpleProduct(
        price=_to_number(record.get("price"), 0),
        compare_price=compare_price if compare_price else None,
        stock_quantity=max(0, _to_count(record.get("stock_quantity"))),
        **common,
    )


def order_line_from_record(record: Any) -> OrderLine:
    """Read an order line; Spanish storefront keys (nombre/cantidad/precio) are accepted."""
    if isinstance(record, OrderLine):
        return record
    record = _require_mapping(record, "Order line")
    name = record.get("name", record.get("nombre"))
    if name is None or str(name).strip() == "":
        raise RecordFormatError("Order line missing required field 'name'")
    quantity = _to_count(record.get("quantity", record.get("cantidad", 1)))
    if quantity < 1:
        raise RecordFormatError(f"Order line '{name}' must have a quantity of at least 1")
    unit_price = _to_number(record.get("unit_price", record.get("price", record.get("precio"))), 0)

    variant_title = _optional_text(record.get("variant_title"))
    label = f"{name} ({variant_title})" if variant_title else str(name)
    return OrderLine(name=label, quantity=quantity, unit_price=unit_price)


def load_json_file(path: str) -> Any:
    max_size = get_config().max_record_size
    file_size = os.path.getsize(path)
    if file_size > max_size:
        raise RecordFormatError(f"File exceeds maximum allowed size ({max_size} bytes): {path}")
    with open(path, "r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as exc:
            raise RecordFormatError(f"Invalid JSON in '{path}': {exc}") from exc
