"""Variant generation and reconciliation.

Generation expands options into the cartesian product of their values, in the
declared option order. Merging carries commercial data (price, sku, stock,
image, active flag) from persisted variants onto freshly generated ones that
share a canonical key.
"""

from __future__ import annotations

import itertools
import logging
import time
import uuid
from dataclasses import replace
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .config import get_config
from .keys import encode_variant_key, variant_key
from .options import coerce_options, validate_options
from .types import MergeResult, OptionDefinition, ValidationResult, Variant

logger = logging.getLogger(__name__)

TITLE_SEPARATOR = " / "
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    if number <= 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_variant_id(prefix: Optional[str] = None) -> str:
    """Return a fresh identity like ``var_lq2x9k1a_3f9c0d21e``."""
    prefix = prefix or get_config().variant_id_prefix
    stamp = _base36(int(time.time() * 1000))
    return f"{prefix}_{stamp}_{uuid.uuid4().hex[:9]}"


def generate_variant_title(options_map: Optional[Mapping[str, str]], product_options: Sequence[OptionDefinition] = ()) -> str:
    """Join option values in product option order, e.g. ``Rojo / M``.

    Without a usable product order the mapping's own order is used.
    """
    if not options_map:
        return ""
    ordered = [options_map[option.name] for option in product_options if options_map.get(option.name)]
    if not ordered:
        return TITLE_SEPARATOR.join(str(value) for value in options_map.values())
    return TITLE_SEPARATOR.join(ordered)


def generate_variants(options: Any) -> List[Variant]:
    """Expand options into one zero-priced variant stub per value combination.

    Options with a blank name or no values are skipped. An empty or unusable
    option list yields no variants, meaning the product has no variants.
    """
    if not isinstance(options, (list, tuple)):
        return []
    usable = coerce_options(options)
    if not usable:
        return []

    variants: List[Variant] = []
    for combination in itertools.product(*(option.values for option in usable)):
        options_map = {option.name: value for option, value in zip(usable, combination)}
        variants.append(
            Variant(
                id=generate_variant_id(),
                title=generate_variant_title(options_map, usable),
                options=options_map,
            )
        )
    logger.debug("Generated %d variant(s) from %d option(s)", len(variants), len(usable))
    return variants


def merge_variants_detailed(existing: Optional[Iterable[Variant]], fresh: Optional[Iterable[Variant]]) -> MergeResult:
    """Merge fresh variants with persisted ones and report the orphans.

    A fresh variant whose key matches a persisted one keeps the persisted
    identity and commercial fields, and takes ``title`` and ``options`` from
    the fresh variant. Persisted variants with no fresh counterpart are
    returned in ``orphaned``; they are not part of the merged set.
    """
    existing_list = list(existing or ())
    fresh_list = list(fresh or ())

    if not fresh_list:
        if existing_list:
            logger.warning("Variant merge dropped all %d persisted variant(s): no options defined", len(existing_list))
        return MergeResult(variants=[], orphaned=existing_list)
    if not existing_list:
        return MergeResult(variants=fresh_list)

    # Last persisted variant wins a shared key; the others are reported as orphans.
    existing_by_key = {}
    for position, variant in enumerate(existing_list):
        key = variant_key(variant.options)
        if key in existing_by_key:
            logger.warning("Persisted variants share key %s; keeping the later one", encode_variant_key(variant.options))
        existing_by_key[key] = position

    carried = set()
    merged: List[Variant] = []
    for candidate in fresh_list:
        key = variant_key(candidate.options)
        position = existing_by_key.get(key)
        if position is None:
            merged.append(candidate)
            continue
        carried.add(position)
        merged.append(replace(existing_list[position], title=candidate.title, options=dict(candidate.options)))

    orphaned = [variant for position, variant in enumerate(existing_list) if position not in carried]
    if orphaned:
        logger.warning(
            "Variant merge orphaned %d persisted variant(s): %s",
            len(orphaned),
            ", ".join(encode_variant_key(variant.options) for variant in orphaned),
        )
    logger.debug("Merged %d variant(s), %d matched persisted data", len(merged), len(carried))
    return MergeResult(variants=merged, orphaned=orphaned)


def merge_variants(existing: Optional[Iterable[Variant]], fresh: Optional[Iterable[Variant]]) -> List[Variant]:
    """Merge fresh variants with persisted ones; orphans are dropped."""
    return merge_variants_detailed(existing, fresh).variants


def recompute_variants(options: Any, existing: Optional[Iterable[Variant]] = None) -> MergeResult:
    """Regenerate the variant set for committed options and merge it.

    Invalid options produce an empty variant set, which orphans every
    persisted variant.
    """
    validation = validate_options(options)
    if not validation.valid:
        logger.info("Recompute skipped generation: %s", "; ".join(validation.errors))
        fresh: List[Variant] = []
    else:
        fresh = generate_variants(options)
    return merge_variants_detailed(existing, fresh)


def validate_variants(variants: Any) -> ValidationResult:
    if not isinstance(variants, (list, tuple)):
        return ValidationResult(valid=False, errors=("Variants must be a list",))

    errors: List[str] = []
    if not variants:
        errors.append("At least one variant is required")

    for index, variant in enumerate(variants, start=1):
        label = variant.title or f"Variant {index}"
        if variant.price is None or variant.price < 0:
            errors.append(f"{label}: invalid price")
        if not variant.options:
            errors.append(f"{label}: missing options")

    if not any((variant.price or 0) > 0 for variant in variants):
        errors.append("At least one variant must have a price greater than 0")

    return ValidationResult(valid=not errors, errors=tuple(errors))


def calculate_base_price(variants: Optional[Sequence[Variant]]) -> float:
    """Lowest positive price among active variants (or among all, if none is active)."""
    if not variants:
        return 0
    active = [variant for variant in variants if variant.is_active is not False]
    pool = active or list(variants)
    prices = [variant.price for variant in pool if (variant.price or 0) > 0]
    return min(prices) if prices else 0
