"""Canonical variant keys.

A key is the option-value mapping with its entries sorted by option name, so
two mappings holding the same pairs compare equal whatever their insertion
order. The key is the only identity used for merging and selection matching.
"""

from __future__ import annotations

from typing import Mapping, Optional, Tuple
from urllib.parse import quote

VariantKey = Tuple[Tuple[str, str], ...]

_PAIR_SEPARATOR = ";"
_VALUE_SEPARATOR = "="


def variant_key(options_map: Optional[Mapping[str, str]]) -> VariantKey:
    """Return the canonical key for an option-value mapping."""
    if not options_map:
        return ()
    return tuple(sorted((str(name), str(value)) for name, value in options_map.items()))


def encode_variant_key(options_map: Optional[Mapping[str, str]]) -> str:
    """Render the canonical key as ``name=value`` pairs joined by ``;``.

    Names and values are percent-escaped so separators inside them cannot
    collide with the framing.
    """
    return _PAIR_SEPARATOR.join(
        f"{quote(name, safe='')}{_VALUE_SEPARATOR}{quote(value, safe='')}" for name, value in variant_key(options_map)
    )
