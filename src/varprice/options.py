"""Structural validation of a product's option definitions."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .config import get_config
from .errors import OptionValidationError
from .types import OptionDefinition, ValidationResult

logger = logging.getLogger(__name__)


def _option_parts(option: Any) -> Tuple[Any, Any]:
    if isinstance(option, OptionDefinition):
        return option.name, list(option.values)
    if isinstance(option, Mapping):
        return option.get("name"), option.get("values")
    return None, None


def _fold(text: Any) -> str:
    if text is None:
        return ""
    return str(text).strip().casefold()


def validate_options(options: Any, max_options: Optional[int] = None) -> ValidationResult:
    """Check a candidate option list for structural legality.

    Errors are collected in rule order and returned, never raised, so callers
    can decide whether to block persistence.
    """
    if not isinstance(options, (list, tuple)):
        return ValidationResult(valid=False, errors=("Options must be a list",))

    limit = max_options if max_options is not None else get_config().max_options
    errors: List[str] = []
    if len(options) > limit:
        errors.append(f"At most {limit} options are allowed")

    names = set()
    for index, option in enumerate(options, start=1):
        name, values = _option_parts(option)
        has_name = isinstance(name, str) and bool(name.strip())

        if not has_name:
            errors.append(f"Option {index} needs a name")
        else:
            folded = _fold(name)
            if folded in names:
                errors.append(f'Option name "{name}" is duplicated')
            names.add(folded)

        label = name if has_name else index
        if not isinstance(values, (list, tuple)) or not values:
            errors.append(f'Option "{label}" needs at least one value')
            continue

        seen = set()
        for value in values:
            folded = _fold(value)
            if folded in seen:
                errors.append(f'Value "{value}" is duplicated in "{label}"')
            seen.add(folded)

    if errors:
        logger.debug("Option validation failed with %d error(s)", len(errors))
    return ValidationResult(valid=not errors, errors=tuple(errors))


def normalize_option_values(values: Any) -> List[str]:
    """Trim values, drop blanks and drop case-insensitive repeats (first wins)."""
    if not isinstance(values, (list, tuple)):
        return []
    result: List[str] = []
    seen = set()
    for value in values:
        text = "" if value is None else str(value).strip()
        if not text or text.casefold() in seen:
            continue
        seen.add(text.casefold())
        result.append(text)
    return result


def coerce_options(options: Iterable[Any]) -> List[OptionDefinition]:
    """Turn mappings into ``OptionDefinition`` records, skipping unusable entries."""
    coerced: List[OptionDefinition] = []
    for option in options or ():
        name, values = _option_parts(option)
        if not isinstance(name, str) or not name.strip():
            continue
        if not isinstance(values, (list, tuple)) or not values:
            continue
        coerced.append(OptionDefinition(name=name, values=tuple(str(value) for value in values)))
    return coerced


def ensure_valid_options(options: Any, max_options: Optional[int] = None) -> List[OptionDefinition]:
    """Validate strictly and return typed options.

    Raises:
        OptionValidationError: if any structural rule is violated.
    """
    result = validate_options(options, max_options=max_options)
    if not result.valid:
        raise OptionValidationError(result.errors)
    return coerce_options(options)
