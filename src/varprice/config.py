"""Engine settings from ``[tool.varprice]`` in the nearest ``pyproject.toml``.

Every key can be overridden with a ``VARPRICE_<KEY>`` environment variable.
Settings are cached per directory; call ``refresh_config`` after changing
either source.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import ConfigError

ENV_PREFIX = "VARPRICE_"
_DEFAULT_MAX_RECORD_SIZE = 5 * 1024 * 1024


@dataclass(frozen=True)
class Config:
    max_options: int = 3
    currency_symbol: str = "$"
    thousands_separator: str = "."
    decimal_separator: str = ","
    price_decimals: int = 0
    country_code: str = "57"
    variant_id_prefix: str = "var"
    simple_variant_token: str = "simple"
    max_record_size: int = _DEFAULT_MAX_RECORD_SIZE


def _nearest_pyproject(directory: Path) -> Optional[Path]:
    return next(
        (parent / "pyproject.toml" for parent in (directory, *directory.parents) if (parent / "pyproject.toml").is_file()),
        None,
    )


def _read_section(pyproject: Path) -> Mapping[str, Any]:
    try:
        document = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {pyproject}: {exc}") from exc
    tool = document.get("tool")
    section = tool.get("varprice") if isinstance(tool, dict) else None
    return section if isinstance(section, Mapping) else {}


def _as_int(value: Any, fallback: int, low: int, high: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return fallback
    number = max(low, number)
    return number if high is None else min(high, number)


def _as_text(value: Any, fallback: str) -> str:
    return fallback if value is None else str(value)


def build_config(section: Mapping[str, Any]) -> Config:
    """Resolve every setting from env first, then ``section``, then defaults."""
    defaults = Config()

    def lookup(key: str) -> Any:
        env_value = os.environ.get(ENV_PREFIX + key.upper())
        if env_value is not None:
            return env_value
        return section.get(key, getattr(defaults, key))

    country_digits = "".join(ch for ch in _as_text(lookup("country_code"), "") if ch.isdigit())
    return Config(
        max_options=_as_int(lookup("max_options"), defaults.max_options, low=1),
        currency_symbol=_as_text(lookup("currency_symbol"), defaults.currency_symbol),
        thousands_separator=_as_text(lookup("thousands_separator"), defaults.thousands_separator),
        decimal_separator=_as_text(lookup("decimal_separator"), defaults.decimal_separator),
        price_decimals=_as_int(lookup("price_decimals"), defaults.price_decimals, low=0, high=4),
        country_code=country_digits or defaults.country_code,
        variant_id_prefix=_as_text(lookup("variant_id_prefix"), defaults.variant_id_prefix),
        simple_variant_token=_as_text(lookup("simple_variant_token"), defaults.simple_variant_token),
        max_record_size=_as_int(lookup("max_record_size"), defaults.max_record_size, low=1),
    )


@lru_cache(maxsize=32)
def load_config(start_dir: Optional[str] = None) -> Config:
    pyproject = _nearest_pyproject(Path(start_dir or os.getcwd()).resolve())
    return build_config(_read_section(pyproject) if pyproject else {})


def get_config() -> Config:
    return load_config(os.getcwd())


def refresh_config(start_dir: Optional[str] = None) -> Config:
    load_config.cache_clear()
    return load_config(start_dir)
