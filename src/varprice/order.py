"""Order message serialization for WhatsApp checkout.

The message is a fixed Spanish template; amounts go through an injectable
price formatter (Colombian peso style by default: ``$30.000``). The final text
is percent-encoded exactly like ``encodeURIComponent`` so it can be placed in
a ``https://wa.me/<digits>?text=...`` deep link.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable, List, Optional
from urllib.parse import quote

from .config import get_config
from .errors import RecordFormatError
from .schema import order_line_from_record
from .types import CartLine, Money, OrderLine

PriceFormatter = Callable[[Money], str]

WHATSAPP_BASE_URL = "https://wa.me/"
# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def format_price(
    amount: Money,
    *,
    symbol: Optional[str] = None,
    thousands_separator: Optional[str] = None,
    decimal_separator: Optional[str] = None,
    decimals: Optional[int] = None,
) -> str:
    """Format ``amount`` as a currency string, e.g. ``30000 -> "$30.000"``.

    Rounds half away from zero to ``decimals`` places; separators and symbol
    default to the configured ones.
    """
    config = get_config()
    symbol = config.currency_symbol if symbol is None else symbol
    thousands_separator = config.thousands_separator if thousands_separator is None else thousands_separator
    decimal_separator = config.decimal_separator if decimal_separator is None else decimal_separator
    decimals = config.price_decimals if decimals is None else decimals

    value = Decimal(str(amount or 0))
    if not value.is_finite():
        raise RecordFormatError(f"Cannot format a non-finite amount: {amount}")
    value = value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):,.{decimals}f}".partition(".")
    body = integer.replace(",", thousands_separator)
    if fraction:
        body = f"{body}{decimal_separator}{fraction}"
    return f"{sign}{symbol}{body}"


def _as_order_line(line: Any) -> OrderLine:
    if isinstance(line, CartLine):
        name = f"{line.name} ({line.variant_title})" if line.variant_title else line.name
        line = OrderLine(name=name, quantity=line.quantity, unit_price=line.unit_price)
    elif not isinstance(line, OrderLine):
        return order_line_from_record(line)
    if not math.isfinite(line.unit_price):
        raise RecordFormatError(f"Order line '{line.name}' has a non-finite price: {line.unit_price}")
    return line


def order_lines(lines: Iterable[Any]) -> List[OrderLine]:
    return [_as_order_line(line) for line in lines or ()]


def build_order_message(
    lines: Iterable[Any],
    store_name: str,
    customer_name: Optional[str] = None,
    price_formatter: Optional[PriceFormatter] = None,
) -> str:
    """Render cart lines into the plain-text order message.

    Each line shows ``unit_price * quantity``; the total is their sum. The
    ``Mi nombre es`` line appears only when a customer name is given.
    """
    formatter = price_formatter or format_price
    parts = [f"¡Hola! 👋\n\nQuiero hacer un pedido en *{store_name}*:\n\n"]

    total: Money = 0
    for index, line in enumerate(order_lines(lines), start=1):
        subtotal = line.subtotal
        total += subtotal
        parts.append(f"{index}. {line.name} x{line.quantity} - {formatter(subtotal)}\n")

    parts.append(f"\n💰 *Total: {formatter(total)}*")
    if customer_name and customer_name.strip():
        parts.append(f"\n\nMi nombre es: {customer_name.strip()}")
    parts.append("\n\n¡Gracias! 🙏")
    return "".join(parts)


def encode_message(message: str) -> str:
    return quote(message, safe=_URI_COMPONENT_SAFE)


def encode_order_message(
    lines: Iterable[Any],
    store_name: str,
    customer_name: Optional[str] = None,
    price_formatter: Optional[PriceFormatter] = None,
) -> str:
    return encode_message(build_order_message(lines, store_name, customer_name, price_formatter))


def format_whatsapp_number(phone: str, country_code: Optional[str] = None) -> str:
    """Digits only, prefixed with the country code unless already present."""
    country_code = country_code or get_config().country_code
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith(country_code):
        return digits
    return f"{country_code}{digits}"


def whatsapp_url(phone: str, encoded_message: str) -> str:
    return f"{WHATSAPP_BASE_URL}{format_whatsapp_number(phone)}?text={encoded_message}"


def whatsapp_order_url(
    phone: str,
    lines: Iterable[Any],
    store_name: str,
    customer_name: Optional[str] = None,
    price_formatter: Optional[PriceFormatter] = None,
) -> str:
    return whatsapp_url(phone, encode_order_message(lines, store_name, customer_name, price_formatter))
