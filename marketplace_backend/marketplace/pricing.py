"""
Price normalization helpers.

Prices reach the service in several shapes: integer cents in `product_variants`, a NUMERIC
`products.base_price` that some rows store as cents and others as dollars, and strings
coming from request bodies. Everything is normalized to integer cents with one heuristic:
an integral number is already cents, a fractional number is dollars.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Tuple

from marketplace.config import DEFAULT_CURRENCY

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "TTD": "TT$",
    "JMD": "J$",
    "XCD": "EC$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

_DIGITS = re.compile(r"[^0-9]")


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            number = Decimal(raw)
        except InvalidOperation:
            return None
    else:
        return None
    if not number.is_finite():
        return None
    return number


# PUBLIC_INTERFACE
def to_cents(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """
    Normalize a price to integer cents.

    Integral values are treated as cents, fractional values as dollars:
    `1299 -> 1299`, `12.99 -> 1299`, `"19.99" -> 1999`. Missing or unparseable
    values return `default`.
    """
    number = _to_decimal(value)
    if number is None:
        return default
    if number == number.to_integral_value():
        return int(number.to_integral_value(rounding=ROUND_HALF_UP))
    return int((number * 100).to_integral_value(rounding=ROUND_HALF_UP))


# PUBLIC_INTERFACE
def format_price(amount_in_cents: Any, currency: Optional[str] = None) -> Optional[str]:
    """Format integer cents for display, e.g. `129999 -> "$1,299.99"`."""
    cents = _to_decimal(amount_in_cents)
    if cents is None:
        return None
    code = (currency or DEFAULT_CURRENCY).upper()
    amount = cents / 100
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {amount:,.2f}"
    return f"{symbol}{amount:,.2f}"


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


# PUBLIC_INTERFACE
def variant_price_cents(variant: Any) -> Optional[int]:
    """The price of a variant in cents, preferring the sale price. None if it has no price."""
    for name in ("sale_price_in_cents", "price_in_cents", "price", "price_cents"):
        cents = to_cents(_field(variant, name), default=None)
        if cents is not None:
            return cents
    return None


# PUBLIC_INTERFACE
def effective_price_cents(product: Any, variant: Any = None) -> Tuple[int, str]:
    """
    Price a buyer pays for `product`, as `(cents, source)`.

    Uses `variant` (or the product's first variant) when it carries a price, else the
    product's base price. `source` is one of "variant", "base" or "default".
    """
    if variant is None:
        variants = _field(product, "variants") or []
        variant = variants[0] if variants else None
    if variant is not None:
        cents = variant_price_cents(variant)
        if cents is not None:
            return cents, "variant"
    cents = to_cents(_field(product, "base_price"), default=None)
    if cents is not None:
        return cents, "base"
    return 0, "default"


# PUBLIC_INTERFACE
def parse_price_range(price_range: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    Parse a storefront price-range token into inclusive `(min_cents, max_cents)` bounds.

    Accepted forms: "all", "under-50", "over-100", "25-50" (dollar amounts).
    """
    if not price_range:
        return None, None
    token = str(price_range).strip().lower()
    if not token or token == "all":
        return None, None

    def dollars(part: str) -> Optional[int]:
        digits = _DIGITS.sub("", part)
        return int(digits) * 100 if digits else None

    if token.startswith("under"):
        return None, dollars(token)
    if token.startswith("over"):
        return dollars(token), None
    if "-" in token:
        parts = token.split("-")
        if len(parts) == 2:
            low, high = dollars(parts[0]), dollars(parts[1])
            if low is not None and high is not None:
                return low, high
    return None, None
