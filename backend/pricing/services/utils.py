from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


def normalize_price(val) -> Decimal:
    """
    Turn any catalog price into a non-negative Decimal.

    Accepts numbers and strings such as "$12.50" or "25 per hour". Anything
    unparseable (None, "", "n/a", NaN, infinities) becomes ZERO, as do negative values.
    """
    if val is None or isinstance(val, bool):
        return ZERO
    if isinstance(val, (int, float, Decimal)):
        raw = str(val)
    else:
        raw = _NON_NUMERIC.sub("", str(val))
    try:
        amount = Decimal(raw)
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < ZERO:
        return ZERO
    return amount


def to_quantity(val, default: int = 0) -> int:
    """Coerce a selection quantity to int; junk becomes `default`."""
    if val is None or isinstance(val, bool):
        return default
    try:
        return int(Decimal(str(val)))
    except (InvalidOperation, ValueError, OverflowError):
        return default


def money(amount: Decimal) -> Decimal:
    """Quantize a money amount to cents, half-up."""
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def money_float(amount: Decimal) -> float:
    """Cents-rounded float for JSON payloads."""
    return float(money(amount))


def is_uuid_like(value: str) -> bool:
    return bool(value) and bool(_UUID_RE.match(value))
