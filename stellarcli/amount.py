"""
Exact amount and price arithmetic.

Ledger amounts are fixed point with 7 decimal digits. Internally every amount
is a Fraction counted in stroops (1 unit = 10,000,000 stroops), so order book
walks and price products never go through floating point.
"""
import re
from fractions import Fraction
from typing import Any

from .exceptions import InvalidAmount

PRECISION = 7
STROOPS_PER_UNIT = 10 ** PRECISION
MAX_AMOUNT = 2 ** 63 - 1  # stroops, int64 on the ledger

ZERO = Fraction(0)

_AMOUNT_RE = re.compile(r"^\+?(\d*)(?:\.(\d*))?$")
_PRICE_RE = re.compile(r"^\+?(\d*)(?:\.(\d*))?$")


def parse_amount(text: str) -> Fraction:
    """Parse a decimal amount like '12.5' into stroops."""
    s = text.strip() if isinstance(text, str) else ""
    m = _AMOUNT_RE.match(s)
    if not s or m is None:
        raise InvalidAmount(f"invalid amount: '{text}'")

    whole, frac = m.group(1), m.group(2) or ""
    if not whole and not frac:
        raise InvalidAmount(f"invalid amount: '{text}'")
    if len(frac) > PRECISION:
        raise InvalidAmount(f"too many decimal places (max {PRECISION}): '{text}'")

    stroops = int(whole or "0") * STROOPS_PER_UNIT + int(frac.ljust(PRECISION, "0"))
    if stroops > MAX_AMOUNT:
        raise InvalidAmount(f"amount too large: '{text}'")

    return Fraction(stroops)


def float_string(value: Fraction, digits: int) -> str:
    """Render a rational with exactly `digits` fractional digits, rounding half up."""
    value = Fraction(value)
    scale = 10 ** digits
    scaled = abs(value) * scale
    n = (scaled.numerator * 2 + scaled.denominator) // (scaled.denominator * 2)

    sign = "-" if value < 0 else ""
    whole, frac = divmod(n, scale)
    if digits == 0:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{str(frac).rjust(digits, '0')}"


def format_amount(value: Fraction, precision: int = PRECISION) -> str:
    """Format a stroop amount as units with `precision` decimals."""
    return float_string(Fraction(value) / STROOPS_PER_UNIT, precision)


def format_amount_pretty(value: Fraction) -> str:
    return format_amount(value, 2)


def parse_price(text: str) -> Fraction:
    """Parse a positive decimal price. Prices are plain ratios, not stroops."""
    s = text.strip() if isinstance(text, str) else ""
    m = _PRICE_RE.match(s)
    if not s or m is None or not (m.group(1) or m.group(2)):
        raise InvalidAmount(f"invalid price: '{text}'")

    price = Fraction(f"{m.group(1) or '0'}.{m.group(2) or '0'}")
    if price <= 0:
        raise InvalidAmount(f"price must be greater than zero: '{text}'")
    return price


def format_price(value: Fraction, digits: int = PRECISION) -> str:
    return float_string(value, digits)


def price_to_fraction(price: Any) -> Fraction:
    """Convert a Horizon price_r dict, a stellar_sdk Price or an (n, d) pair."""
    if isinstance(price, dict):
        return Fraction(int(price["n"]), int(price["d"]))
    if isinstance(price, (tuple, list)):
        n, d = price
        return Fraction(int(n), int(d))
    if hasattr(price, "n") and hasattr(price, "d"):
        return Fraction(int(price.n), int(price.d))
    raise InvalidAmount(f"unsupported price value: {price!r}")
