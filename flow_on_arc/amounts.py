"""Amount codec: human-decimal strings <-> fixed-point token units.

All arithmetic is integer; no float ever touches a base-unit amount.
"""
from __future__ import annotations

import re
from decimal import Decimal

from .errors import InvalidAmount

USD_DECIMALS = 18

_DECIMAL_RE = re.compile(r"^(\d*)(?:\.(\d*))?$")


def to_base_units(value: str, decimals: int) -> int:
    """Parse a decimal string into base units, truncating past ``decimals``.

    Examples:
        "1.23456789", 6 -> 1234567
        "", 18 -> 0
    """
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")
    if not isinstance(value, str):
        raise InvalidAmount(value, "expected a string")

    text = value.strip()
    if text == "":
        return 0

    match = _DECIMAL_RE.match(text)
    if not match or text == ".":
        raise InvalidAmount(value)

    whole, frac = match.group(1) or "0", match.group(2) or ""
    frac = frac[:decimals].ljust(decimals, "0")
    return int(whole) * 10**decimals + (int(frac) if frac else 0)


def to_decimal_string(value: int, decimals: int) -> str:
    """Render base units as a decimal string with trailing zeros trimmed."""
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")

    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(int(value)), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_text}"


def to_decimal(value: int, decimals: int) -> Decimal:
    """Exact Decimal view of a base-unit amount."""
    return Decimal(int(value)).scaleb(-decimals)


def normalize(value: int, decimals: int, target: int = USD_DECIMALS) -> int:
    """Rescale base units to ``target`` decimals (truncating when shrinking)."""
    if decimals == target:
        return int(value)
    if decimals < target:
        return int(value) * 10 ** (target - decimals)
    return int(value) // 10 ** (decimals - target)


def from_decimal(value: Decimal, decimals: int) -> int:
    """Decimal -> base units, truncated toward zero."""
    return int((value * (Decimal(10) ** decimals)).to_integral_value(rounding="ROUND_DOWN"))


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def format_token_amount(value: int, decimals: int = 18) -> str:
    """Display a balance: "0.00", "< 0.01" or grouped with 2-6 places."""
    if not value:
        return "0.00"
    amount = to_decimal(value, decimals)
    if amount < Decimal("0.01"):
        return "< 0.01"
    text = f"{amount:,.6f}".rstrip("0")
    whole, _, frac = text.partition(".")
    return f"{whole}.{frac.ljust(2, '0')}"


def format_usd(amount: float | Decimal | None) -> str:
    if not amount:
        return "$0.00"
    return f"${amount:,.2f}"


def _compact(num: float) -> str | None:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.2f}".rstrip("0").rstrip(".") + "M"
    if num >= 1_000:
        return f"{num / 1_000:.2f}".rstrip("0").rstrip(".") + "k"
    return None


def format_compact_number(amount: float | int | None) -> str:
    """1_500_000 -> "1.5M", 2_000 -> "2k"."""
    if not amount:
        return "0"
    num = float(amount)
    compact = _compact(num)
    if compact is not None:
        return compact
    return f"{num:,.2f}".rstrip("0").rstrip(".")


def format_compact_usd(amount: float | int | None) -> str:
    """5_760_000 -> "$5.76M"."""
    if not amount:
        return "$0.00"
    num = float(amount)
    compact = _compact(num)
    if compact is not None:
        return "$" + compact
    return f"${num:,.2f}"


def format_address(address: str) -> str:
    if not address:
        return ""
    return f"{address[:6]}...{address[-4:]}"
