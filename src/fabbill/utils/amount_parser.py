"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import math
import re
from typing import Any

CENT = Decimal("0.01")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "₱123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and thousands separators
    amount_str = re.sub(r"[₱$€£¥]|PHP", "", amount_str)
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}': not a finite number")
    return -amount if is_negative else amount


def parse_cost(value: Any) -> Decimal:
    """Coerce a cost value of any shape into a Decimal.

    None, unparseable strings and non-finite numbers read as zero, so a
    single bad field never aborts a recompute.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return Decimal("0")
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return parse_amount(value)
        except ValueError:
            return Decimal("0")
    return Decimal("0")


def parse_optional_cost(value: Any) -> Decimal | None:
    """Like parse_cost, but keeps a missing value as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_cost(value)


def round2(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_price(price: Any, symbol: str = "₱") -> str:
    """Format a price with currency symbol and two decimals.

    String input is stripped of anything that is not part of a number
    before parsing.
    """
    if isinstance(price, str):
        cleaned = re.sub(r"[^0-9.\-]", "", price)
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            amount = Decimal("0")
        if not amount.is_finite():
            amount = Decimal("0")
    else:
        amount = parse_cost(price)
    return f"{symbol}{round2(amount):.2f}"
