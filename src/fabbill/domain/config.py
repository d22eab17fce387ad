"""Billing configuration."""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from fabbill.domain.errors import ValidationError

PRICING_UNITS = ("min", "hour", "day")


@dataclass(frozen=True)
class BillingConfig:
    """Constants used by the billing engine.

    Rounding always uses ``minutes_per_hour`` regardless of the pricing unit.
    """

    default_price_per_min: Decimal = Decimal("0")
    default_pricing_unit: str = "hour"
    minutes_per_hour: int = 60
    minutes_per_day: int = 1440
    discrepancy_tolerance: Decimal = Decimal("0.01")
    currency_symbol: str = "₱"


def _read_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{raw}'")
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")
    return value


def load_billing_config(environ: Optional[Mapping[str, str]] = None) -> BillingConfig:
    """Build a BillingConfig from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        BillingConfig with any FABBILL_* overrides applied

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    if environ is None:
        environ = os.environ

    price_per_min = Decimal("0")
    raw_price = environ.get("FABBILL_DEFAULT_PRICE_PER_MIN")
    if raw_price:
        try:
            price_per_min = Decimal(raw_price)
        except InvalidOperation:
            raise ValidationError(
                f"FABBILL_DEFAULT_PRICE_PER_MIN must be a number, got '{raw_price}'"
            )
        if not price_per_min.is_finite():
            raise ValidationError(
                f"FABBILL_DEFAULT_PRICE_PER_MIN must be a finite number, got '{raw_price}'"
            )
        if price_per_min < 0:
            raise ValidationError("FABBILL_DEFAULT_PRICE_PER_MIN cannot be negative")

    unit = (environ.get("FABBILL_DEFAULT_PRICING_UNIT") or "hour").strip().lower()
    if unit not in PRICING_UNITS:
        raise ValidationError(
            f"FABBILL_DEFAULT_PRICING_UNIT must be one of {', '.join(PRICING_UNITS)}, got '{unit}'"
        )

    return BillingConfig(
        default_price_per_min=price_per_min,
        default_pricing_unit=unit,
        minutes_per_hour=_read_int(environ, "FABBILL_MINUTES_PER_HOUR", 60),
        minutes_per_day=_read_int(environ, "FABBILL_MINUTES_PER_DAY", 1440),
    )
