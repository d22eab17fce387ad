"""Billing rounding and pricing.

Raw minutes are always rounded up to the next full hour before pricing,
whatever unit the service is priced in.
"""

import math
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from fabbill.database.base import Database
from fabbill.domain.config import BillingConfig, PRICING_UNITS
from fabbill.domain.entities import ServiceLineItem, ServicePricingRule
from fabbill.domain.errors import (
    NotFoundError,
    ValidationError,
    pricing_rule_not_found,
    unknown_pricing_unit,
)
from fabbill.utils.amount_parser import parse_cost, round2

DEFAULT_CONFIG = BillingConfig()

_UNIT_ALIASES = {
    "min": "min",
    "mins": "min",
    "minute": "min",
    "minutes": "min",
    "hour": "hour",
    "hours": "hour",
    "hr": "hour",
    "hrs": "hour",
    "day": "day",
    "days": "day",
}


def normalize_unit(unit: Optional[str], default: Optional[str] = "hour") -> Optional[str]:
    """Map a free-text rate-card unit ("per hour", "Mins", "day") to min/hour/day.

    Unrecognized or empty text returns ``default``.
    """
    text = (unit or "").strip().lower()
    if text.startswith("per "):
        text = text[4:].strip()
    text = text.lstrip("/").strip()
    return _UNIT_ALIASES.get(text, default)


def unit_minutes(unit: str, config: BillingConfig = DEFAULT_CONFIG) -> int:
    """Return how many minutes one pricing unit covers."""
    normalized = normalize_unit(unit, config.default_pricing_unit)
    if normalized == "min":
        return 1
    if normalized == "day":
        return config.minutes_per_day
    return config.minutes_per_hour


def round_up_minutes(minutes: Any, unit_minutes: int = 60) -> int:
    """Round minutes up to the next whole billing unit.

    Missing, negative or non-finite values round to 0.
    """
    if minutes is None or isinstance(minutes, bool):
        return 0
    try:
        number = float(minutes)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number <= 0:
        return 0
    return math.ceil(number / unit_minutes) * unit_minutes


def build_rate_card(rules: Sequence[ServicePricingRule]) -> dict[str, ServicePricingRule]:
    """Index pricing rules by exact service name; later rules win."""
    return {rule.service_name: rule for rule in rules}


def resolve_rate(
    line: ServiceLineItem,
    rate_card: Mapping[str, ServicePricingRule],
    config: BillingConfig = DEFAULT_CONFIG,
) -> tuple[Decimal, str, str]:
    """Resolve the rate for a service line.

    Returns:
        Tuple of (rate per unit, pricing unit, source) where source is
        "pricing", "listed" or "default"
    """
    rule = rate_card.get(line.service_name)
    if rule is not None:
        unit = normalize_unit(rule.unit, config.default_pricing_unit)
        return parse_cost(rule.cost_per_unit), unit, "pricing"

    if line.listed_cost is not None:
        return parse_cost(line.listed_cost), config.default_pricing_unit, "listed"

    return config.default_price_per_min, "min", "default"


def price(
    rate: Decimal,
    rounded_minutes: int,
    unit: str,
    config: BillingConfig = DEFAULT_CONFIG,
) -> Decimal:
    """Price a rounded duration: rate x (minutes / minutes per unit), in cents."""
    if rounded_minutes <= 0:
        return Decimal("0.00")
    cost = parse_cost(rate) * Decimal(rounded_minutes) / Decimal(unit_minutes(unit, config))
    return round2(cost)


def rate_per_minute(rate: Decimal, unit: str, config: BillingConfig = DEFAULT_CONFIG) -> Decimal:
    """Rate expressed per minute. Used for display only."""
    return parse_cost(rate) / Decimal(unit_minutes(unit, config))


class PricingService:
    """Service for managing the service rate card."""

    def __init__(self, db: Database):
        """Initialize pricing service.

        Args:
            db: Database instance
        """
        self.db = db

    def set_rule(self, service_name: str, cost_per_unit: Decimal, unit: str = "hour") -> int:
        """Create or replace the pricing rule for a service.

        Args:
            service_name: Exact service name the rule applies to
            cost_per_unit: Cost per pricing unit
            unit: Pricing unit (min, hour or day; "per hour" style text accepted)

        Returns:
            Pricing rule ID

        Raises:
            ValidationError: If name is empty, cost is negative or unit is unknown
        """
        if not service_name or not service_name.strip():
            raise ValidationError("Service name is required")
        normalized = normalize_unit(unit, default=None)
        if normalized not in PRICING_UNITS:
            raise ValidationError(unknown_pricing_unit(unit))
        cost = parse_cost(cost_per_unit)
        if cost < 0:
            raise ValidationError("Cost per unit cannot be negative")

        return self.db.set_pricing_rule(
            service_name=service_name.strip(), cost_per_unit=cost, unit=normalized
        )

    def get_rule(self, service_name: str) -> Optional[ServicePricingRule]:
        """Get the pricing rule for a service, or None."""
        return self.db.get_pricing_rule(service_name)

    def list_rules(self) -> list[ServicePricingRule]:
        """List all pricing rules."""
        return self.db.list_pricing_rules()

    def delete_rule(self, service_name: str) -> None:
        """Delete the pricing rule for a service.

        Raises:
            NotFoundError: If the service has no rule
        """
        if self.db.get_pricing_rule(service_name) is None:
            raise NotFoundError(pricing_rule_not_found(service_name))
        self.db.delete_pricing_rule(service_name)
