"""Tests for billing rounding, pricing and the pricing service."""

from decimal import Decimal

import pytest

from fabbill.domain.config import BillingConfig
from fabbill.domain.entities import ServiceLineItem, ServicePricingRule
from fabbill.domain.errors import NotFoundError, ValidationError
from fabbill.domain.pricing import (
    build_rate_card,
    normalize_unit,
    price,
    rate_per_minute,
    resolve_rate,
    round_up_minutes,
    unit_minutes,
)


class TestRoundUpMinutes:
    @pytest.mark.parametrize(
        "minutes,expected",
        [(0, 0), (1, 60), (45, 60), (60, 60), (61, 120), (90, 120), (125, 180), (59.5, 60)],
    )
    def test_rounds_up_to_whole_hour(self, minutes, expected):
        assert round_up_minutes(minutes) == expected

    @pytest.mark.parametrize("minutes", [0, 1, 59, 60, 61, 119, 120, 241, 1439, 10_000])
    def test_rounding_is_idempotent(self, minutes):
        once = round_up_minutes(minutes)

        assert round_up_minutes(once) == once
        assert once % 60 == 0
        assert once >= minutes

    @pytest.mark.parametrize("minutes", [None, -10, float("nan"), float("inf"), "abc"])
    def test_unusable_values_round_to_zero(self, minutes):
        assert round_up_minutes(minutes) == 0


class TestUnits:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("hour", "hour"),
            ("Hours", "hour"),
            ("per hour", "hour"),
            ("/hr", "hour"),
            ("mins", "min"),
            ("Minute", "min"),
            ("day", "day"),
            ("per day", "day"),
        ],
    )
    def test_normalize_unit(self, text, expected):
        assert normalize_unit(text) == expected

    def test_unknown_unit_uses_default(self):
        assert normalize_unit("fortnight") == "hour"
        assert normalize_unit(None, default="min") == "min"

    def test_unit_minutes(self):
        assert unit_minutes("min") == 1
        assert unit_minutes("hour") == 60
        assert unit_minutes("day") == 1440


class TestPrice:
    def test_hourly_rate(self):
        assert price(Decimal("100"), round_up_minutes(125), "hour") == Decimal("300.00")

    def test_per_minute_rate(self):
        assert price(Decimal("5"), 60, "min") == Decimal("300.00")

    def test_daily_rate(self):
        assert price(Decimal("1440"), 120, "day") == Decimal("120.00")

    def test_zero_minutes_costs_nothing(self):
        assert price(Decimal("100"), 0, "hour") == Decimal("0.00")

    def test_result_is_rounded_half_up_to_cents(self):
        assert price(Decimal("0.125"), 60, "hour") == Decimal("0.13")

    def test_rate_per_minute_is_display_only(self):
        assert rate_per_minute(Decimal("50"), "hour") == Decimal("50") / Decimal("60")


class TestResolveRate:
    def test_pricing_rule_wins(self):
        line = ServiceLineItem(id="1", service_name="Laser Cutting", listed_cost=Decimal("80"))
        card = build_rate_card(
            [ServicePricingRule(service_name="Laser Cutting", cost_per_unit=Decimal("50"), unit="per hour")]
        )

        assert resolve_rate(line, card) == (Decimal("50"), "hour", "pricing")

    def test_listed_cost_with_default_unit(self):
        line = ServiceLineItem(id="1", service_name="Laser Cutting", listed_cost=Decimal("80"))

        assert resolve_rate(line, {}) == (Decimal("80"), "hour", "listed")

    def test_default_price_per_minute(self):
        line = ServiceLineItem(id="1", service_name="Laser Cutting")
        config = BillingConfig(default_price_per_min=Decimal("2"))

        assert resolve_rate(line, {}, config) == (Decimal("2"), "min", "default")

    def test_rule_lookup_is_exact(self):
        line = ServiceLineItem(id="1", service_name="laser cutting")
        card = build_rate_card(
            [ServicePricingRule(service_name="Laser Cutting", cost_per_unit=Decimal("50"))]
        )

        assert resolve_rate(line, card)[2] == "default"


class TestPricingService:
    def test_set_and_get_rule(self, pricing_service):
        pricing_service.set_rule("Laser Cutting", Decimal("50"), "per hour")

        rule = pricing_service.get_rule("Laser Cutting")

        assert rule.cost_per_unit == Decimal("50")
        assert rule.unit == "hour"

    def test_list_rules(self, pricing_service):
        pricing_service.set_rule("Laser Cutting", Decimal("50"))
        pricing_service.set_rule("3D Printing", Decimal("5"), "min")

        names = [rule.service_name for rule in pricing_service.list_rules()]

        assert names == ["3D Printing", "Laser Cutting"]

    def test_rejects_unknown_unit(self, pricing_service):
        with pytest.raises(ValidationError, match="Unknown pricing unit"):
            pricing_service.set_rule("Laser Cutting", Decimal("50"), "week")

    def test_rejects_negative_cost(self, pricing_service):
        with pytest.raises(ValidationError, match="negative"):
            pricing_service.set_rule("Laser Cutting", Decimal("-1"), "hour")

    def test_rejects_empty_name(self, pricing_service):
        with pytest.raises(ValidationError):
            pricing_service.set_rule("  ", Decimal("1"), "hour")

    def test_delete_rule(self, pricing_service):
        pricing_service.set_rule("Laser Cutting", Decimal("50"))

        pricing_service.delete_rule("Laser Cutting")

        assert pricing_service.get_rule("Laser Cutting") is None

    def test_delete_missing_rule_raises(self, pricing_service):
        with pytest.raises(NotFoundError):
            pricing_service.delete_rule("Laser Cutting")
