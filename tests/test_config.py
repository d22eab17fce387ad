"""Tests for billing configuration."""

from decimal import Decimal

import pytest

from fabbill.domain.config import BillingConfig, load_billing_config
from fabbill.domain.errors import ValidationError


def test_defaults():
    config = load_billing_config({})

    assert config == BillingConfig()
    assert config.default_pricing_unit == "hour"
    assert config.minutes_per_hour == 60
    assert config.discrepancy_tolerance == Decimal("0.01")


def test_overrides_from_environment():
    config = load_billing_config(
        {
            "FABBILL_DEFAULT_PRICE_PER_MIN": "2.5",
            "FABBILL_DEFAULT_PRICING_UNIT": "Min",
            "FABBILL_MINUTES_PER_HOUR": "60",
            "FABBILL_MINUTES_PER_DAY": "480",
        }
    )

    assert config.default_price_per_min == Decimal("2.5")
    assert config.default_pricing_unit == "min"
    assert config.minutes_per_day == 480


def test_reads_os_environ(monkeypatch):
    monkeypatch.setenv("FABBILL_DEFAULT_PRICING_UNIT", "day")

    assert load_billing_config().default_pricing_unit == "day"


@pytest.mark.parametrize(
    "environ",
    [
        {"FABBILL_DEFAULT_PRICE_PER_MIN": "cheap"},
        {"FABBILL_DEFAULT_PRICE_PER_MIN": "-1"},
        {"FABBILL_DEFAULT_PRICE_PER_MIN": "nan"},
        {"FABBILL_DEFAULT_PRICE_PER_MIN": "Infinity"},
        {"FABBILL_DEFAULT_PRICING_UNIT": "week"},
        {"FABBILL_MINUTES_PER_HOUR": "sixty"},
        {"FABBILL_MINUTES_PER_DAY": "0"},
    ],
)
def test_invalid_values_raise(environ):
    with pytest.raises(ValidationError):
        load_billing_config(environ)
