"""Test the pure pricing functions and rounding policies."""
import itertools
from decimal import Decimal

import pytest

from core.errors import InvalidInput
from patterns.domain_config import PriceUpdatesConfig, RoundingPolicy
from patterns.pricing import adjust_price, ceil_to_increment, resale_price, to_decimal


def test_ceil_to_increment_rounds_up():
    assert ceil_to_increment(Decimal("157.81"), Decimal("0.10")) == Decimal("157.90")
    assert ceil_to_increment(Decimal("157.80"), Decimal("0.10")) == Decimal("157.80")
    assert ceil_to_increment(Decimal("10.01"), Decimal("1")) == Decimal("11")


def test_adjust_price_scenario_markup():
    assert adjust_price(Decimal("150"), Decimal("10")) == Decimal("165")


def test_adjust_price_zero_percentage_keeps_price():
    assert adjust_price(Decimal("99.95"), 0) == Decimal("99.95")
    assert adjust_price(Decimal("99.95"), 0, RoundingPolicy.ceiling("0.10")) == Decimal("100.00")


def test_adjust_price_discount_rounds_up():
    # 100 * 0.877 = 87.7 exactly; 99.99 * 0.9 = 89.991 -> 90.00
    assert adjust_price(Decimal("100"), Decimal("-12.3"), RoundingPolicy.ceiling("0.10")) == Decimal("87.7")
    assert adjust_price(Decimal("99.99"), Decimal("-10"), RoundingPolicy.ceiling("0.10")) == Decimal("90.00")


def test_adjust_price_zero_base():
    assert adjust_price(0, Decimal("25")) == 0


def test_adjust_price_floors_at_zero():
    assert adjust_price(Decimal("50"), Decimal("-150")) == 0


@pytest.mark.parametrize("increment", ["0.10", "1"])
def test_ceiling_property(increment):
    policy = RoundingPolicy.ceiling(increment)
    unit = Decimal(increment)
    bases = [Decimal("0"), Decimal("0.01"), Decimal("9.99"), Decimal("157.81"), Decimal("1234.567")]
    pcts = [Decimal("0"), Decimal("5"), Decimal("12.5"), Decimal("33.333"), Decimal("100")]
    for base, pct in itertools.product(bases, pcts):
        exact = base * (1 + pct / 100)
        rounded = adjust_price(base, pct, policy)
        assert rounded >= exact
        assert rounded - exact < unit


@pytest.mark.parametrize("base", [Decimal("-1"), Decimal("NaN"), Decimal("Infinity"), "abc", None])
def test_adjust_price_rejects_bad_base(base):
    with pytest.raises(InvalidInput):
        adjust_price(base, 10)


@pytest.mark.parametrize("pct", [Decimal("NaN"), Decimal("-Infinity"), "ten", True])
def test_adjust_price_rejects_bad_percentage(pct):
    with pytest.raises(InvalidInput):
        adjust_price(Decimal("10"), pct)


def test_to_decimal_goes_through_str_for_floats():
    assert to_decimal(150.1) == Decimal("150.1")
    with pytest.raises(InvalidInput, match="not a number"):
        to_decimal("1,5x", "reference_price")


def test_resale_price_defaults_to_ceiling_tenth():
    assert resale_price(Decimal("121.39"), Decimal("30")) == Decimal("157.90")


def test_rounding_policy_rejects_bad_increment():
    with pytest.raises(ValueError, match="positive"):
        RoundingPolicy.ceiling("0")


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("PRICING_RESALE_INCREMENT", "1")
    monkeypatch.setenv("PRICING_RULE_INCREMENT", "none")
    monkeypatch.setenv("PRICING_APPLY_CONCURRENCY", "4")
    monkeypatch.setenv("PRICING_STORAGE_BACKEND", "sql")
    config = PriceUpdatesConfig.from_env()
    assert config.pricing.resale_rounding.increment == Decimal("1")
    assert config.pricing.rule_rounding.increment is None
    assert config.pricing.apply_concurrency == 4
    assert config.storage.backend == "sql"


def test_config_defaults():
    config = PriceUpdatesConfig.default()
    assert config.pricing.resale_rounding.increment == Decimal("0.10")
    assert config.pricing.rule_rounding.increment is None
    assert config.pricing.apply_concurrency == 1
