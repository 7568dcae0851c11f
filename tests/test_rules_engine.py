"""Test the rule model and first-match-wins evaluation."""
from decimal import Decimal

import pytest

from conftest import make_product, make_rule
from core.errors import InvalidInput
from patterns.domain_config import RoundingPolicy
from patterns.rules_engine import (
    Condition,
    PriceRule,
    condition_met,
    default_rule_name,
    evaluate_product,
    matches_product_type,
)


# ---------------------------------------------------------------------------
# Rule model
# ---------------------------------------------------------------------------

def test_rule_normalises_loose_inputs():
    rule = PriceRule(
        id="r1", name="x", product_type="Frontal",
        reference_price="100", condition=">", adjustment_percentage=10.5,
    )
    assert rule.reference_price == Decimal("100")
    assert rule.adjustment_percentage == Decimal("10.5")
    assert rule.condition is Condition.GT


@pytest.mark.parametrize("overrides, message", [
    ({"reference_price": Decimal("-1")}, "reference_price"),
    ({"reference_price": "NaN"}, "reference_price"),
    ({"adjustment_percentage": "Infinity"}, "adjustment_percentage"),
    ({"condition": "=>"}, "Unknown condition"),
    ({"product_type": "  "}, "product_type"),
    ({"exception_quantity": -2}, "negative"),
    ({"exception_quantity": 1.5}, "integer"),
])
def test_rule_validation(overrides, message):
    with pytest.raises(InvalidInput, match=message):
        make_rule(**overrides)


def test_rule_dict_roundtrip_keeps_decimals_as_strings():
    rule = make_rule(adjustment_percentage=Decimal("-7.25"))
    data = rule.to_dict()
    assert data["adjustment_percentage"] == "-7.25"
    assert data["condition"] == ">"
    assert PriceRule.from_dict(data) == rule


def test_rule_from_dict_rejects_unknown_fields():
    data = make_rule().to_dict()
    data["priority"] = 1
    with pytest.raises(InvalidInput, match="priority"):
        PriceRule.from_dict(data)


def test_default_rule_name():
    assert default_rule_name("Frontal", ">", Decimal("100")) == "Rule Frontal > 100"


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def test_type_match_is_case_insensitive_on_name_or_group():
    rule = make_rule(product_type="bateria")
    assert matches_product_type(rule, make_product(name="BATERIA Moto"))
    assert matches_product_type(rule, make_product(name="Kit", group_name="Baterias"))
    assert not matches_product_type(rule, make_product(name="Frontal", group_name="Displays"))


@pytest.mark.parametrize("condition, price, expected", [
    (">", "100.01", True), (">", "100", False),
    (">=", "100", True), (">=", "99.99", False),
    ("<", "99.99", True), ("<", "100", False),
    ("<=", "100", True), ("<=", "100.01", False),
    ("=", "100.00", True), ("=", "100.01", False),
    ("!=", "100.01", True), ("!=", "100", False),
])
def test_conditions(condition, price, expected):
    rule = make_rule(condition=condition, reference_price=Decimal("100"))
    assert condition_met(rule, Decimal(price)) is expected


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def test_scenario_a_rule_applies():
    outcome = evaluate_product(make_product(), [make_rule()])
    assert outcome.changed is True
    assert outcome.new_price == Decimal("165")
    assert outcome.matched_rule_name == "Rule r1"
    assert outcome.reason == ""


def test_scenario_b_exception_by_quantity():
    outcome = evaluate_product(make_product(stock=5), [make_rule(exception_quantity=5)])
    assert outcome.changed is False
    assert outcome.new_price == Decimal("150")
    assert outcome.matched_rule_name is None
    assert "exception" in outcome.reason


def test_exception_quantity_only_exempts_exact_stock():
    outcome = evaluate_product(make_product(stock=6), [make_rule(exception_quantity=5)])
    assert outcome.changed is True


def test_first_match_wins():
    rules = [
        make_rule("r1", adjustment_percentage=Decimal("10")),
        make_rule("r2", adjustment_percentage=Decimal("50")),
    ]
    outcome = evaluate_product(make_product(), rules)
    assert outcome.matched_rule_name == "Rule r1"
    assert outcome.new_price == Decimal("165")


def test_exception_halts_the_chain():
    rules = [
        make_rule("r1", exception_quantity=5),
        make_rule("r2", adjustment_percentage=Decimal("50")),
    ]
    outcome = evaluate_product(make_product(stock=5), rules)
    assert outcome.changed is False
    assert outcome.new_price == Decimal("150")
    assert "exception" in outcome.reason


def test_non_matching_rules_fall_through():
    rules = [
        make_rule("r1", product_type="Bateria"),
        make_rule("r2", condition="<"),
        make_rule("r3", adjustment_percentage=Decimal("-20")),
    ]
    outcome = evaluate_product(make_product(), rules)
    assert outcome.matched_rule_name == "Rule r3"
    assert outcome.new_price == Decimal("120")


def test_inactive_rule_is_invisible():
    exempting = make_rule("r1", exception_quantity=5, active=False)
    adjusting = make_rule("r2", adjustment_percentage=Decimal("20"))
    product = make_product(stock=5)

    with_inactive = evaluate_product(product, [exempting, adjusting])
    without = evaluate_product(product, [adjusting])
    assert with_inactive == without
    assert with_inactive.new_price == Decimal("180")


def test_no_rule_matched():
    outcome = evaluate_product(make_product(name="Cabo", group_name="Acessorios"), [make_rule()])
    assert outcome.changed is False
    assert outcome.matched_rule_name is None
    assert outcome.reason == "no rule matched"
    assert outcome.new_price == Decimal("150")


def test_rule_path_rounding_is_configurable():
    rule = make_rule(adjustment_percentage=Decimal("3.33"))
    product = make_product(current_price=Decimal("150"))
    assert evaluate_product(product, [rule]).new_price == Decimal("154.9950")
    rounded = evaluate_product(product, [rule], RoundingPolicy.ceiling("0.10"))
    assert rounded.new_price == Decimal("155.00")


@pytest.mark.parametrize("price", [Decimal("NaN"), Decimal("-5"), "n/a"])
def test_malformed_product_price_raises(price):
    with pytest.raises(InvalidInput):
        evaluate_product(make_product(current_price=price), [make_rule()])
