"""Test the resale table and the markdown renderer."""
from decimal import Decimal

from conftest import make_product
from core.engine.template_engine import TemplateEngine, fmt_money, md_cell
from patterns.domain_config import RoundingPolicy
from verticals.pricing import renderer  # noqa: F401  registers "pricing"
from verticals.pricing.resale import build_resale_table, list_groups, total_resale_value
from verticals.pricing.simulation import ApplyFailure, ApplyReport

PRODUCTS = [
    make_product("p1", name="Frontal X", group_name="Displays", current_price=Decimal("121.39")),
    make_product("p2", name="Bateria Z", group_name="Baterias", current_price=Decimal("10")),
    make_product("p3", name="Sem preco", group_name="Displays", current_price=Decimal("NaN")),
    make_product("p4", name="Cabo", group_name="", current_price=Decimal("1")),
]


def test_resale_rows_round_up_to_tenth():
    rows = build_resale_table(PRODUCTS, "30")
    prices = {row["id"]: row["resale_price"] for row in rows}
    assert prices == {"p1": Decimal("157.9"), "p2": Decimal("13.0"), "p4": Decimal("1.3")}
    assert total_resale_value(rows) == Decimal("172.2")


def test_resale_group_filter_and_policy():
    rows = build_resale_table(PRODUCTS, 30, group="Displays", policy=RoundingPolicy.ceiling("1"))
    assert [(r["id"], r["resale_price"]) for r in rows] == [("p1", Decimal("158"))]
    assert len(build_resale_table(PRODUCTS, 30, group="all")) == 3


def test_list_groups_skips_blank():
    assert list_groups(PRODUCTS) == ["Baterias", "Displays"]


def test_render_simulation_preview():
    result = {
        "summary": {"total": 2, "changed": 1, "unchanged": 1},
        "results": [
            {"product_name": "Frontal | X", "group_name": "Displays", "old_price": "150",
             "new_price": "165", "matched_rule_name": "Rule r1", "status": "changed"},
            {"product_name": "Cabo", "group_name": "", "old_price": "5",
             "new_price": "5", "matched_rule_name": None, "status": "unchanged"},
        ],
    }
    text = TemplateEngine.render("simulation", result, "pricing")
    assert "**Will change:** 1" in text
    assert "| Frontal / X | Displays | R$150.00 | R$165.00 | Rule r1 |" in text
    assert "Cabo" not in text


def test_render_empty_simulation():
    result = {"summary": {"total": 1, "changed": 0, "unchanged": 1}, "results": []}
    assert "No price changes" in TemplateEngine.render("simulation", result, "pricing")


def test_render_apply_report():
    report = ApplyReport(succeeded=2, total=3, failures=[ApplyFailure("p2", "HTTP 500")])
    text = TemplateEngine.render("apply", report.to_dict(), "pricing")
    assert "**Updated:** 2 of 3" in text
    assert "- p2: HTTP 500" in text

    cancelled = ApplyReport(total=3, cancelled=True)
    assert "No prices were changed" in TemplateEngine.render("apply", cancelled.to_dict(), "pricing")


def test_unknown_view_falls_back_to_generic():
    text = TemplateEngine.render("other", {"count": 3}, "pricing")
    assert text.startswith("## other")
    assert "pricing" in TemplateEngine.list_verticals()


def test_formatters():
    assert fmt_money(Decimal("1234.5")) == "R$1,234.50"
    assert fmt_money(Decimal("NaN")) == "N/A"
    assert md_cell("a|b\nc") == "a/b c"
