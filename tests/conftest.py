"""Shared fakes for pricing tests."""
from decimal import Decimal

import pytest
import pytest_asyncio

from core.errors import ExternalCallFailure
from patterns.rule_store import InMemoryRuleStorage, RuleStore
from patterns.rules_engine import PriceRule, ProductSnapshot


class StaticCatalog:
    """In-memory CatalogProvider that records every price update."""

    def __init__(self, products=None, failing_ids=()):
        self.products = list(products or [])
        self.failing_ids = set(failing_ids)
        self.fetch_count = 0
        self.update_calls: list[tuple[str, Decimal]] = []

    async def fetch_products(self):
        self.fetch_count += 1
        return list(self.products)

    async def update_product_price(self, product_id, new_price):
        self.update_calls.append((product_id, new_price))
        if product_id in self.failing_ids:
            raise ExternalCallFailure(f"PUT /produtos/{product_id} failed: 500", status_code=500)


def make_rule(rule_id="r1", **overrides) -> PriceRule:
    fields = {
        "id": rule_id,
        "name": f"Rule {rule_id}",
        "product_type": "Frontal",
        "reference_price": Decimal("100"),
        "condition": ">",
        "adjustment_percentage": Decimal("10"),
        "exception_quantity": 0,
        "active": True,
    }
    fields.update(overrides)
    return PriceRule(**fields)


def make_product(product_id="p1", **overrides) -> ProductSnapshot:
    fields = {
        "id": product_id,
        "name": "Frontal X",
        "group_name": "Displays",
        "current_price": Decimal("150"),
        "stock": 5,
    }
    fields.update(overrides)
    return ProductSnapshot(**fields)


@pytest.fixture
def catalog():
    return StaticCatalog([
        make_product("p1", name="Frontal X", current_price=Decimal("150")),
        make_product("p2", name="Frontal Y", current_price=Decimal("80")),
        make_product("p3", name="Bateria Z", group_name="Baterias", current_price=Decimal("200")),
    ])


@pytest.fixture
def storage():
    return InMemoryRuleStorage()


@pytest_asyncio.fixture
async def store(storage):
    rule_store = RuleStore(storage)
    await rule_store.load()
    return rule_store
