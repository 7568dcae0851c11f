"""Test the SQL rule storage on SQLite (aiosqlite)."""
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from conftest import make_rule
from core.database import create_engine_for, get_session_context, init_db
from patterns.rule_store import RuleStore
from verticals.pricing.repository import RuleRepository, SqlRuleStorage


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'rules.db'}")
    await init_db(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
async def test_sql_storage_roundtrip(session_factory):
    store = RuleStore(SqlRuleStorage("acme", session_factory))
    await store.load()
    await store.add(make_rule("r1", adjustment_percentage=Decimal("12.5")))
    await store.add(make_rule("r2", condition="<=", exception_quantity=3))
    await store.add(make_rule("r3", active=False))
    await store.reorder(2, 0)
    await store.update("r1", {"name": "Markup"})

    reopened = RuleStore(SqlRuleStorage("acme", session_factory))
    rules = await reopened.load()
    assert [r.id for r in rules] == ["r3", "r1", "r2"]
    assert rules[0].active is False
    assert rules[1].name == "Markup"
    assert rules[1].adjustment_percentage == Decimal("12.5")
    assert rules[2].condition.value == "<="
    assert rules[2].exception_quantity == 3


@pytest.mark.asyncio
async def test_sql_storage_isolates_tenants(session_factory):
    acme = RuleStore(SqlRuleStorage("acme", session_factory))
    globex = RuleStore(SqlRuleStorage("globex", session_factory))
    await acme.load()
    await globex.load()
    await acme.add(make_rule("r1"))
    await globex.add(make_rule("r1"))
    await globex.remove("r1")

    assert [r.id for r in await SqlRuleStorage("acme", session_factory).load()] == ["r1"]
    assert await SqlRuleStorage("globex", session_factory).load() == []


@pytest.mark.asyncio
async def test_save_replaces_whole_collection(session_factory):
    storage = SqlRuleStorage("acme", session_factory)
    await storage.save([make_rule("a"), make_rule("b")])
    await storage.save([make_rule("b")])

    async with get_session_context(session_factory) as session:
        assert await RuleRepository(session).count("acme") == 1


@pytest.mark.asyncio
async def test_sql_storage_keeps_exact_decimals(session_factory):
    storage = SqlRuleStorage("acme", session_factory)
    rule = make_rule(
        "r1",
        reference_price=Decimal("10.12345"),
        adjustment_percentage=Decimal("250000.5"),
    )
    await storage.save([rule])

    (loaded,) = await SqlRuleStorage("acme", session_factory).load()
    assert loaded.reference_price == Decimal("10.12345")
    assert loaded.adjustment_percentage == Decimal("250000.5")
