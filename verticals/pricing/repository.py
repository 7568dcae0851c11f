"""Pricing repository: SQL-backed rule storage with tenant isolation.

SqlRuleStorage implements the RuleStorage port on top of RuleRepository.
A save replaces the tenant's whole collection inside one transaction, which
gives the store atomic full-collection writes.
"""

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database import get_session_context
from patterns.repository import BaseRepository
from patterns.rules_engine import PriceRule
from verticals.pricing.models.db_models import PriceRuleRecord


# ---------------------------------------------------------------------------
# Rule repository
# ---------------------------------------------------------------------------

class RuleRepository(BaseRepository[PriceRuleRecord]):
    """Repository for persisted price rules, ordered by position."""

    model = PriceRuleRecord
    order_column = "position"

    async def load_rules(self, tenant_id: str) -> list[PriceRule]:
        rows = await self.list_all(tenant_id)
        return [row.to_rule() for row in rows]

    async def replace_rules(self, tenant_id: str, rules: Sequence[PriceRule]) -> None:
        await self.delete_all(tenant_id)
        await self.bulk_create(
            tenant_id,
            [PriceRuleRecord.columns_from_rule(rule, pos) for pos, rule in enumerate(rules)],
        )


# ---------------------------------------------------------------------------
# Storage adapter
# ---------------------------------------------------------------------------

class SqlRuleStorage:
    """RuleStorage over the price_rules table.

    Usage::

        store = RuleStore(SqlRuleStorage(tenant_id="acme"))
        await store.load()
    """

    def __init__(
        self,
        tenant_id: str = "default",
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.tenant_id = tenant_id
        self.session_factory = session_factory

    async def load(self) -> list[PriceRule]:
        async with get_session_context(self.session_factory) as session:
            return await RuleRepository(session).load_rules(self.tenant_id)

    async def save(self, rules: Sequence[PriceRule]) -> None:
        async with get_session_context(self.session_factory) as session:
            await RuleRepository(session).replace_rules(self.tenant_id, rules)
