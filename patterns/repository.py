"""Async repository pattern for database access.

Provides a generic base repository with tenant-isolated reads and writes.
Verticals subclass this to add domain-specific queries.

Example: RuleRepository extending BaseRepository for the price_rules table.
"""

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with tenant isolation.

    Subclass and set `model` to your SQLAlchemy model::

        class RuleRepository(BaseRepository[PriceRuleRecord]):
            model = PriceRuleRecord
            order_column = "position"
    """

    model: type[ModelT]
    order_column: str | None = None

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- Reads --

    async def list_all(
        self,
        tenant_id: str,
        filters: dict[str, Any] | None = None,
    ) -> Sequence[ModelT]:
        """All rows for a tenant, ordered by `order_column` when set."""
        stmt = select(self.model).where(self.model.tenant_id == tenant_id)

        if filters:
            for col_name, value in filters.items():
                if hasattr(self.model, col_name) and value is not None:
                    stmt = stmt.where(getattr(self.model, col_name) == value)

        if self.order_column:
            stmt = stmt.order_by(getattr(self.model, self.order_column))

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count(self, tenant_id: str) -> int:
        stmt = select(func.count()).select_from(self.model).where(
            self.model.tenant_id == tenant_id
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    # -- Writes --

    async def bulk_create(self, tenant_id: str, rows: Sequence[dict[str, Any]]) -> list[ModelT]:
        items = [self.model(tenant_id=tenant_id, **data) for data in rows]
        self.session.add_all(items)
        await self.session.flush()
        return items

    async def delete_all(self, tenant_id: str) -> int:
        """Delete every row of a tenant. Returns the number removed."""
        stmt = delete(self.model).where(self.model.tenant_id == tenant_id)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0
