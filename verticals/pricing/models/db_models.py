"""SQLAlchemy models for the pricing vertical.

Rules keep their own string id (`rule_id`, assigned by the rule store)
next to the row UUID from TenantMixin. `position` is the evaluation order.
Money columns are unbounded NUMERIC so a stored rule keeps the exact
Decimal the API accepted.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import TENANT_ID_LENGTH, Base, TenantMixin
from patterns.rules_engine import PriceRule


class PriceRuleRecord(TenantMixin, Base):
    """A persisted price-adjustment rule."""

    __tablename__ = "price_rules"
    __table_args__ = (UniqueConstraint("tenant_id", "rule_id", name="uq_price_rules_tenant_rule"),)

    rule_id: Mapped[str] = mapped_column(String(TENANT_ID_LENGTH), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    product_type: Mapped[str] = mapped_column(String(200), nullable=False)
    reference_price: Mapped[Decimal] = mapped_column(Numeric(asdecimal=True), nullable=False)
    condition: Mapped[str] = mapped_column(String(2), nullable=False)
    adjustment_percentage: Mapped[Decimal] = mapped_column(Numeric(asdecimal=True), nullable=False)
    exception_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @staticmethod
    def columns_from_rule(rule: PriceRule, position: int) -> dict:
        return {
            "rule_id": rule.id,
            "position": position,
            "name": rule.name,
            "product_type": rule.product_type,
            "reference_price": rule.reference_price,
            "condition": rule.condition.value,
            "adjustment_percentage": rule.adjustment_percentage,
            "exception_quantity": rule.exception_quantity,
            "active": rule.active,
        }

    def to_rule(self) -> PriceRule:
        return PriceRule(
            id=self.rule_id,
            name=self.name,
            product_type=self.product_type,
            reference_price=Decimal(self.reference_price),
            condition=self.condition,
            adjustment_percentage=Decimal(self.adjustment_percentage),
            exception_quantity=self.exception_quantity,
            active=self.active,
        )

