"""Pure-function price rules engine.

A rule is data (PriceRule); evaluation is a pure function
(product, ordered rules) -> EvaluationOutcome. No database, no HTTP, no
side effects, which keeps it:
- Trivially testable (pure input/output)
- Deterministic (same catalog + same rules = same preview)
- Explainable (every outcome carries the matched rule or a reason)

Precedence is first-match-wins in store order. A matching rule whose
exception quantity equals the product stock halts the whole chain.
"""

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

from core.errors import InvalidInput
from patterns.domain_config import RoundingPolicy
from patterns.pricing import adjust_price, ensure_finite, to_decimal

NO_RULE_MATCHED = "no rule matched"
EXCEPTION_BY_QUANTITY = "exception by quantity"


# ---------------------------------------------------------------------------
# Rule model
# ---------------------------------------------------------------------------

class Condition(str, Enum):
    """Comparator between a product's current price and the rule reference."""

    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    EQ = "="
    NEQ = "!="


_COMPARATORS = {
    Condition.GT: lambda price, ref: price > ref,
    Condition.GTE: lambda price, ref: price >= ref,
    Condition.LT: lambda price, ref: price < ref,
    Condition.LTE: lambda price, ref: price <= ref,
    Condition.EQ: lambda price, ref: price == ref,
    Condition.NEQ: lambda price, ref: price != ref,
}

RULE_FIELDS = (
    "id",
    "name",
    "product_type",
    "reference_price",
    "condition",
    "adjustment_percentage",
    "exception_quantity",
    "active",
)


def default_rule_name(product_type: str, condition: "Condition | str", reference_price) -> str:
    """Label derived from the rule fields, e.g. "Rule Frontal > 100"."""
    cond = Condition(condition).value
    return f"Rule {product_type} {cond} {reference_price}"


@dataclass(frozen=True)
class PriceRule:
    """One conditional price adjustment.

    Immutable: updates produce a new instance (see RuleStore.update).
    """

    id: str
    name: str
    product_type: str
    reference_price: Decimal
    condition: Condition
    adjustment_percentage: Decimal
    exception_quantity: int = 0
    active: bool = True

    def __post_init__(self):
        # Normalise loose inputs (str/float/int) so stored rules are uniform
        object.__setattr__(self, "reference_price", to_decimal(self.reference_price, "reference_price"))
        object.__setattr__(
            self, "adjustment_percentage", to_decimal(self.adjustment_percentage, "adjustment_percentage")
        )
        try:
            object.__setattr__(self, "condition", Condition(self.condition))
        except ValueError as exc:
            allowed = [c.value for c in Condition]
            raise InvalidInput(f"Unknown condition {self.condition!r}. Allowed: {allowed}") from exc

        if not str(self.id):
            raise InvalidInput("Rule id must not be empty")
        if not self.product_type or not self.product_type.strip():
            raise InvalidInput("product_type must not be empty")
        ensure_finite(self.reference_price, "reference_price", allow_negative=False)
        ensure_finite(self.adjustment_percentage, "adjustment_percentage")
        try:
            quantity = int(self.exception_quantity)
        except (TypeError, ValueError) as exc:
            raise InvalidInput("exception_quantity must be an integer") from exc
        if isinstance(self.exception_quantity, bool) or quantity != self.exception_quantity:
            raise InvalidInput("exception_quantity must be an integer")
        if quantity < 0:
            raise InvalidInput("exception_quantity must not be negative")
        object.__setattr__(self, "exception_quantity", quantity)
        object.__setattr__(self, "active", bool(self.active))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["reference_price"] = str(self.reference_price)
        data["adjustment_percentage"] = str(self.adjustment_percentage)
        data["condition"] = self.condition.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceRule":
        unknown = set(data) - set(RULE_FIELDS)
        if unknown:
            raise InvalidInput(f"Unknown rule fields: {sorted(unknown)}")
        return cls(**data)


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only view of a catalog product, as needed for evaluation."""

    id: str
    name: str
    group_name: str
    current_price: Decimal
    stock: int = 0
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EvaluationOutcome:
    """Outcome of evaluating one product against the ordered rule list."""

    matched_rule_name: str | None
    new_price: Decimal
    changed: bool
    reason: str


# ---------------------------------------------------------------------------
# Rule checks
# ---------------------------------------------------------------------------

def matches_product_type(rule: PriceRule, product: ProductSnapshot) -> bool:
    """Case-insensitive "contains" on the product name or group name."""
    needle = rule.product_type.lower()
    return needle in (product.name or "").lower() or needle in (product.group_name or "").lower()


def condition_met(rule: PriceRule, price: Decimal) -> bool:
    return _COMPARATORS[rule.condition](price, rule.reference_price)


def is_exempt(rule: PriceRule, product: ProductSnapshot) -> bool:
    """A positive exception quantity exempts products with exactly that stock."""
    return rule.exception_quantity > 0 and product.stock == rule.exception_quantity


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def evaluate_product(
    product: ProductSnapshot,
    rules: Iterable[PriceRule],
    policy: RoundingPolicy | None = None,
) -> EvaluationOutcome:
    """Evaluate one product against rules in order; the first match wins.

    Example::

        outcome = evaluate_product(product, store.list())
        if outcome.changed:
            await catalog.update_product_price(product.id, outcome.new_price)

    Raises InvalidInput if the product price is missing, negative or not a
    finite number.
    """
    price = ensure_finite(
        to_decimal(product.current_price, "current_price"), "current_price", allow_negative=False
    )

    for rule in rules:
        if not rule.active:
            continue
        if not matches_product_type(rule, product):
            continue
        if not condition_met(rule, price):
            continue
        if is_exempt(rule, product):
            # Halts the chain so an exempted item never falls through to a later rule
            return EvaluationOutcome(
                matched_rule_name=None,
                new_price=price,
                changed=False,
                reason=f"{EXCEPTION_BY_QUANTITY} ({rule.exception_quantity})",
            )
        return EvaluationOutcome(
            matched_rule_name=rule.name,
            new_price=adjust_price(price, rule.adjustment_percentage, policy),
            changed=True,
            reason="",
        )

    return EvaluationOutcome(
        matched_rule_name=None,
        new_price=price,
        changed=False,
        reason=NO_RULE_MATCHED,
    )
