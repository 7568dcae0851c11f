"""Pricing business rules: pure functions.

Re-exports the rules engine pattern for use inside the vertical.
"""

from patterns.rules_engine import (
    Condition,
    EvaluationOutcome,
    PriceRule,
    ProductSnapshot,
    condition_met,
    evaluate_product,
    matches_product_type,
)

__all__ = [
    "Condition",
    "EvaluationOutcome",
    "PriceRule",
    "ProductSnapshot",
    "condition_met",
    "evaluate_product",
    "matches_product_type",
]
