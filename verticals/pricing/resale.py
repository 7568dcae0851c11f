"""Resale price table: catalog price plus a markup, rounded up to 0.10.

This is the resale-pricing path; it uses PricingConfig.resale_rounding,
never the rule-engine policy.
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from core.errors import InvalidInput
from patterns.domain_config import RoundingPolicy
from patterns.pricing import ensure_finite, resale_price, to_decimal
from patterns.rules_engine import ProductSnapshot

logger = logging.getLogger(__name__)


def list_groups(products: Iterable[ProductSnapshot]) -> list[str]:
    """Sorted unique, non-empty group names."""
    return sorted({p.group_name for p in products if p.group_name})


def build_resale_table(
    products: Iterable[ProductSnapshot],
    markup_pct,
    group: Optional[str] = None,
    policy: Optional[RoundingPolicy] = None,
) -> list[dict[str, Any]]:
    """One row per product (optionally one group), with the resale price.

    Products with a missing or malformed price are left out of the table.
    """
    markup = ensure_finite(to_decimal(markup_pct, "markup_pct"), "markup_pct")
    rows: list[dict[str, Any]] = []
    skipped = 0
    for product in products:
        if group and group != "all" and product.group_name != group:
            continue
        try:
            price = resale_price(product.current_price, markup, policy)
        except InvalidInput:
            skipped += 1
            continue
        rows.append({
            "id": product.id,
            "name": product.name,
            "group_name": product.group_name,
            "base_price": product.current_price,
            "markup_pct": markup,
            "resale_price": price,
        })
    if skipped:
        logger.warning("Resale table skipped %d product(s) with invalid prices", skipped)
    return rows


def total_resale_value(rows: Iterable[dict[str, Any]]) -> Decimal:
    return sum((row["resale_price"] for row in rows), Decimal("0"))
