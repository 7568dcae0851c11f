"""Pure pricing functions.

No I/O and no state: the same inputs always give the same price. Money is
handled as `Decimal` end to end; floats are converted through `str` so that
150.1 stays 150.1 and not 150.099999...
"""

from decimal import ROUND_CEILING, Decimal, InvalidOperation

from core.errors import InvalidInput
from patterns.domain_config import RoundingPolicy

HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_decimal(value, field_name: str = "value") -> Decimal:
    """Coerce an int/float/str/Decimal to Decimal or raise InvalidInput."""
    if isinstance(value, bool):
        raise InvalidInput(f"{field_name} must be numeric, got a boolean")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidInput(f"{field_name} is not a number: {value!r}") from exc


def ensure_finite(value: Decimal, field_name: str, *, allow_negative: bool = True) -> Decimal:
    """Reject NaN/Infinity (and negatives unless allowed)."""
    if not value.is_finite():
        raise InvalidInput(f"{field_name} must be finite, got {value}")
    if not allow_negative and value < 0:
        raise InvalidInput(f"{field_name} must not be negative, got {value}")
    return value


def ceil_to_increment(value: Decimal, increment: Decimal) -> Decimal:
    """Round up to the next multiple of `increment` (157.81 -> 157.90 for 0.10)."""
    steps = (value / increment).to_integral_value(rounding=ROUND_CEILING)
    return steps * increment


def apply_rounding(value: Decimal, policy: RoundingPolicy | None) -> Decimal:
    if policy is None or policy.increment is None:
        return value
    return ceil_to_increment(value, policy.increment)


def adjust_price(base_price, percentage, policy: RoundingPolicy | None = None) -> Decimal:
    """Return `base_price * (1 + percentage/100)`, rounded by `policy`.

    Raises InvalidInput when `base_price` is negative, NaN or infinite, or
    when `percentage` is NaN or infinite. Discounts beyond -100% floor at 0.
    """
    base = ensure_finite(to_decimal(base_price, "base_price"), "base_price", allow_negative=False)
    pct = ensure_finite(to_decimal(percentage, "percentage"), "percentage")

    adjusted = base + base * pct / HUNDRED
    if adjusted < ZERO:
        adjusted = ZERO
    return apply_rounding(adjusted, policy)


def resale_price(cost, markup_pct, policy: RoundingPolicy | None = None) -> Decimal:
    """Resale-table price: cost plus markup, rounded up (0.10 by default)."""
    if policy is None:
        policy = RoundingPolicy.ceiling("0.10")
    return adjust_price(cost, markup_pct, policy)
