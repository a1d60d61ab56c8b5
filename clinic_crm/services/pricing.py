# clinic_crm/services/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Optional, Union

Number = Union[int, float, Decimal, str, None]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
DISCOUNT_TOLERANCE = Decimal("0.005")


def _to_decimal(value: Number) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def effective_discount(item_discount: Number, group_discount: Number) -> Decimal:
    """Item override if set, else the group default; clamped to [0, 100]."""
    raw = _to_decimal(item_discount) if item_discount is not None else _to_decimal(group_discount)
    if raw is None or raw < ZERO:
        return ZERO
    if raw > HUNDRED:
        return HUNDRED
    return raw


def effective_quantity(quantity: Optional[int]) -> int:
    if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0:
        return quantity
    return 1


@dataclass(frozen=True)
class PricedLine:
    service_id: int
    unit_price: Optional[Decimal]
    quantity: Optional[int] = None
    discount_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class GroupPricing:
    original_total: Decimal
    total: Decimal
    total_quantity: int
    has_discount: bool


def line_total(line: PricedLine, group_discount: Number) -> Decimal:
    price = _to_decimal(line.unit_price) or ZERO
    discount = effective_discount(line.discount_percent, group_discount)
    return price * (1 - discount / HUNDRED) * effective_quantity(line.quantity)


def group_pricing(lines: Iterable[PricedLine], group_discount: Number = None) -> GroupPricing:
    """
    Price a service bundle.

    total = sum(unit_price * quantity * (1 - effective_discount / 100))
    A missing unit price counts as 0. Totals are rounded half-up to cents.
    """
    lines = list(lines)
    original = sum(((_to_decimal(l.unit_price) or ZERO) * effective_quantity(l.quantity) for l in lines), ZERO)
    total = sum((line_total(l, group_discount) for l in lines), ZERO)
    quantity = sum(effective_quantity(l.quantity) for l in lines)
    return GroupPricing(
        original_total=original.quantize(CENT, rounding=ROUND_HALF_UP),
        total=total.quantize(CENT, rounding=ROUND_HALF_UP),
        total_quantity=quantity,
        has_discount=original > ZERO and total < original - DISCOUNT_TOLERANCE,
    )


def validate_discount(value: Number) -> Optional[Decimal]:
    """Input check for stored discounts: None or a number in [0, 100]."""
    if value is None:
        return None
    parsed = _to_decimal(value)
    if parsed is None or parsed < ZERO or parsed > HUNDRED:
        raise ValueError("Please enter a valid discount between 0 and 100.")
    return parsed
