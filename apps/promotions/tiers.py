"""
Loyalty tier calculator.

Pure functions over a fixed milestone table. No database access: the same
table evaluated against the same order total drives both the grant at
placement and the retraction at cancellation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from apps.common.constants import (
    CASHBACK_REWARD_PER_STEP,
    CASHBACK_SPEND_STEP,
    FREE_DELIVERY_MIN_SPEND,
)


class TierKind(StrEnum):
    SPIN = "spin"
    GIFT = "gift"
    CASHBACK = "cashback"
    POINT = "point"


@dataclass(frozen=True)
class LoyaltyTier:
    threshold: Decimal
    label: str
    kind: TierKind
    points: int = 0
    unlocks_spin: bool = False
    first_order_only: bool = False

    @property
    def grants_anything(self) -> bool:
        return self.points > 0 or self.unlocks_spin

    def is_eligible(self, *, is_first_order: bool) -> bool:
        return is_first_order or not self.first_order_only


# Ascending by threshold
LOYALTY_TIERS: tuple[LoyaltyTier, ...] = (
    LoyaltyTier(Decimal("25000"), "Welcome Spin", TierKind.SPIN, unlocks_spin=True, first_order_only=True),
    LoyaltyTier(Decimal("50000"), "Free Delivery", TierKind.GIFT),
    LoyaltyTier(Decimal("100000"), "₦2,000 Cashback", TierKind.CASHBACK),
    LoyaltyTier(Decimal("200000"), "1 Loyalty Point", TierKind.POINT, points=1),
    LoyaltyTier(Decimal("500000"), "2 Loyalty Points", TierKind.POINT, points=2),
    LoyaltyTier(Decimal("1000000"), "3 Loyalty Points", TierKind.POINT, points=3),
)


def _as_decimal(value: Decimal | int | str) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def eligible_tiers(*, is_first_order: bool, tiers: tuple[LoyaltyTier, ...] = LOYALTY_TIERS) -> list[LoyaltyTier]:
    return [tier for tier in tiers if tier.is_eligible(is_first_order=is_first_order)]


def tier_for(
    order_total: Decimal | int | str,
    *,
    is_first_order: bool,
    tiers: tuple[LoyaltyTier, ...] = LOYALTY_TIERS,
) -> LoyaltyTier | None:
    """
    Highest eligible tier whose threshold does not exceed ``order_total``.

    Tiers are not cumulative: only the returned tier's award is granted.
    First-order-only tiers are skipped for repeat customers.
    """
    total = _as_decimal(order_total)
    reached = [tier for tier in eligible_tiers(is_first_order=is_first_order, tiers=tiers) if total >= tier.threshold]
    if not reached:
        return None
    return max(reached, key=lambda tier: tier.threshold)


def next_tier(
    order_total: Decimal | int | str,
    *,
    is_first_order: bool,
    tiers: tuple[LoyaltyTier, ...] = LOYALTY_TIERS,
) -> tuple[LoyaltyTier, Decimal] | None:
    """Next milestone above ``order_total`` and the amount still missing, or None when maxed"""
    total = _as_decimal(order_total)
    upcoming = sorted(
        (tier for tier in eligible_tiers(is_first_order=is_first_order, tiers=tiers) if total < tier.threshold),
        key=lambda tier: tier.threshold,
    )
    if not upcoming:
        return None
    return upcoming[0], upcoming[0].threshold - total


def cashback_for(order_total: Decimal | int | str) -> Decimal:
    """2,000 wallet credit for every full 100,000 spent"""
    total = _as_decimal(order_total)
    if total < CASHBACK_SPEND_STEP:
        return Decimal("0")
    return (total // CASHBACK_SPEND_STEP) * CASHBACK_REWARD_PER_STEP


def qualifies_for_free_delivery(order_total: Decimal | int | str) -> bool:
    return _as_decimal(order_total) >= FREE_DELIVERY_MIN_SPEND
