"""Platform fee schedule.

The platform charges a flat fee per order, chosen from an ordered table of
subtotal ranges. The table must cover ``[0, inf)`` without gaps or overlaps.
Neighbouring tiers share their boundary value (``next.min_amount ==
prev.max_amount``) and a subtotal sitting exactly on a boundary belongs to
the lower tier. The last tier is open-ended (``max_amount is None``).

The schedule is validated once, when it is constructed, so that
``compute_fee`` never has to deal with a malformed table at request time.
"""

from dataclasses import dataclass
from functools import lru_cache

import structlog
from protean.exceptions import ValidationError

from shared.errors import FeeTableError
from shared.settings import get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FeeTier:
    min_amount: float
    max_amount: float | None
    fee: float

    def contains(self, subtotal: float) -> bool:
        if subtotal < self.min_amount:
            return False
        return self.max_amount is None or subtotal <= self.max_amount


class FeeSchedule:
    """A validated, ordered tier table."""

    def __init__(self, tiers):
        self.tiers: tuple[FeeTier, ...] = tuple(
            tier if isinstance(tier, FeeTier) else FeeTier(**tier) for tier in tiers
        )
        self._validate()

    def _validate(self) -> None:
        if not self.tiers:
            raise FeeTableError("Fee table has no tiers")

        first = self.tiers[0]
        if first.min_amount != 0:
            raise FeeTableError(f"First fee tier must start at 0, not {first.min_amount}")

        for index, tier in enumerate(self.tiers):
            if tier.fee < 0:
                raise FeeTableError(f"Fee tier {index} has a negative fee")

            is_last = index == len(self.tiers) - 1
            if tier.max_amount is None:
                if not is_last:
                    raise FeeTableError(f"Only the last fee tier may be unbounded (tier {index})")
                continue
            if is_last:
                raise FeeTableError("Last fee tier must be unbounded")
            if tier.max_amount <= tier.min_amount:
                raise FeeTableError(f"Fee tier {index} has an empty range")

            following = self.tiers[index + 1]
            if following.min_amount > tier.max_amount:
                raise FeeTableError(f"Gap between fee tiers {index} and {index + 1}")
            if following.min_amount < tier.max_amount:
                raise FeeTableError(f"Fee tiers {index} and {index + 1} overlap")

    def tier_for(self, subtotal: float) -> FeeTier:
        if subtotal is None or subtotal < 0:
            raise ValidationError({"subtotal": ["Subtotal must be a non-negative amount"]})

        for tier in self.tiers:
            if tier.contains(subtotal):
                return tier

        # Unreachable for a validated table
        logger.error("No fee tier matched", subtotal=subtotal)
        raise FeeTableError(f"No fee tier matches subtotal {subtotal}")

    def compute_fee(self, subtotal: float) -> float:
        return float(self.tier_for(subtotal).fee)


def describe_tier(tier: FeeTier, currency: str = "RWF") -> str:
    """Human readable range, e.g. ``"1,500 - 2,500 RWF: 100 RWF"``."""
    if tier.max_amount is None:
        bounds = f"above {tier.min_amount:,.0f}"
    else:
        bounds = f"{tier.min_amount:,.0f} - {tier.max_amount:,.0f}"
    return f"{bounds} {currency}: {tier.fee:,.0f} {currency}"


@lru_cache
def default_schedule() -> FeeSchedule:
    """The schedule configured in settings, built (and validated) once."""
    return FeeSchedule(get_settings().fee_tiers)


def compute_fee(subtotal: float) -> float:
    return default_schedule().compute_fee(subtotal)


def tier_for(subtotal: float) -> FeeTier:
    return default_schedule().tier_for(subtotal)
