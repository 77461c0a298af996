"""
Loyalty tiers, derived from a customer's lifetime spending.
Thresholds are in the salon's base currency (rupees).
"""

import math
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Tier:
    code: str
    name: str
    min_spending: Decimal
    points_multiplier: Decimal
    benefits: tuple


TIERS = (
    Tier("bronze", "Bronze", Decimal("0"), Decimal("1"), ("1 point per ₹1 spent", "Birthday discount")),
    Tier(
        "silver",
        "Silver",
        Decimal("25000"),
        Decimal("1.25"),
        ("1.25 points per ₹1 spent", "Priority booking", "Birthday discount"),
    ),
    Tier(
        "gold",
        "Gold",
        Decimal("50000"),
        Decimal("1.5"),
        ("1.5 points per ₹1 spent", "Priority booking", "Free consultation", "Birthday discount"),
    ),
    Tier(
        "platinum",
        "Platinum",
        Decimal("100000"),
        Decimal("2"),
        ("2 points per ₹1 spent", "VIP treatment", "Free consultation", "Exclusive offers", "Birthday discount"),
    ),
)

TIERS_BY_CODE = {tier.code: tier for tier in TIERS}


def tier_for_spending(lifetime_spending) -> str:
    """
    Highest tier whose threshold the spending has reached (thresholds are inclusive).
    """
    spending = Decimal(str(lifetime_spending))
    current = TIERS[0]
    for tier in TIERS:
        if spending >= tier.min_spending:
            current = tier
    return current.code


def next_tier(tier_code: str):
    codes = [tier.code for tier in TIERS]
    index = codes.index(tier_code)
    if index == len(TIERS) - 1:
        return None
    return TIERS[index + 1]


def calculate_points_earned(amount, tier_code: str) -> int:
    """
    Points suggested for a purchase at the given tier (floor of amount × multiplier).
    """
    multiplier = TIERS_BY_CODE[tier_code].points_multiplier
    return math.floor(Decimal(str(amount)) * multiplier)


def progress_to_next_tier(tier_code: str, lifetime_spending) -> dict:
    upcoming = next_tier(tier_code)
    if upcoming is None:
        return {"progress": 100.0, "remaining": Decimal("0"), "next_tier": None}

    current = TIERS_BY_CODE[tier_code]
    spending = Decimal(str(lifetime_spending))
    span = upcoming.min_spending - current.min_spending

    progress = min(Decimal("100"), (spending - current.min_spending) / span * 100)
    remaining = max(Decimal("0"), upcoming.min_spending - spending)

    return {"progress": float(round(progress, 2)), "remaining": remaining, "next_tier": upcoming.name}
