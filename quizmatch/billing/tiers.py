from __future__ import annotations

from dataclasses import dataclass

UNLIMITED = -1


@dataclass(frozen=True)
class Tier:
    name: str
    monthly_completions: int
    price: int

    @property
    def is_unlimited(self) -> bool:
        return self.monthly_completions == UNLIMITED


TIER_LIMITS: dict[str, Tier] = {
    "free": Tier(name="Free", monthly_completions=100, price=0),
    "growth": Tier(name="Growth", monthly_completions=1000, price=29),
    "pro": Tier(name="Pro", monthly_completions=10000, price=99),
    "enterprise": Tier(name="Enterprise", monthly_completions=UNLIMITED, price=299),
}

DEFAULT_TIER = "free"


def get_tier(tier: str | None) -> Tier:
    """Unknown tier names fall back to the free tier."""
    return TIER_LIMITS.get(tier or DEFAULT_TIER, TIER_LIMITS[DEFAULT_TIER])
