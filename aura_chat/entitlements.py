"""
Entitlement tiers and the free-tier daily message allowance.

Subscription storage and purchases are handled elsewhere. The protocols here
are the seams a host application plugs its own lookups into.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Literal, Protocol

FREE_DAILY_LIMIT = 10


class EntitlementTier(Enum):
    """Subscription tiers."""
    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class SubscriptionRecord:
    """Subscription as stored by the backend."""
    tier: EntitlementTier = EntitlementTier.FREE
    status: Literal["trial", "active", "cancelled", "expired"] = "active"
    trial_ends_at: datetime | None = None

    def is_trial_active(self, now: datetime | None = None) -> bool:
        if self.status != "trial" or self.trial_ends_at is None:
            return False
        return self.trial_ends_at > (now or datetime.now(UTC))

    def effective_tier(self, now: datetime | None = None) -> EntitlementTier:
        """Active premium subscriptions and running trials count as premium."""
        if self.tier is EntitlementTier.PREMIUM and self.status == "active":
            return EntitlementTier.PREMIUM
        if self.is_trial_active(now):
            return EntitlementTier.PREMIUM
        return EntitlementTier.FREE


class EntitlementLookup(Protocol):
    """Resolves the current user's tier."""

    async def current_tier(self) -> EntitlementTier: ...


class UsageCounter(Protocol):
    """Counts messages sent today."""

    async def messages_today(self) -> int: ...

    async def increment(self) -> int: ...


@dataclass
class StaticEntitlement:
    """Entitlement lookup that always answers with a fixed tier."""
    tier: EntitlementTier = EntitlementTier.FREE

    async def current_tier(self) -> EntitlementTier:
        return self.tier


class InMemoryUsageCounter:
    """Per-day message counter kept in process memory."""

    def __init__(self, today: Callable[[], date] | None = None) -> None:
        self._today = today or (lambda: datetime.now(UTC).date())
        self._counts: defaultdict[date, int] = defaultdict(int)

    async def messages_today(self) -> int:
        return self._counts[self._today()]

    async def increment(self) -> int:
        day = self._today()
        self._counts[day] += 1
        return self._counts[day]


@dataclass(frozen=True)
class UsageAllowance:
    """Whether another message may be sent today."""
    tier: EntitlementTier
    used: int
    limit: int = FREE_DAILY_LIMIT

    @property
    def can_send(self) -> bool:
        return self.tier is EntitlementTier.PREMIUM or self.used < self.limit

    @property
    def remaining(self) -> int | None:
        """Messages left today, or None when unlimited."""
        if self.tier is EntitlementTier.PREMIUM:
            return None
        return max(self.limit - self.used, 0)
