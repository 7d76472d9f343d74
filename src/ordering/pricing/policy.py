"""Pricing policy: tax rate, handling fee tiers and the wall-clock timezone.

Values come from the environment and can be swapped at runtime with
set_policy() / reset_policy().
"""

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: float = 0.05
    handling_fee: float = 50.0
    free_handling_threshold: float = 500.0
    timezone: str = "UTC"

    @classmethod
    def from_env(cls) -> "PricingPolicy":
        return cls(
            tax_rate=float(os.getenv("ORDERING_TAX_RATE", cls.tax_rate)),
            handling_fee=float(os.getenv("ORDERING_HANDLING_FEE", cls.handling_fee)),
            free_handling_threshold=float(os.getenv("ORDERING_FREE_HANDLING_THRESHOLD", cls.free_handling_threshold)),
            timezone=os.getenv("ORDERING_TIMEZONE", cls.timezone),
        )

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def handling_for(self, subtotal: float) -> float:
        """Flat fee below the threshold, waived at or above it."""
        return 0.0 if subtotal >= self.free_handling_threshold else self.handling_fee


_current_policy: PricingPolicy | None = None


def get_policy() -> PricingPolicy:
    global _current_policy
    if _current_policy is None:
        _current_policy = PricingPolicy.from_env()
    return _current_policy


def set_policy(policy: PricingPolicy) -> None:
    global _current_policy
    _current_policy = policy


def reset_policy() -> None:
    global _current_policy
    _current_policy = None
