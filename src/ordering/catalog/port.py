"""Catalog store port (abstract interface).

The catalog owns products, prices and stock. The ordering context reads
authoritative product state through this port and debits/restocks inventory
with atomic operations keyed by product and variant.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ApprovalStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Promotion:
    """A time-bounded percentage discount on the regular price."""

    percentage: float
    starts_at: datetime
    ends_at: datetime

    def in_effect(self, now: datetime) -> bool:
        return self.starts_at <= now <= self.ends_at


@dataclass(frozen=True)
class ProductSnapshot:
    """Authoritative product state as seen at one instant."""

    product_id: str
    vendor_id: str
    name: str
    base_cost: float
    regular_price: float | None = None
    sale_price: float | None = None
    promotion: Promotion | None = None
    cashback: float = 0.0
    category_id: str | None = None
    thumbnail_url: str | None = None
    is_active: bool = True
    vendor_active: bool = True
    approval_status: str = ApprovalStatus.APPROVED.value
    inventory: int = 0
    variants: dict[str, int] = field(default_factory=dict)

    @property
    def has_variants(self) -> bool:
        return bool(self.variants)

    def available_quantity(self, variant_key: str | None) -> int:
        if self.has_variants:
            return self.variants.get(variant_key, 0) if variant_key else 0
        return self.inventory

    def unit_price(self, now: datetime) -> float:
        """Promotion in effect, then sale price, then regular price, then base cost."""
        if self.promotion is not None and self.regular_price and self.promotion.in_effect(now):
            return round(self.regular_price * (1 - self.promotion.percentage / 100), 2)
        for candidate in (self.sale_price, self.regular_price, self.base_cost):
            if candidate:
                return float(candidate)
        return 0.0


class CatalogStore(ABC):
    """Abstract catalog store interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductSnapshot | None:
        """Return the current product state, or None if it does not exist."""
        ...

    @abstractmethod
    def debit_inventory(self, product_id: str, variant_key: str | None, quantity: int) -> bool:
        """Atomically decrement stock if at least ``quantity`` is available.

        Returns False, leaving stock untouched, when the debit cannot be covered.
        """
        ...

    @abstractmethod
    def restock_inventory(self, product_id: str, variant_key: str | None, quantity: int) -> None:
        """Atomically increment stock."""
        ...
