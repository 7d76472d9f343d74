"""Pricing reconciler: re-derives a cart's lines and totals from the catalog.

Unavailable lines are reported in ``removed``, never raised. A coupon that no
longer applies contributes no discount but stays attached to the cart.
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

import structlog

from ordering.catalog import CatalogStore, get_catalog
from ordering.coupon.coupon import Coupon
from ordering.pricing.availability import line_reason
from ordering.pricing.discounts import DiscountResult, evaluate
from ordering.pricing.policy import PricingPolicy, get_policy

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReconciledLine:
    item_id: str
    product_id: str
    vendor_id: str
    variant_key: str | None
    quantity: int
    unit_price: float
    total_price: float
    cashback_amount: float
    product_name: str
    thumbnail_url: str | None = None
    category_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RemovedLine:
    item_id: str
    product_id: str
    variant_key: str | None
    quantity: int
    reason: str
    product_name: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: float = 0.0
    discount: float = 0.0
    tax: float = 0.0
    handling: float = 0.0
    total: float = 0.0
    total_cashback: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Reconciliation:
    lines: list[ReconciledLine] = field(default_factory=list)
    removed: list[RemovedLine] = field(default_factory=list)
    pricing: PricingBreakdown = field(default_factory=PricingBreakdown)
    coupon_code: str | None = None
    coupon_result: DiscountResult | None = None

    @property
    def coupon_applied(self) -> bool:
        return self.coupon_result is not None and self.coupon_result.valid

    @property
    def vendor_ids(self) -> list[str]:
        return sorted({line.vendor_id for line in self.lines})

    def to_dict(self) -> dict:
        return {
            "items": [line.to_dict() for line in self.lines],
            "removed_items": [line.to_dict() for line in self.removed],
            "pricing": self.pricing.to_dict(),
            "coupon": (
                {
                    "code": self.coupon_code,
                    "applied": self.coupon_applied,
                    "discount_amount": self.pricing.discount,
                    "message": self.coupon_result.reason if self.coupon_result else None,
                }
                if self.coupon_code
                else None
            ),
        }


def price_lines(
    lines: list[ReconciledLine],
    coupon: Coupon | None = None,
    policy: PricingPolicy | None = None,
    now: datetime | None = None,
) -> tuple[PricingBreakdown, DiscountResult | None]:
    """Compute the pricing breakdown for already-validated lines."""
    policy = policy or get_policy()
    subtotal = round(sum(line.total_price for line in lines), 2)
    total_cashback = round(sum(line.cashback_amount for line in lines), 2)

    result = None
    discount = 0.0
    waive_handling = False
    if coupon is not None and lines:
        result = evaluate(
            coupon,
            subtotal,
            product_ids=[line.product_id for line in lines],
            category_ids=[line.category_id for line in lines],
            now=now,
        )
        if result.valid:
            discount = min(result.discount_amount, subtotal)
            waive_handling = result.waives_handling

    handling = 0.0 if waive_handling or not lines else policy.handling_for(subtotal)
    tax = round(max(subtotal - discount, 0.0) * policy.tax_rate, 2)
    total = round(subtotal - discount + handling + tax, 2)

    breakdown = PricingBreakdown(
        subtotal=subtotal,
        discount=round(discount, 2),
        tax=tax,
        handling=handling,
        total=total,
        total_cashback=total_cashback,
    )
    return breakdown, result


def reconcile(
    items,
    coupon: Coupon | None = None,
    catalog: CatalogStore | None = None,
    policy: PricingPolicy | None = None,
    now: datetime | None = None,
) -> Reconciliation:
    """Validate each cart item against the catalog and price the survivors.

    ``items`` are cart items exposing ``id``, ``product_id``, ``variant_key``
    and ``quantity``.
    """
    catalog = catalog or get_catalog()
    now = now or datetime.now(UTC)

    lines: list[ReconciledLine] = []
    removed: list[RemovedLine] = []

    for item in items:
        product = catalog.get_product(str(item.product_id))
        reason = line_reason(product, item.variant_key, item.quantity)
        if reason:
            removed.append(
                RemovedLine(
                    item_id=str(item.id),
                    product_id=str(item.product_id),
                    variant_key=item.variant_key,
                    quantity=item.quantity,
                    reason=reason,
                    product_name=product.name if product else getattr(item, "product_name", None),
                )
            )
            continue

        unit_price = product.unit_price(now)
        lines.append(
            ReconciledLine(
                item_id=str(item.id),
                product_id=product.product_id,
                vendor_id=product.vendor_id,
                variant_key=item.variant_key,
                quantity=item.quantity,
                unit_price=unit_price,
                total_price=round(unit_price * item.quantity, 2),
                cashback_amount=round((product.cashback or 0) * item.quantity, 2),
                product_name=product.name,
                thumbnail_url=product.thumbnail_url,
                category_id=product.category_id,
            )
        )

    pricing, coupon_result = price_lines(lines, coupon=coupon, policy=policy, now=now)

    if removed:
        logger.info(
            "cart_lines_unavailable",
            removed=len(removed),
            products=[line.product_id for line in removed],
        )

    return Reconciliation(
        lines=lines,
        removed=removed,
        pricing=pricing,
        coupon_code=coupon.code if coupon is not None else None,
        coupon_result=coupon_result,
    )
