"""Discount engine: evaluates a coupon against an order amount.

Evaluation is pure. It never raises for a business outcome and never
consumes coupon usage. Rules run in a fixed order and the first failing
rule's reason is returned.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from ordering.coupon.coupon import Coupon, CouponScope, CouponStatus
from ordering.coupon.terms import (
    BogoTerms,
    DailyOfferTerms,
    FixedTerms,
    FreeShippingTerms,
    OfferKind,
    OfferTerms,
    PercentageTerms,
    PrepaidTerms,
)
from ordering.pricing.policy import get_policy

APPLIED = "Coupon applied successfully"


@dataclass(frozen=True)
class DiscountResult:
    valid: bool
    discount_amount: float = 0.0
    reason: str | None = None
    waives_handling: bool = False

    @classmethod
    def rejected(cls, reason: str) -> "DiscountResult":
        return cls(valid=False, discount_amount=0.0, reason=reason)


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else f"{amount:.2f}"


def _percentage(terms: PercentageTerms, amount: float) -> float:
    return amount * terms.percentage / 100


def _fixed(terms: FixedTerms, amount: float) -> float:
    return min(terms.amount, amount)


def _prepaid(terms: PrepaidTerms, amount: float) -> float:
    discount = amount * terms.percentage / 100
    if terms.min_discount is not None and discount < terms.min_discount:
        discount = terms.min_discount
    if terms.max_discount is not None and discount > terms.max_discount:
        discount = terms.max_discount
    return discount


def _daily_offer(terms: DailyOfferTerms, amount: float) -> float:
    return min(terms.amount, amount)


def _no_subtotal_discount(terms: FreeShippingTerms | BogoTerms, amount: float) -> float:
    return 0.0


_CALCULATORS: dict[OfferKind, Callable[[OfferTerms, float], float]] = {
    OfferKind.PERCENTAGE: _percentage,
    OfferKind.FIXED: _fixed,
    OfferKind.PREPAID: _prepaid,
    OfferKind.DAILY_OFFER: _daily_offer,
    OfferKind.FREE_SHIPPING: _no_subtotal_discount,
    OfferKind.BOGO: _no_subtotal_discount,
}

if set(_CALCULATORS) != set(OfferKind):  # pragma: no cover
    raise RuntimeError("Every offer kind needs a discount calculator")


def _availability_failure(coupon: Coupon, now: datetime) -> str | None:
    if not coupon.is_active or coupon.status != CouponStatus.ACTIVE.value:
        return "Coupon is inactive"
    if coupon.valid_from is not None and now < coupon.valid_from:
        return "Coupon is not yet valid"
    if coupon.valid_until is not None and now > coupon.valid_until:
        return "Coupon has expired"
    if coupon.usage_exhausted:
        return "Coupon usage limit reached"
    return None


def _daily_offer_failure(terms: DailyOfferTerms, product_ids: frozenset[str], now: datetime) -> str | None:
    local_now = now.astimezone(get_policy().zone)
    today = local_now.date()
    clock = local_now.strftime("%H:%M")

    if terms.starts_on and terms.ends_on and not terms.starts_on <= today <= terms.ends_on:
        return "Today's offer is not active at this time"
    if terms.opens_at and terms.closes_at and not terms.opens_at <= clock <= terms.closes_at:
        return "Today's offer is not active at this time"
    if terms.product_ids and not product_ids.intersection(terms.product_ids):
        return "This offer is not applicable for the selected product"
    return None


def evaluate(
    coupon: Coupon,
    order_amount: float,
    product_ids: Iterable[str] = (),
    category_ids: Iterable[str] = (),
    now: datetime | None = None,
) -> DiscountResult:
    """Check ``coupon`` against an order and compute the discount it grants."""
    now = now or datetime.now(UTC)
    product_ids = frozenset(str(p) for p in product_ids)
    category_ids = frozenset(str(c) for c in category_ids if c)

    reason = _availability_failure(coupon, now)
    if reason:
        return DiscountResult.rejected(reason)

    terms = coupon.offer_terms
    if isinstance(terms, DailyOfferTerms):
        reason = _daily_offer_failure(terms, product_ids, now)
        if reason:
            return DiscountResult.rejected(reason)

    if order_amount < (coupon.min_amount or 0):
        return DiscountResult.rejected(f"Minimum order amount of ₹{_format_amount(coupon.min_amount)} is required")
    if coupon.max_amount is not None and order_amount > coupon.max_amount:
        return DiscountResult.rejected(f"Maximum order amount of ₹{_format_amount(coupon.max_amount)} is allowed")

    if coupon.scope == CouponScope.SELECT.value and not category_ids.intersection(coupon.category_set):
        return DiscountResult.rejected("Coupon is not applicable to the selected categories")

    discount = _CALCULATORS[coupon.kind](terms, order_amount)
    return DiscountResult(
        valid=True,
        discount_amount=round(max(discount, 0.0), 2),
        reason=APPLIED,
        waives_handling=coupon.kind is OfferKind.FREE_SHIPPING,
    )
