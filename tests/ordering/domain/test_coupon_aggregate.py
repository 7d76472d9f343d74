"""Tests for the Coupon aggregate: issue-time validation, usage and deactivation."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.coupon.coupon import Coupon, CouponStatus
from ordering.coupon.events import CouponDeactivated, CouponIssued, CouponRedeemed
from ordering.coupon.terms import (
    DailyOfferTerms,
    FixedTerms,
    OfferKind,
    PercentageTerms,
    PrepaidTerms,
    decode_terms,
    encode_terms,
)
from protean.exceptions import ValidationError


def _issue(**overrides):
    fields = {
        "code": "save10",
        "name": "Ten percent",
        "offer_kind": OfferKind.PERCENTAGE.value,
        "terms": PercentageTerms(percentage=10),
    }
    fields.update(overrides)
    return Coupon.issue(**fields)


class TestCouponIssue:
    def test_code_is_normalized(self):
        coupon = _issue(code="  save10 ")
        assert coupon.code == "SAVE10"

    def test_issue_raises_event(self):
        coupon = _issue()
        event = next(e for e in coupon._events if isinstance(e, CouponIssued))
        assert event.code == "SAVE10"
        assert event.offer_kind == "percentage"

    def test_starts_active_and_unused(self):
        coupon = _issue()
        assert coupon.is_active
        assert coupon.status == CouponStatus.ACTIVE.value
        assert coupon.used_count == 0

    def test_terms_must_match_kind(self):
        with pytest.raises(ValidationError) as exc:
            _issue(offer_kind=OfferKind.FIXED.value)
        assert "terms" in exc.value.messages

    @pytest.mark.parametrize(
        "kind, terms",
        [
            (OfferKind.PERCENTAGE, PercentageTerms(percentage=0)),
            (OfferKind.PERCENTAGE, PercentageTerms(percentage=120)),
            (OfferKind.FIXED, FixedTerms(amount=-5)),
            (OfferKind.PREPAID, PrepaidTerms(percentage=5, min_discount=50, max_discount=10)),
            (OfferKind.DAILY_OFFER, DailyOfferTerms(amount=20, opens_at="25:00")),
        ],
    )
    def test_terms_are_validated(self, kind, terms):
        with pytest.raises(ValidationError):
            _issue(offer_kind=kind.value, terms=terms)

    def test_code_must_be_alphanumeric(self):
        with pytest.raises(ValidationError) as exc:
            _issue(code="SAVE-10")
        assert "code" in exc.value.messages

    def test_validity_window_must_be_ordered(self):
        now = datetime.now(UTC)
        with pytest.raises(ValidationError):
            _issue(valid_from=now, valid_until=now - timedelta(days=1))

    def test_select_scope_needs_categories(self):
        with pytest.raises(ValidationError) as exc:
            _issue(scope="select")
        assert "category_ids" in exc.value.messages

    def test_max_amount_not_below_min_amount(self):
        with pytest.raises(ValidationError):
            _issue(min_amount=500, max_amount=100)

    def test_terms_survive_storage(self):
        terms = DailyOfferTerms(amount=30, product_ids=("prod-001",), opens_at="10:00", closes_at="14:00")
        coupon = _issue(offer_kind=OfferKind.DAILY_OFFER.value, terms=terms)
        assert coupon.offer_terms == terms

    def test_dates_survive_encoding(self):
        terms = DailyOfferTerms(amount=30, starts_on=datetime(2026, 3, 1).date(), ends_on=datetime(2026, 3, 31).date())
        assert decode_terms(OfferKind.DAILY_OFFER, encode_terms(terms)) == terms


class TestCouponUsage:
    def test_redeem_counts_one_use(self):
        coupon = _issue(usage_limit=2)
        assert coupon.redeem("order-1") is True
        assert coupon.used_count == 1
        event = next(e for e in coupon._events if isinstance(e, CouponRedeemed))
        assert event.order_id == "order-1"

    def test_redeem_refuses_past_limit(self):
        coupon = _issue(usage_limit=1)
        assert coupon.redeem("order-1") is True
        assert coupon.usage_exhausted
        assert coupon.redeem("order-2") is False
        assert coupon.used_count == 1

    def test_unlimited_coupon_never_exhausts(self):
        coupon = _issue()
        for n in range(5):
            coupon.redeem(f"order-{n}")
        assert not coupon.usage_exhausted


class TestCouponDeactivation:
    def test_deactivate(self):
        coupon = _issue()
        coupon.deactivate()
        assert not coupon.is_active
        assert coupon.status == CouponStatus.INACTIVE.value
        assert any(isinstance(e, CouponDeactivated) for e in coupon._events)

    def test_deactivate_twice_is_a_no_op(self):
        coupon = _issue()
        coupon.deactivate()
        coupon.deactivate()
        assert len([e for e in coupon._events if isinstance(e, CouponDeactivated)]) == 1
