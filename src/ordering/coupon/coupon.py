"""Coupon aggregate: a discount definition that carts preview and orders consume.

The definition does not change after issue. Only ``used_count`` (one use per
committed order) and the active flag move.
"""

import json
import re
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.coupon.events import CouponDeactivated, CouponIssued, CouponRedeemed
from ordering.coupon.terms import TERMS_BY_KIND, OfferKind, OfferTerms, decode_terms, encode_terms
from ordering.domain import ordering

_CODE_PATTERN = re.compile(r"^[A-Z0-9]+$")


class CouponScope(Enum):
    ALL = "all"
    SELECT = "select"


class CouponStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class IssuerType(Enum):
    ADMIN = "admin"
    VENDOR = "vendor"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@ordering.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    offer_kind = String(required=True, choices=OfferKind)
    terms = Text()  # JSON object, shape depends on offer_kind
    min_amount = Float(default=0.0, min_value=0)
    max_amount = Float(min_value=0)
    scope = String(choices=CouponScope, default=CouponScope.ALL.value)
    category_ids = Text()  # JSON array
    valid_from = DateTime()
    valid_until = DateTime()
    usage_limit = Integer(min_value=1)
    used_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    status = String(choices=CouponStatus, default=CouponStatus.ACTIVE.value)
    issuer_type = String(choices=IssuerType, default=IssuerType.ADMIN.value)
    issuer_id = Identifier()
    created_at = DateTime()

    @invariant.post
    def usage_must_not_exceed_limit(self):
        if self.usage_limit is not None and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"used_count": ["Coupon usage cannot exceed its usage limit"]})

    @invariant.post
    def validity_window_must_be_ordered(self):
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            raise ValidationError({"valid_until": ["Valid until date must be after valid from date"]})

    @invariant.post
    def code_must_be_alphanumeric(self):
        if self.code and not _CODE_PATTERN.match(self.code):
            raise ValidationError({"code": ["Coupon code can only contain uppercase letters and numbers"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def issue(
        cls,
        code,
        name,
        offer_kind,
        terms: OfferTerms,
        min_amount=0.0,
        max_amount=None,
        scope=CouponScope.ALL.value,
        category_ids=None,
        valid_from=None,
        valid_until=None,
        usage_limit=None,
        description=None,
        issuer_type=IssuerType.ADMIN.value,
        issuer_id=None,
    ):
        kind = OfferKind(offer_kind)
        if not isinstance(terms, TERMS_BY_KIND[kind]):
            raise ValidationError({"terms": [f"Terms do not match the {kind.value} offer kind"]})
        terms.validate()

        category_ids = [str(c) for c in (category_ids or [])]
        if CouponScope(scope) == CouponScope.SELECT and not category_ids:
            raise ValidationError({"category_ids": ["Select at least one category for a select-scope coupon"]})
        if max_amount is not None and max_amount < (min_amount or 0):
            raise ValidationError({"max_amount": ["Maximum amount must not be below the minimum amount"]})

        now = datetime.now(UTC)
        coupon = cls(
            code=normalize_code(code),
            name=name,
            description=description,
            offer_kind=kind.value,
            terms=json.dumps(encode_terms(terms)),
            min_amount=min_amount or 0.0,
            max_amount=max_amount,
            scope=CouponScope(scope).value,
            category_ids=json.dumps(category_ids),
            valid_from=valid_from,
            valid_until=valid_until,
            usage_limit=usage_limit,
            used_count=0,
            is_active=True,
            status=CouponStatus.ACTIVE.value,
            issuer_type=IssuerType(issuer_type).value,
            issuer_id=issuer_id,
            created_at=now,
        )
        coupon.raise_(
            CouponIssued(
                coupon_id=str(coupon.id),
                code=coupon.code,
                offer_kind=coupon.offer_kind,
                issued_at=now,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def kind(self) -> OfferKind:
        return OfferKind(self.offer_kind)

    @property
    def offer_terms(self) -> OfferTerms:
        return decode_terms(self.kind, json.loads(self.terms) if self.terms else None)

    @property
    def category_set(self) -> frozenset[str]:
        return frozenset(json.loads(self.category_ids) if self.category_ids else [])

    @property
    def usage_exhausted(self) -> bool:
        return self.usage_limit is not None and (self.used_count or 0) >= self.usage_limit

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def redeem(self, order_id) -> bool:
        """Consume one use. Returns False, unchanged, when the limit is already reached."""
        if self.usage_exhausted:
            return False

        self.used_count = (self.used_count or 0) + 1
        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                order_id=str(order_id),
                used_count=self.used_count,
            )
        )
        return True

    def deactivate(self):
        if not self.is_active:
            return
        with atomic_change(self):
            self.is_active = False
            self.status = CouponStatus.INACTIVE.value
        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code))
