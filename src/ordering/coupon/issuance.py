"""Coupon issuance and deactivation: commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Dict, Float, Identifier, Integer, List, String
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon, IssuerType, normalize_code
from ordering.coupon.terms import OfferKind, decode_terms
from ordering.domain import ordering
from ordering.errors import Forbidden


@ordering.command(part_of="Coupon")
class IssueCoupon:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    offer_kind = String(required=True, choices=OfferKind)
    terms = Dict()
    min_amount = Float(default=0.0)
    max_amount = Float()
    scope = String(default="all")
    category_ids = List(content_type=String)
    valid_from = DateTime()
    valid_until = DateTime()
    usage_limit = Integer(min_value=1)
    issuer_type = String(default=IssuerType.ADMIN.value)
    issuer_id = Identifier()


@ordering.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)
    issuer_type = String(required=True)
    issuer_id = Identifier()


@ordering.command_handler(part_of=Coupon)
class CouponIssuanceHandler:
    @handle(IssueCoupon)
    def issue_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": [f"Coupon code {normalize_code(command.code)} already exists"]})

        kind = OfferKind(command.offer_kind)
        coupon = Coupon.issue(
            code=command.code,
            name=command.name,
            description=command.description,
            offer_kind=kind.value,
            terms=decode_terms(kind, command.terms),
            min_amount=command.min_amount,
            max_amount=command.max_amount,
            scope=command.scope,
            category_ids=command.category_ids,
            valid_from=command.valid_from,
            valid_until=command.valid_until,
            usage_limit=command.usage_limit,
            issuer_type=command.issuer_type,
            issuer_id=command.issuer_id,
        )
        repo.add(coupon)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)

        if command.issuer_type != IssuerType.ADMIN.value and (
            coupon.issuer_type != command.issuer_type or str(coupon.issuer_id) != str(command.issuer_id)
        ):
            raise Forbidden("You can only deactivate coupons you issued")

        coupon.deactivate()
        repo.add(coupon)
