"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Coupon")
class CouponIssued:
    """A new coupon definition was issued."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    offer_kind = String(required=True)
    issued_at = DateTime(required=True)


@ordering.event(part_of="Coupon")
class CouponRedeemed:
    """A committed order consumed one use of the coupon."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    order_id = Identifier(required=True)
    used_count = Integer(required=True)


@ordering.event(part_of="Coupon")
class CouponDeactivated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
