"""Repository for the Coupon aggregate."""

from ordering.coupon.coupon import Coupon, normalize_code
from ordering.domain import ordering


@ordering.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon | None:
        """Case-insensitive lookup by coupon code."""
        return self._dao.query.filter(code=normalize_code(code)).all().first
