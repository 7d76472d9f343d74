"""Cart coupon management: commands and handler.

Applying a coupon previews its discount against the freshly reconciled
subtotal. Usage is not consumed until an order is committed.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.coupon.coupon import Coupon, normalize_code
from ordering.domain import ordering
from ordering.pricing.reconciler import reconcile


@ordering.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    customer_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@ordering.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class CartCouponHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.customer_id)
        if not cart.items:
            raise ValidationError({"coupon_code": ["Add items to your cart before applying a coupon"]})

        coupon = current_domain.repository_for(Coupon).find_by_code(command.coupon_code)
        if coupon is None:
            raise ValidationError({"coupon_code": [f"Coupon {normalize_code(command.coupon_code)} does not exist"]})

        reconciliation = reconcile(cart.items, coupon=coupon)
        if not reconciliation.lines:
            raise ValidationError({"coupon_code": ["None of the items in your cart are available"]})
        if not reconciliation.coupon_applied:
            raise ValidationError({"coupon_code": [reconciliation.coupon_result.reason]})

        cart.apply_reconciliation(reconciliation)
        cart.apply_coupon(
            coupon_id=str(coupon.id),
            coupon_code=coupon.code,
            previewed_discount=reconciliation.pricing.discount,
        )
        repo.add(cart)
        return reconciliation

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.customer_id)
        cart.remove_coupon()
        repo.add(cart)
