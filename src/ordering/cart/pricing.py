"""Reconciling a stored cart: loads its coupon and runs the pricing reconciler."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.coupon.coupon import Coupon
from ordering.pricing.reconciler import Reconciliation, reconcile


def attached_coupon(cart: ShoppingCart) -> Coupon | None:
    if not cart.coupon_id:
        return None
    try:
        return current_domain.repository_for(Coupon).get(cart.coupon_id)
    except ObjectNotFoundError:
        return None


def reconcile_cart(cart: ShoppingCart, now=None) -> Reconciliation:
    return reconcile(cart.items, coupon=attached_coupon(cart), now=now)
