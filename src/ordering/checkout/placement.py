"""Order commit pipeline: turns the customer's cart into an immutable order.

The pipeline reconciles the cart, debits inventory line by line, allocates an
order number, persists the order, consumes one coupon use and empties the
cart. Any failure after the first debit restocks every line debited in that
attempt before the error surfaces.
"""

import structlog
from protean import handle
from protean.fields import Dict, Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import RefreshCart
from ordering.cart.pricing import attached_coupon
from ordering.checkout.inventory import debit_lines, restock_lines
from ordering.coupon.coupon import Coupon
from ordering.domain import ordering
from ordering.errors import CouponUsageExhausted, EmptyCart, NoAvailableItems
from ordering.order.numbering import allocate_order_number
from ordering.order.order import Order, PaymentMethod, ShippingAddress
from ordering.pricing.reconciler import reconcile
from ordering.utils.locks import cart_key, coupon_key, hold, is_held

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    shipping_address = Dict(required=True)
    payment_method = String(required=True, choices=PaymentMethod)
    notes = String(max_length=1000)
    idempotency_key = String(max_length=100)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    """Commits a cart. Reached only through ``place_order``.

    The unit of work commits after the handler returns, so the cart and coupon
    locks must already be held by the caller for the whole ``process`` call.
    """

    @handle(PlaceOrder)
    def place_order(self, command):
        if not is_held(cart_key(command.customer_id)):
            raise RuntimeError("PlaceOrder must be processed through place_order()")

        order_repo = current_domain.repository_for(Order)
        if command.idempotency_key:
            existing = order_repo.find_by_idempotency_key(command.customer_id, command.idempotency_key)
            if existing is not None:
                logger.info("order_replayed", order_number=existing.order_number)
                return str(existing.id)

        address = ShippingAddress(**command.shipping_address)

        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.for_customer(command.customer_id)
        if cart is None or not cart.items:
            raise EmptyCart()
        if cart.coupon_id and not is_held(coupon_key(cart.coupon_id)):
            raise RuntimeError("PlaceOrder must be processed through place_order()")

        coupon = attached_coupon(cart)
        if coupon is not None and coupon.usage_exhausted:
            raise CouponUsageExhausted(coupon.code)

        reconciliation = reconcile(cart.items, coupon=coupon)
        if reconciliation.removed:
            cart.apply_reconciliation(reconciliation)
        if not reconciliation.lines:
            raise NoAvailableItems(reconciliation.removed)

        debited = debit_lines(reconciliation.lines)
        try:
            order_number = allocate_order_number(lambda candidate: order_repo.find_by_number(candidate) is not None)
            applied_coupon = coupon if reconciliation.coupon_applied else None

            order = Order.place(
                order_number=order_number,
                customer_id=command.customer_id,
                reconciliation=reconciliation,
                shipping_address=address,
                payment_method=command.payment_method,
                coupon=applied_coupon,
                idempotency_key=command.idempotency_key,
                notes=command.notes,
            )

            if applied_coupon is not None:
                if not applied_coupon.redeem(order.id):
                    raise CouponUsageExhausted(applied_coupon.code)
                current_domain.repository_for(Coupon).add(applied_coupon)

            order_repo.add(order)
            cart.clear(reason="checkout")
            cart_repo.add(cart)
        except Exception:
            restock_lines(debited)
            logger.warning("checkout_rolled_back", customer_id=str(command.customer_id), restocked=len(debited))
            raise

        logger.info(
            "order_committed",
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            lines=len(order.items),
            total=order.pricing.total,
            coupon=applied_coupon.code if applied_coupon else None,
        )
        return str(order.id)


def place_order(customer_id, shipping_address, payment_method, notes=None, idempotency_key=None) -> Order:
    """Commit the customer's cart, serialized against other checkouts of the same cart and coupon.

    Lines that are no longer available are pruned from the stored cart first,
    so a ``NoAvailableItems`` failure leaves the cart as pruned.
    """
    order_repo = current_domain.repository_for(Order)

    with hold(cart_key(customer_id)):
        if idempotency_key:
            existing = order_repo.find_by_idempotency_key(customer_id, idempotency_key)
            if existing is not None:
                return existing

        cart = current_domain.repository_for(ShoppingCart).for_customer(customer_id)
        if cart is None or not cart.items:
            raise EmptyCart()

        reconciliation = current_domain.process(RefreshCart(customer_id=customer_id), asynchronous=False)
        if not reconciliation.lines:
            raise NoAvailableItems(reconciliation.removed)

        cart = current_domain.repository_for(ShoppingCart).for_customer(customer_id)
        coupon_keys = [coupon_key(cart.coupon_id)] if cart.coupon_id else []
        with hold(*coupon_keys):
            order_id = current_domain.process(
                PlaceOrder(
                    customer_id=customer_id,
                    shipping_address=shipping_address,
                    payment_method=payment_method,
                    notes=notes,
                    idempotency_key=idempotency_key,
                ),
                asynchronous=False,
            )

    return order_repo.get(order_id)
