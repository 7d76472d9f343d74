"""Whole-cart operations: clearing and explicit reconciliation."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.pricing import reconcile_cart
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class RefreshCart:
    """Re-price the cart against the catalog and prune lines that cannot be bought."""

    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None or not cart.items:
            return
        cart.clear(reason="customer")
        repo.add(cart)

    @handle(RefreshCart)
    def refresh_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.customer_id)

        reconciliation = reconcile_cart(cart)
        if cart.apply_reconciliation(reconciliation):
            repo.add(cart)
        return reconciliation
