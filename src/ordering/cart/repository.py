"""Repository for the ShoppingCart aggregate."""

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_customer(self, customer_id) -> ShoppingCart | None:
        return self._dao.query.filter(customer_id=str(customer_id)).all().first

    def get_or_create(self, customer_id) -> ShoppingCart:
        """Return the customer's cart, creating an empty one on first use."""
        cart = self.for_customer(customer_id)
        if cart is None:
            cart = ShoppingCart.create(customer_id=str(customer_id))
        return cart
