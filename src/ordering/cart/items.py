"""Cart line management: commands and handler.

Every line added or resized is checked against the catalog first, so the
customer learns about unavailability when it happens rather than at checkout.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.catalog import get_catalog
from ordering.domain import ordering
from ordering.pricing.availability import stock_reason, unavailability_reason, variant_reason


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_key = String(max_length=100)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


def _purchasable_product(product_id, variant_key, quantity):
    product = get_catalog().get_product(str(product_id))

    reason = unavailability_reason(product)
    if reason:
        raise ValidationError({"product_id": [f"{reason}. This product is not available for purchase"]})

    reason = variant_reason(product, variant_key)
    if reason:
        raise ValidationError({"variant_key": [reason]})

    reason = stock_reason(product, variant_key, quantity)
    if reason:
        raise ValidationError({"quantity": [reason]})

    return product


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.customer_id)

        existing = cart.find_line(command.product_id, command.variant_key)
        already_in_cart = existing.quantity if existing else 0
        product = _purchasable_product(command.product_id, command.variant_key, already_in_cart + command.quantity)

        item = cart.add_item(
            product_id=command.product_id,
            variant_key=command.variant_key,
            quantity=command.quantity,
            unit_price=product.unit_price(datetime.now(UTC)),
            product_name=product.name,
            thumbnail_url=product.thumbnail_url,
        )
        repo.add(cart)
        return str(item.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.customer_id)

        item = cart.find_item(command.item_id)
        product = _purchasable_product(item.product_id, item.variant_key, command.new_quantity)

        cart.update_item_quantity(
            item_id=command.item_id,
            new_quantity=command.new_quantity,
            unit_price=product.unit_price(datetime.now(UTC)),
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get_or_create(command.customer_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)
