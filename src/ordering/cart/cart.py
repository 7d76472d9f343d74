"""Shopping Cart aggregate: the mutable per-customer basket.

There is exactly one cart per customer, created lazily on the first mutation.
Line prices are advisory snapshots. The pricing reconciler re-derives them
from the catalog whenever fresh numbers are needed. Checkout empties the cart
but the cart itself is kept.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartLinesPruned,
    CartQuantityUpdated,
)
from ordering.domain import ordering


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_key = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price_snapshot = Float(default=0.0)
    line_total_snapshot = Float(default=0.0)
    product_name = String(max_length=255)
    thumbnail_url = String(max_length=1000)
    added_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    coupon_id = Identifier()
    coupon_code = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def empty_cart_cannot_hold_a_coupon(self):
        if not self.items and self.coupon_id:
            raise ValidationError({"coupon": ["An empty cart cannot have a coupon applied"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def find_item(self, item_id) -> CartItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    def find_line(self, product_id, variant_key=None) -> CartItem | None:
        return next(
            (
                i
                for i in self.items
                if str(i.product_id) == str(product_id) and (i.variant_key or None) == (variant_key or None)
            ),
            None,
        )

    def add_item(self, product_id, quantity, unit_price, variant_key=None, product_name=None, thumbnail_url=None):
        """Add a line, or top up the quantity of the matching product and variant."""
        now = datetime.now(UTC)
        existing = self.find_line(product_id, variant_key)

        if existing:
            with atomic_change(self):
                existing.quantity += quantity
                existing.unit_price_snapshot = unit_price
                existing.line_total_snapshot = round(unit_price * existing.quantity, 2)
                existing.product_name = product_name
                existing.thumbnail_url = thumbnail_url
            item = existing
        else:
            item = CartItem(
                product_id=product_id,
                variant_key=variant_key,
                quantity=quantity,
                unit_price_snapshot=unit_price,
                line_total_snapshot=round(unit_price * quantity, 2),
                product_name=product_name,
                thumbnail_url=thumbnail_url,
                added_at=now,
            )
            self.add_items(item)

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item.id),
                product_id=str(product_id),
                variant_key=variant_key,
                quantity=quantity,
            )
        )
        return item

    def update_item_quantity(self, item_id, new_quantity, unit_price=None):
        item = self.find_item(item_id)
        previous_quantity = item.quantity

        with atomic_change(self):
            item.quantity = new_quantity
            if unit_price is not None:
                item.unit_price_snapshot = unit_price
            item.line_total_snapshot = round((item.unit_price_snapshot or 0) * new_quantity, 2)
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, item_id):
        item = self.find_item(item_id)

        with atomic_change(self):
            if len(self.items) == 1:
                self._drop_coupon()
            self.remove_items(item)
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
                product_id=str(item.product_id),
            )
        )

    def clear(self, reason="customer"):
        """Drop every line and the coupon."""
        with atomic_change(self):
            self._drop_coupon()
            for item in list(self.items):
                self.remove_items(item)
            self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), customer_id=str(self.customer_id), reason=reason))

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon_id, coupon_code, previewed_discount=0.0):
        if not self.items:
            raise ValidationError({"coupon_code": ["Add items to your cart before applying a coupon"]})

        with atomic_change(self):
            self.coupon_id = coupon_id
            self.coupon_code = coupon_code
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_id=str(coupon_id),
                coupon_code=coupon_code,
                previewed_discount=previewed_discount,
            )
        )

    def remove_coupon(self):
        if not self.coupon_id:
            raise ValidationError({"coupon_code": ["No coupon is applied to this cart"]})

        code = self.coupon_code
        self._drop_coupon()
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=code))

    def _drop_coupon(self):
        self.coupon_id = None
        self.coupon_code = None

    # -------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------
    def apply_reconciliation(self, reconciliation) -> bool:
        """Prune removed lines and refresh price snapshots. Returns True if anything changed."""
        changed = False
        fresh = {line.item_id: line for line in reconciliation.lines}
        removed_ids = {line.item_id for line in reconciliation.removed}

        with atomic_change(self):
            for item in list(self.items):
                line = fresh.get(str(item.id))
                if line is not None:
                    if (
                        item.unit_price_snapshot != line.unit_price
                        or item.line_total_snapshot != line.total_price
                        or item.product_name != line.product_name
                    ):
                        item.unit_price_snapshot = line.unit_price
                        item.line_total_snapshot = line.total_price
                        item.product_name = line.product_name
                        item.thumbnail_url = line.thumbnail_url
                        changed = True
                elif str(item.id) in removed_ids:
                    self.remove_items(item)
                    changed = True

            if not self.items and self.coupon_id:
                self._drop_coupon()

            if changed:
                self.updated_at = datetime.now(UTC)

        if reconciliation.removed:
            self.raise_(
                CartLinesPruned(
                    cart_id=str(self.id),
                    removed_items=json.dumps(
                        [
                            {"item_id": r.item_id, "product_id": r.product_id, "reason": r.reason}
                            for r in reconciliation.removed
                        ]
                    ),
                )
            )
        return changed
