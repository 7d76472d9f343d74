"""Order aggregate: the immutable record of a committed cart.

Lines, prices and the pricing breakdown are frozen at commit time and never
recomputed. After creation only the status, the courier assignment, the
lifecycle timestamps and the notes change, and only through the state machine
below.

State Machine:
    PENDING → CONFIRMED → PROCESSING → READY → OUT_FOR_DELIVERY → DELIVERED
    CANCELLED, REFUNDED (from any state that is not terminal)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import AssignmentConflict, Forbidden, InvalidTransition
from ordering.order.events import (
    AssignmentOffered,
    AssignmentOffersExpired,
    AssignmentRejected,
    CourierAssigned,
    OrderCancelled,
    OrderDelivered,
    OrderNotesUpdated,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    PaymentSettled,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    PREPAID = "prepaid"
    WALLET = "wallet"
    UPI = "upi"
    CARD = "card"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Actor(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    COURIER = "courier"
    ADMIN = "admin"
    SYSTEM = "system"


class OfferStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}

_FORWARD = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PROCESSING,
    OrderStatus.PROCESSING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
}

# State machine transition map
_VALID_TRANSITIONS = {
    status: ({_FORWARD[status]} if status in _FORWARD else set())
    | ({OrderStatus.CANCELLED, OrderStatus.REFUNDED} if status not in _TERMINAL_STATES else set())
    for status in OrderStatus
}

# States from which the purchasing customer may cancel
_CUSTOMER_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
}

# Which target statuses each actor may request
_ACTOR_TARGETS = {
    Actor.CUSTOMER: {OrderStatus.CANCELLED},
    Actor.VENDOR: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    Actor.COURIER: {OrderStatus.DELIVERED},
    Actor.ADMIN: set(OrderStatus),
    Actor.SYSTEM: set(OrderStatus),
}

_DEFERRED_SETTLEMENT_METHODS = {PaymentMethod.COD}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order is delivered, captured at checkout."""

    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    pin_code = String(required=True, max_length=6)
    phone = String(required=True, max_length=15)
    landmark = String(max_length=255)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Frozen pricing breakdown. Never recomputed after commit."""

    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    handling = Float(default=0.0)
    total = Float(default=0.0)
    total_cashback = Float(default=0.0)


@ordering.value_object(part_of="Order")
class CouponApplication:
    coupon_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    discount_amount = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    variant_key = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)
    cashback_amount = Float(default=0.0)
    product_name = String(max_length=255)
    thumbnail_url = String(max_length=1000)


@ordering.entity(part_of="Order")
class AssignmentOffer:
    """An invitation for one courier to deliver this order."""

    courier_id = Identifier(required=True)
    round = Integer(default=1)
    status = String(choices=OfferStatus, default=OfferStatus.PENDING.value)
    offered_at = DateTime(required=True)
    responded_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    customer_id = Identifier(required=True)
    vendor_ids = Text()  # JSON array
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    coupon = ValueObject(CouponApplication)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    courier_id = Identifier()
    assigned_at = DateTime()
    offers = HasMany(AssignmentOffer)
    broadcast_round = Integer(default=0)
    broadcast_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancelled_by = String(choices=Actor)
    cancellation_reason = String(max_length=500)
    notes = String(max_length=1000)
    idempotency_key = String(max_length=100)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        reconciliation,
        shipping_address,
        payment_method,
        coupon=None,
        idempotency_key=None,
        notes=None,
    ):
        """Build an order from a reconciled cart.

        Args:
            reconciliation: The ``Reconciliation`` whose surviving lines and
                pricing are copied verbatim onto the order.
            shipping_address: A ``ShippingAddress`` or a dict of its fields.
            coupon: The applied ``Coupon``, if its discount is in the pricing.
        """
        now = datetime.now(UTC)
        method = PaymentMethod(payment_method)
        pricing = reconciliation.pricing

        if isinstance(shipping_address, dict):
            shipping_address = ShippingAddress(**shipping_address)

        order = cls(
            order_number=order_number,
            customer_id=str(customer_id),
            vendor_ids=json.dumps(reconciliation.vendor_ids),
            items=[
                OrderItem(
                    product_id=line.product_id,
                    vendor_id=line.vendor_id,
                    variant_key=line.variant_key,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                    cashback_amount=line.cashback_amount,
                    product_name=line.product_name,
                    thumbnail_url=line.thumbnail_url,
                )
                for line in reconciliation.lines
            ],
            pricing=OrderPricing(**pricing.to_dict()),
            coupon=(
                CouponApplication(coupon_id=str(coupon.id), code=coupon.code, discount_amount=pricing.discount)
                if coupon is not None
                else None
            ),
            shipping_address=shipping_address,
            payment_method=method.value,
            payment_status=(
                PaymentStatus.PENDING.value
                if method in _DEFERRED_SETTLEMENT_METHODS
                else PaymentStatus.PROCESSING.value
            ),
            status=OrderStatus.PENDING.value,
            idempotency_key=idempotency_key,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                vendor_ids=order.vendor_ids,
                items=json.dumps([line.to_dict() for line in reconciliation.lines]),
                subtotal=pricing.subtotal,
                discount=pricing.discount,
                tax=pricing.tax,
                handling=pricing.handling,
                total=pricing.total,
                total_cashback=pricing.total_cashback,
                coupon_code=coupon.code if coupon is not None else None,
                payment_method=method.value,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def vendor_id_list(self) -> list[str]:
        return json.loads(self.vendor_ids) if self.vendor_ids else []

    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def pending_offers(self) -> list[AssignmentOffer]:
        return [o for o in self.offers if o.status == OfferStatus.PENDING.value]

    def offer_for(self, courier_id) -> AssignmentOffer | None:
        """The courier's most recent offer."""
        candidates = [o for o in self.offers if str(o.courier_id) == str(courier_id)]
        return max(candidates, key=lambda o: (o.round or 0, o.offered_at)) if candidates else None

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _VALID_TRANSITIONS[self.current_status]

    # -------------------------------------------------------------------
    # Authority
    # -------------------------------------------------------------------
    def is_involved(self, actor: Actor, actor_id) -> bool:
        """Whether the caller has any standing on this order."""
        if actor in (Actor.ADMIN, Actor.SYSTEM):
            return True
        if actor == Actor.CUSTOMER:
            return str(self.customer_id) == str(actor_id)
        if actor == Actor.VENDOR:
            return str(actor_id) in self.vendor_id_list
        if actor == Actor.COURIER:
            return self.courier_id is not None and str(self.courier_id) == str(actor_id)
        return False

    def _assert_authority(self, target: OrderStatus, actor: Actor, actor_id):
        if not self.is_involved(actor, actor_id):
            raise Forbidden("You are not allowed to act on this order")

        if target not in _ACTOR_TARGETS[actor]:
            raise Forbidden(f"A {actor.value} cannot move an order to {target.value}")

        if (
            actor == Actor.CUSTOMER
            and target == OrderStatus.CANCELLED
            and self.current_status not in _CUSTOMER_CANCELLABLE_STATES
        ):
            raise Forbidden(f"Order cannot be cancelled by the customer once it is {self.status}")

    def _assert_can_transition(self, target: OrderStatus):
        if not self.can_transition_to(target):
            raise InvalidTransition(self.status, target.value)

    def _payment_status_on_cancel(self) -> PaymentStatus:
        # Nothing was collected for COD or for a settlement that already failed
        if (
            PaymentMethod(self.payment_method) in _DEFERRED_SETTLEMENT_METHODS
            or self.payment_status == PaymentStatus.FAILED.value
        ):
            return PaymentStatus.FAILED
        return PaymentStatus.REFUNDED

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition_to(self, target, actor, actor_id=None, reason=None) -> OrderStatus:
        """Move the order to ``target`` on behalf of ``actor``.

        Stamps the lifecycle fields that belong to the new status. Returns the
        previous status so the caller can run the matching side effects.
        """
        target = OrderStatus(target)
        actor = Actor(actor)
        self._assert_authority(target, actor, actor_id)
        self._assert_can_transition(target)

        previous = self.current_status
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = target.value
            self.updated_at = now

            if target == OrderStatus.DELIVERED and self.delivered_at is None:
                self.delivered_at = now
            elif target == OrderStatus.CANCELLED:
                self.cancelled_at = now
                self.cancelled_by = actor.value
                self.cancellation_reason = reason
                self.payment_status = self._payment_status_on_cancel().value
            elif target == OrderStatus.REFUNDED:
                if self.payment_status != PaymentStatus.FAILED.value:
                    self.payment_status = PaymentStatus.REFUNDED.value
                self.cancellation_reason = reason or self.cancellation_reason

            if target in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
                for offer in self.pending_offers():
                    offer.status = OfferStatus.EXPIRED.value
                    offer.responded_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous.value,
                new_status=target.value,
                actor=actor.value,
                actor_id=str(actor_id) if actor_id else None,
                changed_at=now,
            )
        )

        if target == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    customer_id=str(self.customer_id),
                    cancelled_by=actor.value,
                    reason=reason,
                    payment_status=self.payment_status,
                    cancelled_at=now,
                )
            )
        elif target == OrderStatus.REFUNDED:
            self.raise_(
                OrderRefunded(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    amount=self.pricing.total if self.pricing else 0.0,
                    refunded_at=now,
                )
            )
        elif target == OrderStatus.DELIVERED:
            self.raise_(
                OrderDelivered(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    courier_id=str(self.courier_id) if self.courier_id else None,
                    delivered_at=self.delivered_at,
                )
            )

        return previous

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def settle_payment(self, succeeded: bool):
        """Record the outcome reported by the external payment collaborator."""
        if PaymentStatus(self.payment_status) not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            raise ValidationError({"payment_status": [f"Payment is already {self.payment_status}"]})
        if self.current_status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise ValidationError({"status": ["Cannot settle payment for a cancelled order"]})

        self.payment_status = PaymentStatus.COMPLETED.value if succeeded else PaymentStatus.FAILED.value
        self.updated_at = datetime.now(UTC)
        self.raise_(PaymentSettled(order_id=str(self.id), payment_status=self.payment_status))

    # -------------------------------------------------------------------
    # Notes
    # -------------------------------------------------------------------
    def update_notes(self, notes, actor, actor_id):
        actor = Actor(actor)
        if actor == Actor.COURIER or not self.is_involved(actor, actor_id):
            raise Forbidden("You are not allowed to edit notes on this order")

        self.notes = notes
        self.updated_at = datetime.now(UTC)
        self.raise_(OrderNotesUpdated(order_id=str(self.id), updated_by=actor.value))

    # -------------------------------------------------------------------
    # Courier assignment
    # -------------------------------------------------------------------
    def record_offers(self, courier_ids, now=None) -> list[AssignmentOffer]:
        """Open a broadcast round with one pending offer per courier."""
        if self.current_status != OrderStatus.READY:
            raise InvalidTransition(self.status, OrderStatus.READY.value)
        if self.courier_id is not None:
            raise AssignmentConflict(str(self.id))

        now = now or datetime.now(UTC)
        round_number = (self.broadcast_round or 0) + 1
        already_pending = {str(o.courier_id) for o in self.pending_offers()}

        offers = []
        with atomic_change(self):
            for courier_id in courier_ids:
                if str(courier_id) in already_pending:
                    continue
                offer = AssignmentOffer(
                    courier_id=str(courier_id),
                    round=round_number,
                    status=OfferStatus.PENDING.value,
                    offered_at=now,
                )
                self.add_offers(offer)
                offers.append(offer)

            self.broadcast_round = round_number
            self.broadcast_at = now
            self.updated_at = now

        self.raise_(
            AssignmentOffered(
                order_id=str(self.id),
                order_number=self.order_number,
                round=round_number,
                courier_ids=json.dumps([str(o.courier_id) for o in offers]),
                offered_at=now,
            )
        )
        return offers

    def accept_offer(self, courier_id):
        """First accept wins: assign the courier and expire every other pending offer."""
        if self.courier_id is not None:
            raise AssignmentConflict(str(self.id))
        if self.current_status != OrderStatus.READY:
            raise InvalidTransition(self.status, OrderStatus.OUT_FOR_DELIVERY.value)

        offer = self.offer_for(courier_id)
        if self.offers and offer is None:
            raise Forbidden("This order was not offered to you")
        if offer is not None and offer.status != OfferStatus.PENDING.value:
            raise AssignmentConflict(str(self.id), f"Your offer for this order is already {offer.status}")

        now = datetime.now(UTC)
        expired = 0
        with atomic_change(self):
            for other in self.pending_offers():
                if other is offer:
                    continue
                other.status = OfferStatus.EXPIRED.value
                other.responded_at = now
                expired += 1
            if offer is not None:
                offer.status = OfferStatus.ACCEPTED.value
                offer.responded_at = now

            self.courier_id = str(courier_id)
            self.assigned_at = now
            self.status = OrderStatus.OUT_FOR_DELIVERY.value
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=OrderStatus.READY.value,
                new_status=OrderStatus.OUT_FOR_DELIVERY.value,
                actor=Actor.COURIER.value,
                actor_id=str(courier_id),
                changed_at=now,
            )
        )
        self.raise_(
            CourierAssigned(
                order_id=str(self.id),
                order_number=self.order_number,
                courier_id=str(courier_id),
                expired_offers=expired,
                assigned_at=now,
            )
        )

    def reject_offer(self, courier_id):
        offer = self.offer_for(courier_id)
        if offer is None:
            raise Forbidden("This order was not offered to you")
        if offer.status != OfferStatus.PENDING.value:
            raise AssignmentConflict(str(self.id), f"Your offer for this order is already {offer.status}")

        now = datetime.now(UTC)
        offer.status = OfferStatus.REJECTED.value
        offer.responded_at = now
        self.updated_at = now
        self.raise_(AssignmentRejected(order_id=str(self.id), courier_id=str(courier_id), rejected_at=now))

    def expire_offers(self, offered_before) -> int:
        """Expire pending offers made before ``offered_before``."""
        now = datetime.now(UTC)
        stale = [o for o in self.pending_offers() if o.offered_at <= offered_before]
        if not stale:
            return 0

        with atomic_change(self):
            for offer in stale:
                offer.status = OfferStatus.EXPIRED.value
                offer.responded_at = now
            self.updated_at = now

        self.raise_(AssignmentOffersExpired(order_id=str(self.id), expired_count=len(stale), expired_at=now))
        return len(stale)

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    def to_dict(self) -> dict:
        return {
            "order_id": str(self.id),
            "order_number": self.order_number,
            "customer_id": str(self.customer_id),
            "vendor_ids": self.vendor_id_list,
            "status": self.status,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "items": [_item_dict(item) for item in self.items],
            "pricing": self.pricing.to_dict() if self.pricing else None,
            "coupon": self.coupon.to_dict() if self.coupon else None,
            "shipping_address": self.shipping_address.to_dict() if self.shipping_address else None,
            "courier_id": str(self.courier_id) if self.courier_id else None,
            "assigned_at": _iso(self.assigned_at),
            "offers": [
                {
                    "courier_id": str(o.courier_id),
                    "round": o.round,
                    "status": o.status,
                    "offered_at": _iso(o.offered_at),
                    "responded_at": _iso(o.responded_at),
                }
                for o in self.offers
            ],
            "delivered_at": _iso(self.delivered_at),
            "cancelled_at": _iso(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def vendor_lines(self, vendor_id) -> list[OrderItem]:
        return [item for item in self.items if str(item.vendor_id) == str(vendor_id)]

    def vendor_pricing(self, vendor_id) -> dict:
        """The vendor's slice of the order pricing.

        Discount, tax and handling are split by the vendor's share of the
        order subtotal. The slices are rounded independently, so they may be a
        paisa off the order totals when summed across vendors.
        """
        lines = self.vendor_lines(vendor_id)
        pricing = self.pricing or OrderPricing()
        items_subtotal = round(sum(item.total_price for item in lines), 2)
        share = items_subtotal / pricing.subtotal if pricing.subtotal else 0.0
        discount = round(pricing.discount * share, 2)
        tax = round(pricing.tax * share, 2)
        handling = round(pricing.handling * share, 2)
        return {
            "items_subtotal": items_subtotal,
            "items_cashback": round(sum(item.cashback_amount or 0 for item in lines), 2),
            "item_count": sum(item.quantity for item in lines),
            "share": round(share, 4),
            "discount": discount,
            "tax": tax,
            "handling": handling,
            "total": round(items_subtotal - discount + tax + handling, 2),
        }

    def vendor_view(self, vendor_id) -> dict:
        """The order as one vendor sees it: only their lines, with their own totals."""
        view = self.to_dict()
        view["items"] = [_item_dict(item) for item in self.vendor_lines(vendor_id)]
        view["vendor_pricing"] = self.vendor_pricing(vendor_id)
        return view

    def invoice(self, vendor_id=None) -> dict:
        """Invoice for the whole order, or for one vendor's part of it."""
        if vendor_id is None:
            items = list(self.items)
            pricing = self.pricing.to_dict() if self.pricing else OrderPricing().to_dict()
        else:
            items = self.vendor_lines(vendor_id)
            sliced = self.vendor_pricing(vendor_id)
            pricing = {
                "subtotal": sliced["items_subtotal"],
                "discount": sliced["discount"],
                "tax": sliced["tax"],
                "handling": sliced["handling"],
                "total": sliced["total"],
                "total_cashback": sliced["items_cashback"],
            }

        return {
            "invoice_number": self.order_number,
            "order_id": str(self.id),
            "order_date": _iso(self.created_at),
            "delivery_date": _iso(self.delivered_at),
            "customer_id": str(self.customer_id),
            "vendor_ids": [str(vendor_id)] if vendor_id is not None else self.vendor_id_list,
            "shipping_address": self.shipping_address.to_dict() if self.shipping_address else None,
            "items": [_item_dict(item) for item in items],
            "pricing": pricing,
            "coupon_code": self.coupon.code if self.coupon else None,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "courier_id": str(self.courier_id) if self.courier_id else None,
            "status": self.status,
        }


def _iso(value):
    return value.isoformat() if value else None


def _item_dict(item: OrderItem) -> dict:
    return {
        "item_id": str(item.id),
        "product_id": str(item.product_id),
        "vendor_id": str(item.vendor_id),
        "variant_key": item.variant_key,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "total_price": item.total_price,
        "cashback_amount": item.cashback_amount,
        "product_name": item.product_name,
        "thumbnail_url": item.thumbnail_url,
    }
