"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A cart was committed into an order. Inventory is debited and prices are frozen."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    vendor_ids = Text(required=True)  # JSON array
    items = Text(required=True)  # JSON array of order lines
    subtotal = Float(required=True)
    discount = Float(required=True)
    tax = Float(required=True)
    handling = Float(required=True)
    total = Float(required=True)
    total_cashback = Float(required=True)
    coupon_code = String()
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    actor = String(required=True)
    actor_id = Identifier()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled. Its lines are restocked."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    cancelled_by = String(required=True)
    reason = String()
    payment_status = String(required=True)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Float(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    courier_id = Identifier()
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentSettled:
    """The external payment collaborator reported the outcome of a charge."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_status = String(required=True)


@ordering.event(part_of="Order")
class AssignmentOffered:
    """A broadcast round offered the order to a set of couriers."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    round = Integer(required=True)
    courier_ids = Text(required=True)  # JSON array
    offered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class CourierAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    courier_id = Identifier(required=True)
    expired_offers = Integer(required=True)
    assigned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class AssignmentRejected:
    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    rejected_at = DateTime(required=True)


@ordering.event(part_of="Order")
class AssignmentOffersExpired:
    __version__ = 1

    order_id = Identifier(required=True)
    expired_count = Integer(required=True)
    expired_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderNotesUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    updated_by = String(required=True)
