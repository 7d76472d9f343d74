"""Order lifecycle: status transitions and their side effects.

Entering ``cancelled`` or ``refunded`` restocks every line. Entering
``ready`` broadcasts assignment offers to couriers. A broadcast problem is
logged and never fails the transition that triggered it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.checkout.inventory import restock_lines
from ordering.dispatch.broadcaster import CourierBroadcaster
from ordering.domain import ordering
from ordering.order.order import Actor, Order, OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class TransitionOrderStatus:
    order_id = Identifier(required=True)
    new_status = String(required=True, choices=OrderStatus)
    actor = String(required=True, choices=Actor)
    actor_id = Identifier()
    reason = String(max_length=500)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor = String(required=True, choices=Actor)
    actor_id = Identifier()
    reason = String(max_length=500)


def _broadcast_once(order: Order) -> None:
    if order.broadcast_at is not None:
        return
    try:
        CourierBroadcaster().broadcast(order)
    except Exception:
        logger.error("assignment_broadcast_failed", order_number=order.order_number, exc_info=True)


def apply_transition(order: Order, new_status, actor, actor_id=None, reason=None) -> Order:
    """Transition ``order`` and run the side effects of the status it enters."""
    previous = order.transition_to(new_status, actor=actor, actor_id=actor_id, reason=reason)
    current = order.current_status

    if current in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        restock_lines(order.items)
        logger.info(
            "order_restocked",
            order_number=order.order_number,
            status=current.value,
            lines=len(order.items),
        )
    elif current == OrderStatus.READY:
        _broadcast_once(order)

    logger.info(
        "order_status_changed",
        order_number=order.order_number,
        previous_status=previous.value,
        new_status=current.value,
        actor=Actor(actor).value,
    )
    return order


@ordering.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(TransitionOrderStatus)
    def transition(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        apply_transition(order, command.new_status, command.actor, command.actor_id, command.reason)
        repo.add(order)
        return order.to_dict()

    @handle(CancelOrder)
    def cancel(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        apply_transition(order, OrderStatus.CANCELLED, command.actor, command.actor_id, command.reason)
        repo.add(order)
        return order.to_dict()
