"""Courier responses to assignment offers, re-broadcasts and the stale-offer sweep."""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ordering.dispatch.broadcaster import CourierBroadcaster
from ordering.dispatch.courier import Courier
from ordering.dispatch.policy import get_dispatch_policy
from ordering.domain import ordering
from ordering.errors import Forbidden, InvalidTransition
from ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class AcceptAssignment:
    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RejectAssignment:
    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RebroadcastOffers:
    """Open a new offer round for a ready order nobody has accepted."""

    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class ExpireStaleOffers:
    """Expire pending offers older than the offer TTL, measured from ``as_of``."""

    as_of = DateTime()


def _eligible_courier(courier_id, order: Order) -> Courier:
    courier = current_domain.repository_for(Courier).get(courier_id)
    if not courier.is_eligible:
        raise Forbidden("Courier is not active or not approved")
    if not courier.serves_any(order.vendor_id_list):
        raise Forbidden("You can only accept orders from your own vendor")
    return courier


@ordering.command_handler(part_of=Order)
class AssignmentHandler:
    @handle(AcceptAssignment)
    def accept(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        _eligible_courier(command.courier_id, order)

        order.accept_offer(command.courier_id)
        repo.add(order)
        logger.info("courier_assigned", order_number=order.order_number, courier_id=str(command.courier_id))
        return order.to_dict()

    @handle(RejectAssignment)
    def reject(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.reject_offer(command.courier_id)
        repo.add(order)
        logger.info("assignment_rejected", order_number=order.order_number, courier_id=str(command.courier_id))

    @handle(RebroadcastOffers)
    def rebroadcast(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.current_status != OrderStatus.READY:
            raise InvalidTransition(order.status, OrderStatus.READY.value)

        offered = CourierBroadcaster().broadcast(order)
        repo.add(order)
        return offered

    @handle(ExpireStaleOffers)
    def expire_stale(self, command):
        repo = current_domain.repository_for(Order)
        cutoff = (command.as_of or datetime.now(UTC)) - get_dispatch_policy().offer_ttl

        expired = 0
        for order in repo.with_pending_offers():
            count = order.expire_offers(offered_before=cutoff)
            if count:
                repo.add(order)
                expired += count

        if expired:
            logger.info("stale_offers_expired", expired=expired)
        return expired
