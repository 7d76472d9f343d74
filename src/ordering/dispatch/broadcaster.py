"""Courier assignment broadcaster.

When an order becomes ready, every active, approved courier affiliated with
one of its vendors receives a pending offer. Connected couriers get a
real-time push. The others also get a durable queue task. Delivery problems
are logged and never fail the broadcast: the offered count reflects offers
created, not offers delivered.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.dispatch.channel import (
    DeliveryOutcome,
    NotificationQueue,
    PresenceTracker,
    RealtimeChannel,
    get_notification_queue,
    get_presence,
    get_realtime_channel,
)
from ordering.dispatch.courier import Courier
from ordering.order.order import Order

logger = structlog.get_logger(__name__)

ASSIGNMENT_REQUEST = "order_assignment_request"


def assignment_payload(order: Order, offered_at) -> dict:
    total = order.pricing.total if order.pricing else 0.0
    return {
        "type": ASSIGNMENT_REQUEST,
        "title": "New Order Assignment Available",
        "message": f"Order {order.order_number} is ready for delivery. Amount: ₹{total:.2f}",
        "order_id": str(order.id),
        "order_number": order.order_number,
        "vendor_ids": order.vendor_id_list,
        "total": total,
        "item_count": sum(item.quantity for item in order.items),
        "round": order.broadcast_round,
        "offered_at": offered_at.isoformat(),
    }


class CourierBroadcaster:
    def __init__(
        self,
        channel: RealtimeChannel | None = None,
        presence: PresenceTracker | None = None,
        queue: NotificationQueue | None = None,
    ) -> None:
        self.channel = channel or get_realtime_channel()
        self.presence = presence or get_presence()
        self.queue = queue or get_notification_queue()

    def broadcast(self, order: Order) -> int:
        """Offer ``order`` to every eligible courier. Returns the number of offers created."""
        couriers = current_domain.repository_for(Courier).eligible_for_vendors(order.vendor_id_list)
        if not couriers:
            logger.info("no_eligible_couriers", order_number=order.order_number, vendor_ids=order.vendor_id_list)
            return 0

        offers = order.record_offers([str(c.id) for c in couriers])
        pushed = queued = 0

        for offer in offers:
            payload = assignment_payload(order, offer.offered_at)
            if self._push(offer.courier_id, payload):
                pushed += 1
            elif self._enqueue(offer.courier_id, payload):
                queued += 1

        logger.info(
            "assignment_offers_broadcast",
            order_number=order.order_number,
            round=order.broadcast_round,
            offered=len(offers),
            pushed=pushed,
            queued=queued,
        )
        return len(offers)

    def _push(self, courier_id, payload) -> bool:
        if not self.presence.is_connected(courier_id):
            return False
        try:
            return self.channel.send_to_recipient(courier_id, payload) == DeliveryOutcome.DELIVERED
        except Exception:
            logger.warning("assignment_push_failed", courier_id=courier_id, exc_info=True)
            return False

    def _enqueue(self, courier_id, payload) -> bool:
        try:
            self.queue.enqueue({"recipient_id": str(courier_id), "channel": "push", "payload": payload})
            return True
        except Exception:
            logger.error("assignment_fallback_enqueue_failed", courier_id=courier_id, exc_info=True)
            return False
