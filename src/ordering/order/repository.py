"""Repository for the Order aggregate, with the customer, vendor and courier listings."""

import json

from ordering.domain import ordering
from ordering.order.order import OfferStatus, Order

_SCAN_CHUNK = 100


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def find_by_idempotency_key(self, customer_id, idempotency_key: str) -> Order | None:
        return (
            self._dao.query.filter(customer_id=str(customer_id), idempotency_key=idempotency_key).all().first
        )

    def for_customer(self, customer_id, status=None, page=1, per_page=20) -> tuple[list[Order], int]:
        """One page of a customer's orders, newest first, with the total count."""
        filters = {"customer_id": str(customer_id)}
        if status:
            filters["status"] = status
        return self._page(filters, page, per_page)

    def for_vendor(self, vendor_id, status=None, page=1, per_page=20) -> tuple[list[Order], int]:
        """One page of the orders containing at least one of the vendor's lines.

        ``vendor_ids`` is stored as a JSON array, so matching the quoted id is
        an exact element match that the store can evaluate (a LIKE on SQL).
        """
        filters = {"vendor_ids__contains": _json_member(vendor_id)}
        if status:
            filters["status"] = status
        return self._page(filters, page, per_page)

    def for_courier(self, courier_id, status=None, page=1, per_page=20) -> tuple[list[Order], int]:
        """One page of the orders assigned to a courier, most recently assigned first."""
        filters = {"courier_id": str(courier_id)}
        if status:
            filters["status"] = status
        return self._page(filters, page, per_page, order_by="-assigned_at")

    def available_for_courier(self, courier_id, vendor_id, page=1, per_page=20) -> tuple[list[Order], int]:
        """Ready, unassigned orders of the courier's vendor that the courier may still accept.

        That is every such order holding a pending offer for the courier, plus
        those that were never offered to anyone.
        """
        candidates = self._scan(
            status="ready",
            courier_id__isnull=True,
            vendor_ids__contains=_json_member(vendor_id),
        )
        available = [order for order in candidates if _open_to(order, courier_id)]
        start = (page - 1) * per_page
        return available[start : start + per_page], len(available)

    def with_pending_offers(self) -> list[Order]:
        return [order for order in self._scan(status="ready") if order.pending_offers()]

    def _page(self, filters, page, per_page, order_by="-created_at") -> tuple[list[Order], int]:
        results = (
            self._dao.query.filter(**filters)
            .order_by(order_by)
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return list(results.items), results.total

    def _scan(self, **filters):
        offset = 0
        while True:
            query = self._dao.query
            if filters:
                query = query.filter(**filters)
            results = query.order_by("-created_at").offset(offset).limit(_SCAN_CHUNK).all()
            yield from results.items
            if not results.has_next:
                break
            offset += _SCAN_CHUNK


def _json_member(value) -> str:
    return json.dumps(str(value))


def _open_to(order: Order, courier_id) -> bool:
    if not order.offers:
        return True
    offer = order.offer_for(courier_id)
    return offer is not None and offer.status == OfferStatus.PENDING.value
