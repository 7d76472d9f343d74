"""Application tests for the vendor and courier order listings."""

import pytest
from ordering.dispatch.assignment import AcceptAssignment, RejectAssignment
from ordering.order.order import Order
from protean import current_domain


def _repo():
    return current_domain.repository_for(Order)


@pytest.fixture()
def ready_order(placed_order, transition):
    def _make(customer_id="cust-001", vendor_id="vendor-001", product_id="prod-001"):
        order = placed_order(customer_id=customer_id, vendor_id=vendor_id, product_id=product_id)
        for status in ("confirmed", "processing", "ready"):
            transition(order.id, status, actor_id=vendor_id)
        return _repo().get(str(order.id))

    return _make


class TestVendorListing:
    def test_only_orders_with_the_vendors_lines(self, placed_order):
        mine = placed_order(customer_id="cust-001", vendor_id="vendor-001", product_id="prod-001")
        placed_order(customer_id="cust-002", vendor_id="vendor-002", product_id="prod-002")

        orders, total = _repo().for_vendor("vendor-001")

        assert total == 1
        assert [o.id for o in orders] == [mine.id]

    def test_vendor_id_prefix_does_not_match(self, placed_order):
        placed_order(customer_id="cust-001", vendor_id="vendor-0011", product_id="prod-001")

        assert _repo().for_vendor("vendor-001") == ([], 0)

    def test_status_filter_and_paging(self, placed_order, transition):
        first = placed_order(customer_id="cust-001")
        placed_order(customer_id="cust-002")
        placed_order(customer_id="cust-003")
        transition(first.id, "confirmed")

        confirmed, total = _repo().for_vendor("vendor-001", status="confirmed")
        assert total == 1
        assert [o.id for o in confirmed] == [first.id]

        page, total = _repo().for_vendor("vendor-001", page=2, per_page=2)
        assert total == 3
        assert len(page) == 1


class TestCourierListings:
    def test_available_includes_orders_with_a_pending_offer(self, ready_order, register_courier):
        courier = register_courier()
        order = ready_order()

        orders, total = _repo().available_for_courier(courier.id, courier.vendor_id)

        assert total == 1
        assert [o.id for o in orders] == [order.id]

    def test_available_includes_orders_never_offered(self, ready_order, register_courier):
        order = ready_order()
        courier = register_courier()

        orders, _ = _repo().available_for_courier(courier.id, courier.vendor_id)

        assert [o.id for o in orders] == [order.id]

    def test_rejected_and_foreign_orders_are_not_available(self, ready_order, register_courier):
        courier = register_courier()
        register_courier(name="Colleague")
        rejected = ready_order(customer_id="cust-001")
        ready_order(customer_id="cust-002", vendor_id="vendor-002", product_id="prod-002")
        current_domain.process(
            RejectAssignment(order_id=str(rejected.id), courier_id=str(courier.id)), asynchronous=False
        )

        assert _repo().available_for_courier(courier.id, courier.vendor_id) == ([], 0)

    def test_assigned_orders_leave_available_and_join_my_orders(self, ready_order, register_courier):
        courier = register_courier()
        order = ready_order()
        current_domain.process(
            AcceptAssignment(order_id=str(order.id), courier_id=str(courier.id)), asynchronous=False
        )

        assert _repo().available_for_courier(courier.id, courier.vendor_id) == ([], 0)
        mine, total = _repo().for_courier(courier.id)
        assert total == 1
        assert mine[0].status == "out_for_delivery"

    def test_my_orders_filter_by_status(self, ready_order, register_courier, transition):
        courier = register_courier()
        for customer_id in ("cust-001", "cust-002"):
            order = ready_order(customer_id=customer_id)
            current_domain.process(
                AcceptAssignment(order_id=str(order.id), courier_id=str(courier.id)), asynchronous=False
            )
        transition(order.id, "delivered", actor="courier", actor_id=str(courier.id))

        delivered, total = _repo().for_courier(courier.id, status="delivered")

        assert total == 1
        assert [o.id for o in delivered] == [order.id]
