"""BDD tests for order status transitions and courier assignment."""

from ordering.dispatch.assignment import AcceptAssignment
from ordering.errors import OrderingError
from ordering.order.lifecycle import CancelOrder
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/order_lifecycle.feature")


@given(parsers.cfparse('couriers "{first}" and "{second}" work for the vendor'), target_fixture="couriers")
def _(register_courier, first, second):
    return {name: register_courier(name=name) for name in (first, second)}


@given("the order is ready")
def _(order, transition):
    for status in ("confirmed", "processing", "ready"):
        transition(order.id, status)


@when(parsers.cfparse('the vendor moves the order to "{status}"'))
def _(order, transition, error, status):
    try:
        transition(order.id, status)
    except OrderingError as exc:
        error["exc"] = exc


@when("the customer cancels the order")
def _(order):
    current_domain.process(
        CancelOrder(order_id=str(order.id), actor="customer", actor_id="cust-001"), asynchronous=False
    )


@when(parsers.cfparse('"{name}" accepts the order'))
def _(order, couriers, error, name):
    try:
        current_domain.process(
            AcceptAssignment(order_id=str(order.id), courier_id=str(couriers[name].id)), asynchronous=False
        )
    except OrderingError as exc:
        error["exc"] = exc


@then(parsers.cfparse('the payment status is "{status}"'))
def _(order, status):
    assert current_domain.repository_for(Order).get(str(order.id)).payment_status == status


@then(parsers.cfparse('the order is assigned to "{name}"'))
def _(order, couriers, name):
    stored = current_domain.repository_for(Order).get(str(order.id))
    assert str(stored.courier_id) == str(couriers[name].id)
