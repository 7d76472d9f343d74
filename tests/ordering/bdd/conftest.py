"""Shared BDD fixtures and step definitions for checkout and the order lifecycle."""

import pytest
from ordering.cart.coupons import ApplyCouponToCart
from ordering.checkout.placement import place_order
from ordering.coupon.coupon import Coupon
from ordering.errors import OrderingError
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then

CUSTOMER_ID = "cust-001"


@pytest.fixture()
def error():
    """Holds the failure raised by the last When step, if any."""
    return {"exc": None}


def reload_order(order):
    return current_domain.repository_for(Order).get(str(order.id))


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{product_id}" priced {price:g} with {stock:d} in stock'))
def _(stocked, product_id, price, stock):
    stocked(product_id, sale_price=float(price), inventory=stock)


@given(parsers.cfparse('the customer has {quantity:d} of "{product_id}" in the cart'))
def _(add_to_cart, product_id, quantity):
    add_to_cart(product_id, quantity=quantity, customer_id=CUSTOMER_ID)


@given(parsers.cfparse('a {percentage:d} percent coupon "{code}" for orders of at least {minimum:g}'))
def _(issue_coupon, percentage, code, minimum):
    issue_coupon(code, terms={"percentage": percentage}, min_amount=float(minimum))


@given(parsers.cfparse('the customer applies coupon "{code}"'))
def _(code):
    current_domain.process(ApplyCouponToCart(customer_id=CUSTOMER_ID, coupon_code=code), asynchronous=False)


@given(parsers.cfparse('product "{product_id}" is deactivated'))
def _(catalog, product_id):
    catalog.update_product(product_id, is_active=False)


@given(parsers.cfparse('the customer placed an order paying by "{method}"'), target_fixture="order")
def _(address, method):
    return place_order(CUSTOMER_ID, address, method)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{product_id}" has {stock:d} in stock'))
def _(catalog, product_id, stock):
    assert catalog.get_product(product_id).inventory == stock


@then("the cart is empty")
def _(cart_of):
    assert len(cart_of(CUSTOMER_ID).items) == 0


@then(parsers.cfparse('coupon "{code}" has been used {count:d} time'))
def _(code, count):
    assert current_domain.repository_for(Coupon).find_by_code(code).used_count == count


@then(parsers.cfparse('the {action} fails with "{code}"'))
def _(error, action, code):
    assert error["exc"] is not None, f"Expected the {action} to fail"
    assert isinstance(error["exc"], OrderingError)
    assert error["exc"].code == code


@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert reload_order(order).status == status
