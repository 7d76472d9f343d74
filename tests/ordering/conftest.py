import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()


@pytest.fixture()
def catalog():
    """A fresh in-memory catalog installed as the active catalog store."""
    from ordering.catalog import set_catalog
    from ordering.catalog.memory_adapter import InMemoryCatalog

    store = InMemoryCatalog()
    set_catalog(store)
    return store


@pytest.fixture()
def queue():
    from ordering.dispatch.channel import get_notification_queue

    return get_notification_queue()


@pytest.fixture()
def presence():
    from ordering.dispatch.channel import get_presence

    return get_presence()


@pytest.fixture()
def channel():
    from ordering.dispatch.channel import get_realtime_channel

    return get_realtime_channel()


@pytest.fixture()
def make_product():
    """Build a ProductSnapshot with sensible defaults: sale price 100, 10 in stock."""
    from ordering.catalog import ProductSnapshot

    def _make(product_id="prod-001", vendor_id="vendor-001", **overrides):
        fields = {
            "product_id": product_id,
            "vendor_id": vendor_id,
            "name": f"Product {product_id}",
            "base_cost": 80.0,
            "regular_price": 120.0,
            "sale_price": 100.0,
            "cashback": 0.0,
            "category_id": "cat-grocery",
            "inventory": 10,
        }
        fields.update(overrides)
        return ProductSnapshot(**fields)

    return _make


@pytest.fixture()
def stocked(catalog, make_product):
    """Register products in the active catalog and return them."""

    def _stock(*args, **kwargs):
        return catalog.register_product(make_product(*args, **kwargs))

    return _stock


@pytest.fixture()
def address():
    return {
        "line1": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pin_code": "560001",
        "phone": "9876543210",
    }


@pytest.fixture()
def issue_coupon():
    """Issue a coupon through the domain and return the stored aggregate."""
    from protean import current_domain

    from ordering.coupon.coupon import Coupon
    from ordering.coupon.issuance import IssueCoupon

    def _issue(code="SAVE10", offer_kind="percentage", terms=None, **fields):
        command = IssueCoupon(
            code=code,
            name=fields.pop("name", code),
            offer_kind=offer_kind,
            terms=terms if terms is not None else {"percentage": 10},
            **fields,
        )
        coupon_id = current_domain.process(command, asynchronous=False)
        return current_domain.repository_for(Coupon).get(coupon_id)

    return _issue


@pytest.fixture()
def new_order(address):
    """Build an unsaved Order from hand-written lines: (product_id, vendor_id, quantity, unit_price)."""
    from ordering.order.order import Order
    from ordering.pricing.reconciler import ReconciledLine, Reconciliation, price_lines

    def _new(
        lines=(("prod-001", "vendor-001", 2, 100.0),),
        payment_method="prepaid",
        customer_id="cust-001",
        order_number="RB000000011234",
    ):
        reconciled = [
            ReconciledLine(
                item_id=f"item-{n}",
                product_id=product_id,
                vendor_id=vendor_id,
                variant_key=None,
                quantity=quantity,
                unit_price=unit_price,
                total_price=round(quantity * unit_price, 2),
                cashback_amount=0.0,
                product_name=f"Product {product_id}",
            )
            for n, (product_id, vendor_id, quantity, unit_price) in enumerate(lines)
        ]
        pricing, _ = price_lines(reconciled)
        return Order.place(
            order_number=order_number,
            customer_id=customer_id,
            reconciliation=Reconciliation(lines=reconciled, pricing=pricing),
            shipping_address=address,
            payment_method=payment_method,
        )

    return _new


@pytest.fixture()
def add_to_cart():
    """Put a product in a customer's cart through the domain."""
    from protean import current_domain

    from ordering.cart.items import AddToCart

    def _add(product_id="prod-001", quantity=1, customer_id="cust-001", variant_key=None):
        return current_domain.process(
            AddToCart(customer_id=customer_id, product_id=product_id, quantity=quantity, variant_key=variant_key),
            asynchronous=False,
        )

    return _add


@pytest.fixture()
def cart_of():
    from protean import current_domain

    from ordering.cart.cart import ShoppingCart

    def _cart(customer_id="cust-001"):
        return current_domain.repository_for(ShoppingCart).for_customer(customer_id)

    return _cart


@pytest.fixture()
def placed_order(stocked, add_to_cart, address):
    """Commit a one-line order for ``customer_id`` from ``vendor_id`` and return it."""
    from ordering.checkout.placement import place_order

    def _place(customer_id="cust-001", vendor_id="vendor-001", product_id="prod-001", quantity=2, payment="prepaid"):
        stocked(product_id, vendor_id=vendor_id, inventory=10)
        add_to_cart(product_id, quantity=quantity, customer_id=customer_id)
        return place_order(customer_id, address, payment)

    return _place


@pytest.fixture()
def register_courier():
    from protean import current_domain

    from ordering.dispatch.courier import Courier, RegisterCourier

    def _register(vendor_id="vendor-001", name="Ravi", **fields):
        courier_id = current_domain.process(
            RegisterCourier(name=name, vendor_id=vendor_id, **fields), asynchronous=False
        )
        return current_domain.repository_for(Courier).get(courier_id)

    return _register


@pytest.fixture()
def transition():
    """Move an order through the lifecycle command and return the order view."""
    from protean import current_domain

    from ordering.order.lifecycle import TransitionOrderStatus

    def _transition(order_id, new_status, actor="vendor", actor_id="vendor-001", reason=None):
        return current_domain.process(
            TransitionOrderStatus(
                order_id=str(order_id), new_status=new_status, actor=actor, actor_id=actor_id, reason=reason
            ),
            asynchronous=False,
        )

    return _transition
