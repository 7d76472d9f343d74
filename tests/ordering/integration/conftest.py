import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture()
def client():
    from ordering.api import (
        admin_router,
        cart_router,
        courier_router,
        order_router,
        register_ordering_exception_handlers,
        vendor_router,
    )

    app = FastAPI()
    for router in (cart_router, order_router, vendor_router, courier_router, admin_router):
        app.include_router(router)
    register_ordering_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def customer():
    return {"X-User-Id": "cust-001"}


@pytest.fixture()
def vendor():
    return {"X-Vendor-Id": "vendor-001"}


@pytest.fixture()
def admin():
    return {"X-Admin-Id": "admin-001"}
