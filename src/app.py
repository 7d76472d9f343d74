"""Marketplace ordering FastAPI application.

Processes cart, checkout, order lifecycle and courier dispatch commands
synchronously over HTTP. Every request runs inside the ordering domain
context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordering.domain import ordering
from ordering.utils.logging import add_context, clear_context, configure_logging

configure_logging()

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects protean's config overlay.
ordering.init()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace Ordering API",
    description="Cart, checkout, order lifecycle and courier dispatch",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context and bind a request id for logging."""
    request_id = request.headers.get("X-Request-Id") or uuid4().hex
    add_context(request_id=request_id, path=request.url.path)
    try:
        with ordering.domain_context():
            response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import (  # noqa: E402
    admin_router,
    cart_router,
    courier_router,
    order_router,
    register_ordering_exception_handlers,
    vendor_router,
)

register_ordering_exception_handlers(app)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(vendor_router)
app.include_router(courier_router)
app.include_router(admin_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": ordering.name})
