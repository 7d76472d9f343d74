"""Maps ordering failures onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import OrderingError, OrderNumberAllocationFailed

logger = structlog.get_logger(__name__)


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    if isinstance(exc, OrderNumberAllocationFailed):
        logger.error("order_number_allocation_failed", path=request.url.path, details=exc.details)
    else:
        logger.info("ordering_request_rejected", path=request.url.path, error=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_ordering_exception_handlers(app: FastAPI) -> None:
    """Register protean's validation/not-found handlers plus the ordering failures."""
    register_exception_handlers(app)
    app.add_exception_handler(OrderingError, ordering_error_handler)
