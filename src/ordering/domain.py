"""Ordering bounded context: carts, coupons, checkout and order fulfillment.

Carts are repriced against the catalog on demand, committed into immutable
orders by the checkout pipeline, and orders are driven through a delivery
lifecycle that fans out assignment offers to couriers.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
